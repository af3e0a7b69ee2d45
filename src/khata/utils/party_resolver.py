"""Utility for resolving party names to IDs."""

from khata.domain.errors import NotFoundError
from khata.domain.party import PartyService


def _as_id(value: str | int) -> int | None:
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def resolve_customer(party_service: PartyService, customer: str | int) -> int:
    """Resolve a customer name or ID to a customer ID.

    Args:
        party_service: PartyService instance
        customer: Customer name, or ID (int or string representation of int)

    Returns:
        Customer ID

    Raises:
        NotFoundError: If no customer matches
    """
    customer_id = _as_id(customer)
    if customer_id is not None:
        return party_service.get_customer(customer_id).id

    for candidate in party_service.list_customers():
        if candidate.name == customer:
            return candidate.id

    raise NotFoundError(f"Customer '{customer}' not found")


def resolve_entity(party_service: PartyService, entity: str | int) -> int:
    """Resolve an external entity name or ID to an entity ID.

    Raises:
        NotFoundError: If no entity matches
    """
    entity_id = _as_id(entity)
    if entity_id is not None:
        return party_service.get_entity(entity_id).id

    for candidate in party_service.list_entities():
        if candidate.name == entity:
            return candidate.id

    raise NotFoundError(f"Entity '{entity}' not found")
