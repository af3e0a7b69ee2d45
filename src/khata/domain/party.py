"""Party domain service: customers and external entities."""

import logging
from decimal import Decimal
from typing import Optional

from khata.database.base import Database
from khata.domain.entities import Customer, EntityType, ExternalEntity
from khata.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    customer_not_found,
    entity_not_found,
)

logger = logging.getLogger(__name__)


class PartyService:
    """Service for managing customers and external entities."""

    def __init__(self, db: Database):
        """Initialize party service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_customer(
        self,
        name: str,
        opening_balance: Decimal = Decimal("0"),
        phone: Optional[str] = None,
        email: Optional[str] = None,
        state: Optional[str] = None,
        gstin: Optional[str] = None,
    ) -> Customer:
        """Create a customer.

        Args:
            name: Customer name (unique)
            opening_balance: Amount owed before the first recorded transaction
            phone: Optional phone number
            email: Optional email
            state: Optional state, used to pick GST rates on invoices
            gstin: Optional GST identification number

        Raises:
            ValidationError: If the name is empty
            ConflictError: If a customer with the name already exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Customer name cannot be empty")
        if self.db.get_customer_by_name(name) is not None:
            raise ConflictError(f"Customer with name '{name}' already exists")

        customer_id = self.db.create_customer(
            name=name,
            opening_balance=Decimal(opening_balance),
            phone=phone,
            email=email,
            state=state,
            gstin=gstin,
        )
        logger.info("Created customer %s (%s)", customer_id, name)
        return self.db.get_customer(customer_id)

    def get_customer(self, customer_id: int) -> Customer:
        """Get customer by ID.

        Raises:
            NotFoundError: If the customer does not exist
        """
        customer = self.db.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(customer_not_found(customer_id))
        return customer

    def list_customers(self) -> list[Customer]:
        """List all customers."""
        return self.db.list_customers()

    def create_entity(
        self,
        name: str,
        entity_type: EntityType | str = EntityType.GENERAL,
        opening_payable_balance: Decimal = Decimal("0"),
        contact_person: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> ExternalEntity:
        """Create a supplier, lender or other external entity.

        Only suppliers carry an opening payable balance.

        Raises:
            ValidationError: If the name or type is invalid
            ConflictError: If an entity with the name already exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Entity name cannot be empty")
        try:
            entity_type = EntityType(entity_type)
        except ValueError as e:
            valid = ", ".join(t.value for t in EntityType)
            raise ValidationError(f"Unknown entity type '{entity_type}' (expected one of {valid})") from e

        opening_payable_balance = Decimal(opening_payable_balance)
        if opening_payable_balance and entity_type != EntityType.SUPPLIER:
            raise ValidationError("Only suppliers can have an opening payable balance")
        if self.db.get_external_entity_by_name(name) is not None:
            raise ConflictError(f"Entity with name '{name}' already exists")

        entity_id = self.db.create_external_entity(
            name=name,
            entity_type=entity_type.value,
            opening_payable_balance=opening_payable_balance,
            contact_person=contact_person,
            phone=phone,
        )
        logger.info("Created %s %s (%s)", entity_type.value, entity_id, name)
        return self.db.get_external_entity(entity_id)

    def get_entity(self, entity_id: int) -> ExternalEntity:
        """Get external entity by ID.

        Raises:
            NotFoundError: If the entity does not exist
        """
        entity = self.db.get_external_entity(entity_id)
        if entity is None:
            raise NotFoundError(entity_not_found(entity_id))
        return entity

    def list_entities(self, entity_type: Optional[EntityType | str] = None) -> list[ExternalEntity]:
        """List external entities, optionally of one type."""
        if entity_type is not None:
            entity_type = EntityType(entity_type).value
        return self.db.list_external_entities(entity_type=entity_type)
