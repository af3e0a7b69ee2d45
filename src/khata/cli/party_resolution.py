"""CLI helpers for party resolution."""

from __future__ import annotations

import click

from khata.domain.party import PartyService
from khata.utils.party_resolver import resolve_customer, resolve_entity


def resolve_customer_or_exit(ctx: click.Context, party_service: PartyService, customer: str | int) -> int:
    """Resolve customer name or ID, or exit with a CLI error."""
    try:
        return resolve_customer(party_service, customer)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def resolve_entity_or_exit(ctx: click.Context, party_service: PartyService, entity: str | int) -> int:
    """Resolve external entity name or ID, or exit with a CLI error."""
    try:
        return resolve_entity(party_service, entity)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
