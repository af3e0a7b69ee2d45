"""External entity (supplier, lender) management commands."""

import click

from khata.cli.error_handling import handle_domain_error
from khata.domain.entities import EntityType
from khata.domain.errors import DomainError
from khata.domain.party import PartyService
from khata.utils.amount_parser import parse_amount


@click.group()
def entity_group():
    """Manage suppliers, lenders and other external entities."""
    pass


@entity_group.command("create")
@click.argument("name", metavar="ENTITY_NAME")
@click.option(
    "--type",
    "entity_type",
    type=click.Choice([t.value for t in EntityType], case_sensitive=False),
    default=EntityType.GENERAL.value,
    help="Entity type (default: General)",
)
@click.option("--opening-payable", default="0", help="Opening payable balance (suppliers only)")
@click.option("--contact", help="Contact person")
@click.option("--phone", help="Phone number")
@click.pass_context
def create_entity(ctx, name: str, entity_type: str, opening_payable: str, contact, phone):
    """Create a new external entity.

    Examples:
        khata entity create "Sharma Wholesale" --type Supplier --opening-payable 12000
        khata entity create "City Bank" --type Lender
    """
    service = PartyService(ctx.obj["db"])
    try:
        entity = service.create_entity(
            name=name,
            entity_type=EntityType(entity_type),
            opening_payable_balance=parse_amount(opening_payable),
            contact_person=contact,
            phone=phone,
        )
        click.echo(f"Created {entity.entity_type.value} '{entity.name}' (ID: {entity.id})")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@entity_group.command("list")
@click.option(
    "--type",
    "entity_type",
    type=click.Choice([t.value for t in EntityType]),
    help="Only list entities of this type",
)
@click.pass_context
def list_entities(ctx, entity_type: str | None):
    """List external entities."""
    entities = PartyService(ctx.obj["db"]).list_entities(entity_type)
    if not entities:
        click.echo("No entities found.")
        return

    click.echo("\nEntities:")
    click.echo("-" * 60)
    for e in entities:
        click.echo(f"ID: {e.id:3d} | {e.name:25s} | {e.entity_type.value}")


def register_commands(cli):
    """Register entity commands with main CLI."""
    cli.add_command(entity_group, name="entity")
