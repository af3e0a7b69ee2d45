"""Category listing command."""

import click

from khata.domain.taxonomy import DEFAULT_TAXONOMY


@click.command("categories")
@click.option("--group", "group_name", help="Only categories in this group")
def list_categories(group_name: str | None):
    """List transaction categories and how they move the books."""
    categories = [c for c in DEFAULT_TAXONOMY if group_name is None or c.group == group_name]
    if not categories:
        click.echo("No categories found.")
        return

    click.echo(f"\n{'Category':48s} {'Group':24s} {'Money':22s} {'Party':9s} Nature")
    click.echo("-" * 120)
    for c in categories:
        click.echo(
            f"{c.name:48s} {c.group:24s} {c.ledger_effect.value:22s} "
            f"{c.relevant_to.value:9s} {c.nature_hint.value}"
        )


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(list_categories, name="categories")
