"""Product catalogue commands."""

import click

from khata.cli.error_handling import handle_domain_error
from khata.domain.errors import DomainError
from khata.domain.product import ProductService
from khata.utils.amount_parser import parse_amount


@click.group()
def product_group():
    """Manage products."""
    pass


@product_group.command("create")
@click.argument("name", metavar="PRODUCT_NAME")
@click.option("--cost", "cost_price", required=True, help="Cost price")
@click.option("--price", "sale_price", required=True, help="Sale price")
@click.option("--low-stock", "low_stock_threshold", type=int, default=0, help="Low stock threshold")
@click.option("--sku", help="Stock keeping unit")
@click.pass_context
def create_product(ctx, name: str, cost_price: str, sale_price: str, low_stock_threshold: int, sku):
    """Create a new product with zero stock.

    Record opening stock with an 'Initial Stock Purchase (On Credit)' or
    'Stock Adjustment (Increase)' transaction.

    Examples:
        khata product create "Rice 25kg" --cost 1100 --price 1250 --low-stock 5
    """
    service = ProductService(ctx.obj["db"])
    try:
        product = service.create_product(
            name=name,
            cost_price=parse_amount(cost_price),
            sale_price=parse_amount(sale_price),
            low_stock_threshold=low_stock_threshold,
            sku=sku,
        )
        click.echo(f"Created product '{product.name}' (ID: {product.id})")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@product_group.command("list")
@click.option("--low-stock", is_flag=True, help="Only show products at or below their threshold")
@click.pass_context
def list_products(ctx, low_stock: bool):
    """List products with current stock."""
    service = ProductService(ctx.obj["db"])
    products = service.low_stock_products() if low_stock else service.list_products()
    if not products:
        click.echo("No products found.")
        return

    click.echo("\nProducts:")
    click.echo("-" * 72)
    for p in products:
        click.echo(
            f"ID: {p.id:3d} | {p.name:25s} | Stock: {p.current_stock:6d} | "
            f"Cost: {p.cost_price:,.2f} | Price: {p.sale_price:,.2f}"
        )


def register_commands(cli):
    """Register product commands with main CLI."""
    cli.add_command(product_group, name="product")
