"""Parsing of --item options into line items."""

from decimal import Decimal

import click

from khata.domain.entities import InvoiceLineItem, LineItem
from khata.utils.amount_parser import parse_amount


def _split(value: str, minimum: int, maximum: int) -> list[str]:
    parts = [p.strip() for p in value.split(":")]
    if not minimum <= len(parts) <= maximum:
        raise click.BadParameter(f"'{value}' is not in the expected PRODUCT:QTY:PRICE form")
    return parts


def parse_line_items(values: tuple[str, ...]) -> tuple[LineItem, ...]:
    """Parse ``PRODUCT_ID:QTY:PRICE`` strings."""
    items = []
    for value in values:
        product_id, quantity, price = _split(value, 3, 3)
        try:
            items.append(LineItem(int(product_id), int(quantity), parse_amount(price)))
        except ValueError as e:
            raise click.BadParameter(f"Invalid line item '{value}': {e}")
    return tuple(items)


def parse_invoice_items(values: tuple[str, ...]) -> tuple[InvoiceLineItem, ...]:
    """Parse ``PRODUCT_ID:QTY:PRICE[:DISCOUNT]`` strings.

    Use ``-`` as the product ID for a line without a product.
    """
    items = []
    for value in values:
        parts = _split(value, 3, 4)
        try:
            product_id = None if parts[0] == "-" else int(parts[0])
            discount = parse_amount(parts[3]) if len(parts) == 4 else Decimal("0")
            items.append(
                InvoiceLineItem(
                    quantity=int(parts[1]),
                    unit_price=parse_amount(parts[2]),
                    discount_amount=discount,
                    product_id=product_id,
                )
            )
        except ValueError as e:
            raise click.BadParameter(f"Invalid invoice item '{value}': {e}")
    return tuple(items)
