"""Product domain service."""

import logging
from decimal import Decimal
from typing import Optional

from khata.database.base import Database
from khata.domain.entities import Product
from khata.domain.errors import ConflictError, NotFoundError, ValidationError, product_not_found

logger = logging.getLogger(__name__)


class ProductService:
    """Service for the product catalogue.

    Stock is never set directly; it moves only through transactions with
    product line items.
    """

    def __init__(self, db: Database):
        self.db = db

    def create_product(
        self,
        name: str,
        cost_price: Decimal,
        sale_price: Decimal,
        low_stock_threshold: int = 0,
        sku: Optional[str] = None,
    ) -> Product:
        """Create a product with zero stock.

        Opening stock is recorded afterwards as an ``Initial Stock Purchase``
        or a ``Stock Adjustment (Increase)`` transaction.

        Raises:
            ValidationError: If the name or prices are invalid
            ConflictError: If a product with the name already exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Product name cannot be empty")
        cost_price = Decimal(cost_price)
        sale_price = Decimal(sale_price)
        if cost_price < 0 or sale_price < 0:
            raise ValidationError("Prices cannot be negative")
        if low_stock_threshold < 0:
            raise ValidationError("Low stock threshold cannot be negative")
        if any(p.name == name for p in self.db.list_products()):
            raise ConflictError(f"Product with name '{name}' already exists")

        product_id = self.db.create_product(
            name=name,
            cost_price=cost_price,
            sale_price=sale_price,
            low_stock_threshold=low_stock_threshold,
            sku=sku,
        )
        logger.info("Created product %s (%s)", product_id, name)
        return self.db.get_product(product_id)

    def get_product(self, product_id: int) -> Product:
        """Get product by ID.

        Raises:
            NotFoundError: If the product does not exist
        """
        product = self.db.get_product(product_id)
        if product is None:
            raise NotFoundError(product_not_found(product_id))
        return product

    def list_products(self) -> list[Product]:
        """List all products."""
        return self.db.list_products()

    def low_stock_products(self) -> list[Product]:
        """Products at or below their low-stock threshold."""
        return [
            p
            for p in self.db.list_products()
            if p.low_stock_threshold > 0 and p.current_stock <= p.low_stock_threshold
        ]

    def stock_value(self) -> Decimal:
        """Value of stock on hand at cost; negative stock counts as zero."""
        return sum(
            (max(p.current_stock, 0) * p.cost_price for p in self.db.list_products()),
            Decimal("0"),
        )
