"""Tests for customers, external entities and products."""

from decimal import Decimal

import pytest

from khata.domain.entities import EntityType
from khata.domain.errors import ConflictError, NotFoundError, ValidationError
from khata.utils.party_resolver import resolve_customer, resolve_entity


class TestPartyService:
    """Tests for PartyService."""

    def test_create_customer(self, party_service):
        customer = party_service.create_customer(
            name="  Ravi Traders ", opening_balance=Decimal("500"), state="Karnataka"
        )

        assert customer.name == "Ravi Traders"
        assert customer.opening_balance == Decimal("500")
        assert party_service.get_customer(customer.id) == customer

    def test_duplicate_customer(self, party_service, sample_customer):
        with pytest.raises(ConflictError, match="already exists"):
            party_service.create_customer(name=sample_customer.name)

    def test_empty_customer_name(self, party_service):
        with pytest.raises(ValidationError):
            party_service.create_customer(name="   ")

    def test_missing_customer(self, party_service):
        with pytest.raises(NotFoundError):
            party_service.get_customer(999)

    def test_list_customers_by_name(self, party_service):
        party_service.create_customer(name="Zeenat")
        party_service.create_customer(name="Anil")
        assert [c.name for c in party_service.list_customers()] == ["Anil", "Zeenat"]

    def test_supplier_opening_payable(self, party_service):
        supplier = party_service.create_entity(
            name="Acme", entity_type="Supplier", opening_payable_balance=Decimal("2500")
        )
        assert supplier.entity_type == EntityType.SUPPLIER
        assert supplier.opening_payable_balance == Decimal("2500")

    def test_only_suppliers_have_opening_payable(self, party_service):
        with pytest.raises(ValidationError, match="Only suppliers"):
            party_service.create_entity(
                name="Bank", entity_type=EntityType.LENDER, opening_payable_balance=Decimal("1")
            )

    def test_unknown_entity_type(self, party_service):
        with pytest.raises(ValidationError, match="Unknown entity type"):
            party_service.create_entity(name="Someone", entity_type="Landlord")

    def test_duplicate_entity(self, party_service, sample_supplier):
        with pytest.raises(ConflictError):
            party_service.create_entity(name=sample_supplier.name, entity_type="General")

    def test_list_entities_by_type(self, party_service, sample_supplier, sample_lender):
        lenders = party_service.list_entities(EntityType.LENDER)
        assert [e.id for e in lenders] == [sample_lender.id]
        assert len(party_service.list_entities()) == 2


class TestProductService:
    """Tests for ProductService."""

    def test_create_product_starts_empty(self, product_service):
        product = product_service.create_product(
            name="Bolt", cost_price=Decimal("2"), sale_price=Decimal("3"), sku="B-1"
        )
        assert product.current_stock == 0
        assert product.sku == "B-1"

    def test_duplicate_product(self, product_service, sample_product):
        with pytest.raises(ConflictError):
            product_service.create_product(
                name="Widget", cost_price=Decimal("1"), sale_price=Decimal("1")
            )

    @pytest.mark.parametrize("cost, sale", [("-1", "5"), ("5", "-1")])
    def test_negative_prices(self, product_service, cost, sale):
        with pytest.raises(ValidationError):
            product_service.create_product(name="Bad", cost_price=Decimal(cost), sale_price=Decimal(sale))

    def test_low_stock_products(self, temp_db, product_service, sample_product):
        """A product at its threshold is low; one without a threshold never is."""
        unwatched = product_service.create_product(
            name="Unwatched", cost_price=Decimal("1"), sale_price=Decimal("2")
        )
        temp_db.adjust_product_stock(sample_product.id, 2)

        low = product_service.low_stock_products()

        assert [p.id for p in low] == [sample_product.id]
        assert unwatched.id not in [p.id for p in low]

    def test_stock_value_ignores_negative_stock(self, temp_db, product_service, sample_product):
        other = product_service.create_product(
            name="Gadget", cost_price=Decimal("10"), sale_price=Decimal("20")
        )
        temp_db.adjust_product_stock(sample_product.id, 3)
        temp_db.adjust_product_stock(other.id, -4)

        assert product_service.stock_value() == Decimal("900")


class TestPartyResolver:
    """Tests for resolving party names and IDs."""

    def test_customer_by_id_and_name(self, party_service, sample_customer):
        assert resolve_customer(party_service, sample_customer.id) == sample_customer.id
        assert resolve_customer(party_service, str(sample_customer.id)) == sample_customer.id
        assert resolve_customer(party_service, "Ravi Traders") == sample_customer.id

    def test_unknown_customer(self, party_service):
        with pytest.raises(NotFoundError):
            resolve_customer(party_service, "Nobody")
        with pytest.raises(NotFoundError):
            resolve_customer(party_service, 42)

    def test_entity_by_name(self, party_service, sample_lender):
        assert resolve_entity(party_service, "City Bank") == sample_lender.id

    def test_unknown_entity(self, party_service):
        with pytest.raises(NotFoundError, match="not found"):
            resolve_entity(party_service, "Nobody")
