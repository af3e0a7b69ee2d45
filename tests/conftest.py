"""Shared pytest fixtures for khata tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal

import pytest

from khata.database.factories import create_sqlite_database
from khata.domain.agreement import AgreementService
from khata.domain.chit import ChitFundService
from khata.domain.entities import EntityType
from khata.domain.invoice import InvoiceService
from khata.domain.ledger import LedgerService
from khata.domain.party import PartyService
from khata.domain.product import ProductService
from khata.domain.report import ReportService
from khata.domain.transaction import TransactionService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def party_service(temp_db):
    """Create a PartyService with a temporary database."""
    return PartyService(temp_db)


@pytest.fixture
def product_service(temp_db):
    """Create a ProductService with a temporary database."""
    return ProductService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def ledger_service(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def agreement_service(temp_db):
    """Create an AgreementService with a temporary database."""
    return AgreementService(temp_db)


@pytest.fixture
def invoice_service(temp_db):
    """Create an InvoiceService for a business registered in Karnataka."""
    return InvoiceService(temp_db, business_state="Karnataka")


@pytest.fixture
def chit_service(temp_db):
    """Create a ChitFundService with a temporary database."""
    return ChitFundService(temp_db)


@pytest.fixture
def report_service(temp_db):
    """Create a ReportService with a temporary database."""
    return ReportService(temp_db)


@pytest.fixture
def sample_customer(party_service):
    """Create a sample customer in the business's own state."""
    return party_service.create_customer(name="Ravi Traders", state="Karnataka")


@pytest.fixture
def sample_supplier(party_service):
    """Create a sample supplier."""
    return party_service.create_entity(name="Acme Wholesale", entity_type=EntityType.SUPPLIER)


@pytest.fixture
def sample_lender(party_service):
    """Create a sample lender."""
    return party_service.create_entity(name="City Bank", entity_type=EntityType.LENDER)


@pytest.fixture
def sample_product(product_service):
    """Create a sample product with no stock."""
    return product_service.create_product(
        name="Widget",
        cost_price=Decimal("300"),
        sale_price=Decimal("500"),
        low_stock_threshold=2,
    )


@pytest.fixture
def stocked_product(transaction_service, sample_product, sample_supplier):
    """A product with 10 units bought on credit."""
    from khata.domain.entities import LineItem

    transaction_service.record(
        on_date=date(2024, 1, 1),
        category="Purchase from Supplier (On Credit)",
        amount=Decimal("3000"),
        entity_id=sample_supplier.id,
        line_items=[LineItem(sample_product.id, 10, Decimal("300"))],
    )
    return sample_product


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
