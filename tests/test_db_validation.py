"""
Database validation tests.

This module tests the Supabase connection and verifies that:
1. Connection credentials work
2. Required tables exist
3. The sale upsert and comment functions work end to end

They run against the project configured in `.env` and are skipped when no
credentials are available. Run these first against a fresh project after
applying sql/schema.sql.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

import pytest
from dotenv import load_dotenv

# Load .env file before anything else
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

pytestmark = pytest.mark.skipif(
    not (os.getenv("SUPABASE_URL") and os.getenv("SUPABASE_KEY")),
    reason="SUPABASE_URL / SUPABASE_KEY not set; live database checks skipped",
)

TABLES = ["clients", "sales", "products", "vendors", "sources", "payment_methods", "evidence_types"]


@pytest.fixture(scope="module")
def live_db():
    from repositories.client import create_supabase_client, load_settings

    return create_supabase_client(load_settings())


def test_environment_variables_set() -> None:
    """Verify required environment variables are well formed."""

    supabase_url = os.getenv("SUPABASE_URL", "")
    assert supabase_url.startswith("https://"), "SUPABASE_URL should start with https://"

    print(f"\n[OK] Environment variables set")
    print(f"  SUPABASE_URL: {supabase_url[:30]}...")


@pytest.mark.parametrize("table", TABLES)
def test_table_exists(live_db, table: str) -> None:
    """Verify each table exists and can be queried."""

    try:
        live_db.table(table).select("*").limit(0).execute()
    except Exception as e:
        pytest.fail(
            f"'{table}' table does not exist or cannot be accessed: {e}\n"
            f"Apply sql/schema.sql to your Supabase project."
        )
    print(f"\n[OK] '{table}' table exists")


def test_sale_upsert_and_comments_round_trip(live_db) -> None:
    """Create, re-submit and comment on a throwaway sale, then clean up."""

    from domain.sale import Currency, SaleStatus
    from repositories import sale_repository
    from services.sale_service import CreateSaleData, add_sale_comment, create_sale

    email = f"validation-{uuid4().hex[:8]}@example.com"
    data = CreateSaleData(
        client_id="validation",
        customer_name="Validation",
        customer_email=email,
        product_id="validation-product",
        product_name="Validation Product",
        vendor_id="validation-vendor",
        vendor_name="Validation Vendor",
        amount=Decimal("10"),
        currency=Currency.USD,
        usd_amount=Decimal("10"),
        date=datetime(2025, 1, 2, tzinfo=timezone.utc),
        payment_method="transfer",
        source="manual",
        week=1,
        iteration=1,
    )

    sale = create_sale(live_db, data)
    try:
        create_sale(live_db, data)
        add_sale_comment(live_db, sale.sale_id, "validation comment", "validation-vendor", "Validation")

        stored = sale_repository.get_sale_by_id(live_db, sale.sale_id)
        assert stored is not None
        assert stored.status == SaleStatus.PENDING
        assert stored.created_at == sale.created_at
        assert [c.message for c in stored.comments] == ["validation comment"]
        print(f"\n[OK] Sale upsert and comment append work: {sale.sale_id}")
    finally:
        live_db.table("sales").delete().eq("id", sale.sale_id).execute()
