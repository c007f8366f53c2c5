"""
Dashboard repository: counts and totals backing the KPI cards.

Each function is independent and raises on failure, so a caller can render
one failing card without blocking the others.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from domain.catalog import VendorRole
from domain.sale import SaleStatus
from repositories.client import Client as SupabaseClient
from repositories.client import raise_for_error, response_rows

logger = logging.getLogger(__name__)


def _count(query: Any, what: str) -> int:
    """Exact count from the response, or the number of rows when the count is unavailable."""
    try:
        response = query.execute()
        raise_for_error(response, f"count {what}")
    except Exception as exc:
        raise RuntimeError(f"Failed to get {what} count: {exc}") from exc

    count = getattr(response, "count", None)
    if count is None:
        logger.debug("Exact count unavailable for %s, counting rows", what)
        return len(response_rows(response))
    return int(count)


def get_total_sales_usd(db: SupabaseClient) -> Decimal:
    """
    Sum of usd_amount over pending and approved sales (rejected excluded).

    Legacy rows without usd_amount contribute their raw amount.
    """
    try:
        response = (
            db.table("sales")
            .select("status, amount, usd_amount")
            .neq("status", SaleStatus.REJECTED.value)
            .execute()
        )
        raise_for_error(response, "get total USD sales")
    except Exception as exc:
        raise RuntimeError(f"Failed to get total USD sales: {exc}") from exc

    total = Decimal("0")
    for row in response_rows(response):
        if row.get("status") == SaleStatus.REJECTED.value:
            continue
        value = row.get("usd_amount")
        if value is None:
            value = row.get("amount") or 0
        total += Decimal(str(value))
    return total


def get_clients_count(db: SupabaseClient) -> int:
    return _count(db.table("clients").select("id", count="exact"), "clients")


def get_active_products_count(db: SupabaseClient) -> int:
    return _count(
        db.table("products").select("id", count="exact").eq("active", True),
        "active products",
    )


def get_sellers_count(db: SupabaseClient) -> int:
    return _count(
        db.table("vendors")
        .select("id", count="exact")
        .eq("role", VendorRole.SELLER.value)
        .eq("active", True),
        "sellers",
    )


__all__ = [
    "get_total_sales_usd",
    "get_clients_count",
    "get_active_products_count",
    "get_sellers_count",
]
