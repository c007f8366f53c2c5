"""
Stats service for the sales KPI cards and the dashboard.

Sales stats degrade to zeros on any error so a dashboard shows "0" instead of
failing. Dashboard KPIs are computed independently: one failing metric is
reported on its own and does not block the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from domain.sale import SaleStatus
from domain.sales_query import PaginationOptions, SalesQueryFilters
from repositories.client import Client as SupabaseClient
from repositories.dashboard_repository import (
    get_active_products_count,
    get_clients_count,
    get_sellers_count,
    get_total_sales_usd,
)
from repositories.sales_query_repository import fetch_sales_page

logger = logging.getLogger(__name__)

# Effectively "every matching row"; beyond this the stats undercount.
STATS_PAGE_SIZE: int = 10000


@dataclass(frozen=True, slots=True)
class SalesStats:
    pending_count: int
    approved_count: int
    pending_amount: Decimal
    approved_amount: Decimal

    @classmethod
    def zero(cls) -> "SalesStats":
        return cls(
            pending_count=0,
            approved_count=0,
            pending_amount=Decimal("0"),
            approved_amount=Decimal("0"),
        )


def get_sales_stats(
    db: SupabaseClient,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> SalesStats:
    """
    Pending/approved counts and USD totals, optionally within a date range.

    Sums usd_amount, never the raw amount, so USD/MXN/COP sales add up.
    """
    try:
        totals = {}
        for status in (SaleStatus.PENDING, SaleStatus.APPROVED):
            page = fetch_sales_page(
                db,
                SalesQueryFilters(status=status, date_from=date_from, date_to=date_to),
                PaginationOptions(page_size=STATS_PAGE_SIZE),
            )
            amount = sum((sale.usd_amount for sale in page.sales), Decimal("0"))
            totals[status] = (len(page.sales), amount)
    except Exception:
        logger.exception("Error fetching sales stats")
        return SalesStats.zero()

    pending_count, pending_amount = totals[SaleStatus.PENDING]
    approved_count, approved_amount = totals[SaleStatus.APPROVED]
    return SalesStats(
        pending_count=pending_count,
        approved_count=approved_count,
        pending_amount=pending_amount,
        approved_amount=approved_amount,
    )


@dataclass(frozen=True, slots=True)
class MetricResult:
    """One KPI card: either a value or the error that prevented it."""

    value: Any = None
    error: Optional[str] = None


_DASHBOARD_METRICS: Dict[str, Callable[[SupabaseClient], Any]] = {
    "total_sales_usd": get_total_sales_usd,
    "clients": get_clients_count,
    "active_products": get_active_products_count,
    "sellers": get_sellers_count,
}


def get_dashboard_metrics(db: SupabaseClient) -> Dict[str, MetricResult]:
    """Compute every dashboard KPI, isolating failures per metric."""

    results: Dict[str, MetricResult] = {}
    for name, metric in _DASHBOARD_METRICS.items():
        try:
            results[name] = MetricResult(value=metric(db))
        except Exception as exc:
            logger.warning("Dashboard metric %s failed: %s", name, exc)
            results[name] = MetricResult(error=str(exc))
    return results


__all__ = [
    "STATS_PAGE_SIZE",
    "SalesStats",
    "get_sales_stats",
    "MetricResult",
    "get_dashboard_metrics",
]
