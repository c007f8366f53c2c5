"""
Domain: sales listing filters, sorting, cursors and query planning (pure).

The sales table only carries single-column indexes. Combining an equality
filter on one column with ordering on another would need a composite index
per combination, so the listing uses a degraded query instead:

- no store filters: the requested sort is pushed to the store
- only a status filter, sorted by status: filter and sort are both pushed
- anything else: the store only orders by date (desc), restricted to the
  requested date range, and every filter plus the requested sort are
  applied in memory over the page that came back

Under the last plan a page can hold fewer than page_size rows even when more
matches exist further on, and "has next page" reflects the raw page only.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, List, Mapping, Optional

from .identity import sale_date_iso
from .sale import Sale, SaleStatus


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PageDirection(str, Enum):
    NEXT = "next"
    PREV = "prev"


SortKey = Callable[[Sale], Any]


class SortableField(str, Enum):
    """Columns a sales listing can be ordered by. Values are store column names."""

    CUSTOMER_NAME = "customer_name"
    CUSTOMER_EMAIL = "customer_email"
    PRODUCT_NAME = "product_name"
    VENDOR_NAME = "vendor_name"
    DATE = "date"
    PAYMENT_METHOD = "payment_method"
    USD_AMOUNT = "usd_amount"
    STATUS = "status"

    @property
    def column(self) -> str:
        return self.value

    def sort_key(self) -> SortKey:
        """Key function used when the sort is completed in memory."""
        return _SORT_KEYS[self]


_SORT_KEYS: dict[SortableField, SortKey] = {
    SortableField.CUSTOMER_NAME: lambda sale: sale.customer_name.casefold(),
    SortableField.CUSTOMER_EMAIL: lambda sale: sale.customer_email.casefold(),
    SortableField.PRODUCT_NAME: lambda sale: sale.product_name.casefold(),
    SortableField.VENDOR_NAME: lambda sale: sale.vendor_name.casefold(),
    SortableField.DATE: lambda sale: sale.date,
    SortableField.PAYMENT_METHOD: lambda sale: sale.payment_method.casefold(),
    SortableField.USD_AMOUNT: lambda sale: sale.usd_amount,
    SortableField.STATUS: lambda sale: sale.status.value,
}


@dataclass(frozen=True, slots=True)
class SalesQueryFilters:
    text: Optional[str] = None
    product_id: Optional[str] = None
    vendor_id: Optional[str] = None
    status: Optional[SaleStatus] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    sort_by: SortableField = SortableField.DATE
    sort_dir: SortDirection = SortDirection.DESC

    def has_store_filters(self) -> bool:
        return any(
            value is not None
            for value in (
                self.product_id,
                self.vendor_id,
                self.status,
                self.date_from,
                self.date_to,
            )
        )

    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


@dataclass(frozen=True, slots=True)
class SalesCursor:
    """
    Opaque position of a raw row in a given ordering.

    The cursor remembers the column and direction it was taken under; it is
    rejected when replayed against a listing ordered differently.
    """

    column: str
    descending: bool
    value: Any
    sale_id: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any], *, column: str, descending: bool) -> "SalesCursor":
        return cls(column=column, descending=descending, value=row.get(column), sale_id=str(row["id"]))

    def encode(self) -> str:
        payload = json.dumps(
            {"c": self.column, "d": self.descending, "v": self.value, "id": self.sale_id},
            separators=(",", ":"),
            default=str,
        )
        return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, token: str) -> "SalesCursor":
        try:
            data = json.loads(base64.urlsafe_b64decode(token.encode("ascii")))
            return cls(
                column=str(data["c"]),
                descending=bool(data["d"]),
                value=data["v"],
                sale_id=str(data["id"]),
            )
        except (binascii.Error, ValueError, KeyError, TypeError) as exc:
            raise ValueError("Invalid pagination cursor") from exc


@dataclass(frozen=True, slots=True)
class PaginationOptions:
    page_size: int
    cursor: Optional[SalesCursor] = None
    direction: PageDirection = PageDirection.NEXT


@dataclass(frozen=True, slots=True)
class SalesPage:
    sales: List[Sale]
    next_cursor: Optional[SalesCursor]
    prev_cursor: Optional[SalesCursor]
    has_next_page: bool
    has_prev_page: bool


@dataclass(frozen=True, slots=True)
class QueryPlan:
    """What the store is asked to do for one listing request."""

    order_by: SortableField
    descending: bool
    status: Optional[SaleStatus] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    complete_in_memory: bool = False
    filter_text: bool = False


def plan_sales_query(filters: SalesQueryFilters) -> QueryPlan:
    """Choose the store-level query for a set of filters (see module docstring)."""

    descending = filters.sort_dir == SortDirection.DESC

    if not filters.has_store_filters():
        return QueryPlan(
            order_by=filters.sort_by,
            descending=descending,
            filter_text=filters.has_text(),
        )

    status_only = (
        filters.status is not None
        and filters.product_id is None
        and filters.vendor_id is None
        and filters.date_from is None
        and filters.date_to is None
    )
    if status_only and filters.sort_by == SortableField.STATUS:
        return QueryPlan(
            order_by=SortableField.STATUS,
            descending=descending,
            status=filters.status,
            filter_text=filters.has_text(),
        )

    return QueryPlan(
        order_by=SortableField.DATE,
        descending=True,
        date_from=filters.date_from,
        date_to=filters.date_to,
        complete_in_memory=True,
    )


def filter_sales_by_text(sales: Iterable[Sale], text: Optional[str]) -> List[Sale]:
    """Case-insensitive substring match on customer name or email."""

    sales = list(sales)
    if not text or not text.strip():
        return sales

    needle = text.strip().casefold()
    return [
        sale
        for sale in sales
        if needle in sale.customer_name.casefold() or needle in sale.customer_email.casefold()
    ]


def sort_sales(sales: Iterable[Sale], sort_by: SortableField, sort_dir: SortDirection) -> List[Sale]:
    """Order sales by one field; ties keep ascending sale id order."""

    key = sort_by.sort_key()
    by_id = sorted(sales, key=lambda sale: sale.sale_id)
    return sorted(by_id, key=key, reverse=sort_dir == SortDirection.DESC)


def apply_client_filters(sales: Iterable[Sale], filters: SalesQueryFilters) -> List[Sale]:
    """Apply every requested filter and the requested sort in memory."""

    result = []
    for sale in sales:
        if filters.product_id is not None and sale.product_id != filters.product_id:
            continue
        if filters.vendor_id is not None and sale.vendor_id != filters.vendor_id:
            continue
        if filters.status is not None and sale.status != filters.status:
            continue
        if filters.date_from is not None and sale.date < filters.date_from:
            continue
        if filters.date_to is not None and sale.date > filters.date_to:
            continue
        result.append(sale)

    result = filter_sales_by_text(result, filters.text)
    return sort_sales(result, filters.sort_by, filters.sort_dir)


@dataclass(frozen=True, slots=True)
class SaleRow:
    """Flat projection of a sale used by tables and CSV export."""

    sale_id: str
    customer_name: str
    customer_email: str
    product_name: str
    vendor_name: str
    sale_date: datetime
    sale_date_iso: str
    payment_method: str
    amount_usd: Decimal
    status: SaleStatus


def sale_to_row(sale: Sale) -> SaleRow:
    return SaleRow(
        sale_id=sale.sale_id,
        customer_name=sale.customer_name,
        customer_email=sale.customer_email,
        product_name=sale.product_name,
        vendor_name=sale.vendor_name,
        sale_date=sale.date,
        sale_date_iso=sale_date_iso(sale.date),
        payment_method=sale.payment_method,
        amount_usd=sale.usd_amount,
        status=sale.status,
    )


__all__ = [
    "SortDirection",
    "PageDirection",
    "SortableField",
    "SalesQueryFilters",
    "SalesCursor",
    "PaginationOptions",
    "SalesPage",
    "QueryPlan",
    "plan_sales_query",
    "filter_sales_by_text",
    "sort_sales",
    "apply_client_filters",
    "SaleRow",
    "sale_to_row",
]
