"""
Sales query repository for the sales listing, export and KPI reads.

Query shape is decided by domain.sales_query.plan_sales_query; this module
turns a plan into a PostgREST query, applies keyset (cursor) pagination and
completes filtering/sorting in memory when the plan says so.

Pagination:
- every ordering gets a secondary `id` ascending tiebreak
- direction NEXT starts strictly after the cursor row
- direction PREV starts at the cursor row (inclusive)
- NULLs sort last ascending and first descending, as Postgres does by default
- has_next_page is "the raw page was full"; under in-memory completion a page
  may hold fewer rows than page_size while more matches exist
"""

from __future__ import annotations

import logging
from typing import Any, List

from domain.sale import Sale
from domain.sales_query import (
    PageDirection,
    PaginationOptions,
    QueryPlan,
    SaleRow,
    SalesCursor,
    SalesPage,
    SalesQueryFilters,
    apply_client_filters,
    filter_sales_by_text,
    plan_sales_query,
    sale_to_row,
    sort_sales,
)
from domain.time import to_iso_utc
from repositories.client import Client as SupabaseClient
from repositories.client import raise_for_error, response_rows
from repositories.sale_repository import row_to_sale

logger = logging.getLogger(__name__)

_SALES_TABLE: str = "sales"

EXPORT_PAGE_SIZE: int = 1000
EXPORT_MAX_ROWS: int = 10000

# Sort columns that legacy rows may leave empty
NULLABLE_SORT_COLUMNS: frozenset[str] = frozenset({"usd_amount"})


def _quote(value: Any) -> str:
    """Quote a value for a PostgREST logic-tree filter."""
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def keyset_condition(cursor: SalesCursor, *, inclusive: bool) -> str:
    """
    PostgREST `or` filter selecting rows at/after the cursor in its ordering.

    For (column desc, id asc) the rows after (v, id0) are:
        column < v  OR  (column = v AND id > id0)

    Nullable columns keep the store's NULL placement (last when ascending,
    first when descending), so a NULL cursor value pages through the NULL
    block by id and, descending, on into the non-null rows.
    """
    column = cursor.column
    id_op = "gte" if inclusive else "gt"
    sale_id = _quote(cursor.sale_id)

    if cursor.value is None:
        if column not in NULLABLE_SORT_COLUMNS:
            raise ValueError("Cannot paginate from a row without a value for the sort column")
        same_block = f"and({column}.is.null,id.{id_op}.{sale_id})"
        if cursor.descending:
            return f"{column}.not.is.null,{same_block}"
        return same_block

    column_op = "lt" if cursor.descending else "gt"
    value = _quote(cursor.value)
    condition = f"{column}.{column_op}.{value},and({column}.eq.{value},id.{id_op}.{sale_id})"
    if column in NULLABLE_SORT_COLUMNS and not cursor.descending:
        condition += f",{column}.is.null"
    return condition


def _build_query(db: SupabaseClient, plan: QueryPlan, pagination: PaginationOptions) -> Any:
    query = db.table(_SALES_TABLE).select("*")

    if plan.status is not None:
        query = query.eq("status", plan.status.value)

    if plan.date_from is not None:
        query = query.gte("date", to_iso_utc(plan.date_from, name="date_from"))

    if plan.date_to is not None:
        query = query.lte("date", to_iso_utc(plan.date_to, name="date_to"))

    cursor = pagination.cursor
    if cursor is not None:
        if cursor.column != plan.order_by.column or cursor.descending != plan.descending:
            raise ValueError("Pagination cursor does not match the requested ordering")
        query = query.or_(
            keyset_condition(cursor, inclusive=pagination.direction == PageDirection.PREV)
        )

    return (
        query.order(plan.order_by.column, desc=plan.descending, nullsfirst=plan.descending)
        .order("id")
        .limit(pagination.page_size)
    )


def fetch_sales_page(
    db: SupabaseClient,
    filters: SalesQueryFilters,
    pagination: PaginationOptions,
) -> SalesPage:
    """
    Fetch one page of sales.

    Args:
        db: Supabase client
        filters: requested filters and sort
        pagination: page size, optional cursor and direction

    Returns:
        SalesPage with the (possibly narrowed) sales and raw-row cursors

    Raises:
        ValueError: if page_size < 1 or the cursor belongs to another ordering
        RuntimeError / postgrest APIError: on store errors
    """
    if pagination.page_size < 1:
        raise ValueError("page_size must be at least 1")

    plan = plan_sales_query(filters)
    query = _build_query(db, plan, pagination)

    try:
        response = query.execute()
        raise_for_error(response, "query sales")
    except Exception as exc:
        logger.error("Error fetching sales page: %s", exc)
        if "index" in str(exc).lower():
            logger.warning(
                "Sales query may need an index on the requested filter/sort columns",
                extra={"order_by": plan.order_by.column, "status": plan.status},
            )
        raise

    rows = response_rows(response)
    sales: List[Sale] = [row_to_sale(row) for row in rows]

    if plan.complete_in_memory:
        sales = apply_client_filters(sales, filters)
    elif plan.filter_text:
        sales = filter_sales_by_text(sales, filters.text)

    first_cursor = (
        SalesCursor.from_row(rows[0], column=plan.order_by.column, descending=plan.descending)
        if rows
        else None
    )
    last_cursor = (
        SalesCursor.from_row(rows[-1], column=plan.order_by.column, descending=plan.descending)
        if rows
        else None
    )

    return SalesPage(
        sales=sales,
        next_cursor=last_cursor,
        prev_cursor=first_cursor,
        has_next_page=len(rows) == pagination.page_size,
        has_prev_page=pagination.cursor is not None,
    )


def fetch_all_sales_for_export(
    db: SupabaseClient,
    filters: SalesQueryFilters,
    max_rows: int = EXPORT_MAX_ROWS,
) -> List[SaleRow]:
    """
    Collect every sale matching `filters`, up to `max_rows`, as export rows.

    Walks raw pages until one comes back short, so narrowed (or empty) pages
    under in-memory filtering do not stop the walk early. The collected set
    is re-sorted as a whole, since each page was only sorted on its own.
    """
    collected: List[Sale] = []
    cursor: SalesCursor | None = None

    while len(collected) < max_rows:
        page = fetch_sales_page(
            db,
            filters,
            PaginationOptions(
                page_size=min(EXPORT_PAGE_SIZE, max_rows - len(collected)),
                cursor=cursor,
                direction=PageDirection.NEXT,
            ),
        )
        collected.extend(page.sales)

        if not page.has_next_page or page.next_cursor is None:
            break
        cursor = page.next_cursor

    ordered = sort_sales(collected[:max_rows], filters.sort_by, filters.sort_dir)
    return [sale_to_row(sale) for sale in ordered]


__all__ = [
    "EXPORT_PAGE_SIZE",
    "EXPORT_MAX_ROWS",
    "keyset_condition",
    "fetch_sales_page",
    "fetch_all_sales_for_export",
]
