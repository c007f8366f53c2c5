"""
Tests for `domain/sales_query.py` and `repositories/sales_query_repository.py`.

Covers contract rules:
- Without store filters the requested sort is pushed to the store.
- A status-only filter sorted by status is pushed as a whole.
- Any other filter degrades to a date-ordered store query; every filter and
  the requested sort are then applied in memory, whatever the raw order was.
- "Has next page" reflects the raw page only (a filtered page may under-fill).
- Cursors are keyed on (sort column, id) so ties never repeat or skip rows,
  and are rejected under a different ordering.
- Rows without usd_amount sit where Postgres puts NULLs and stay reachable
  by cursor in both directions.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from domain.sale import SaleStatus
from domain.sales_query import (
    PageDirection,
    PaginationOptions,
    SalesCursor,
    SalesQueryFilters,
    SortableField,
    SortDirection,
    apply_client_filters,
    plan_sales_query,
    sort_sales,
)
from fake_supabase import make_sale_row
from repositories.sale_repository import row_to_sale
from repositories.sales_query_repository import fetch_sales_page, keyset_condition


def _seed(db, rows) -> None:
    db.seed("sales", rows)


# ============================================================================
# Query planning
# ============================================================================

def test_plan_without_store_filters_pushes_requested_sort() -> None:
    plan = plan_sales_query(
        SalesQueryFilters(sort_by=SortableField.CUSTOMER_NAME, sort_dir=SortDirection.ASC)
    )

    assert plan.order_by == SortableField.CUSTOMER_NAME
    assert plan.descending is False
    assert plan.complete_in_memory is False
    assert plan.filter_text is False


def test_plan_text_only_still_pushes_sort_and_filters_text_in_memory() -> None:
    plan = plan_sales_query(SalesQueryFilters(text="ana", sort_by=SortableField.USD_AMOUNT))

    assert plan.order_by == SortableField.USD_AMOUNT
    assert plan.filter_text is True
    assert plan.complete_in_memory is False


def test_plan_status_only_sorted_by_status_pushes_both() -> None:
    plan = plan_sales_query(
        SalesQueryFilters(status=SaleStatus.APPROVED, sort_by=SortableField.STATUS)
    )

    assert plan.order_by == SortableField.STATUS
    assert plan.status == SaleStatus.APPROVED
    assert plan.complete_in_memory is False


@pytest.mark.parametrize(
    "filters",
    [
        SalesQueryFilters(status=SaleStatus.APPROVED, sort_by=SortableField.CUSTOMER_NAME),
        SalesQueryFilters(vendor_id="v1", sort_by=SortableField.CUSTOMER_NAME),
        SalesQueryFilters(product_id="p1"),
        SalesQueryFilters(
            status=SaleStatus.PENDING,
            vendor_id="v1",
            sort_by=SortableField.STATUS,
        ),
    ],
)
def test_plan_degrades_to_date_order_with_in_memory_completion(filters: SalesQueryFilters) -> None:
    plan = plan_sales_query(filters)

    assert plan.order_by == SortableField.DATE
    assert plan.descending is True
    assert plan.status is None
    assert plan.complete_in_memory is True


def test_plan_degraded_keeps_date_range_at_store_level() -> None:
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    end = datetime(2025, 1, 31, 23, 59, 59, tzinfo=timezone.utc)

    plan = plan_sales_query(SalesQueryFilters(vendor_id="v1", date_from=start, date_to=end))

    assert plan.date_from == start
    assert plan.date_to == end


# ============================================================================
# In-memory completion
# ============================================================================

def test_sort_sales_breaks_ties_by_ascending_id() -> None:
    sales = [
        row_to_sale(make_sale_row("zoe@x.com", "2025-01-05", customer_name="Same")),
        row_to_sale(make_sale_row("adam@x.com", "2025-01-05", customer_name="Same")),
        row_to_sale(make_sale_row("mia@x.com", "2025-01-05", customer_name="Same")),
    ]

    for direction in SortDirection:
        ordered = sort_sales(sales, SortableField.CUSTOMER_NAME, direction)
        assert [s.customer_email for s in ordered] == ["adam@x.com", "mia@x.com", "zoe@x.com"]


def test_sort_sales_text_fields_ignore_case() -> None:
    sales = [
        row_to_sale(make_sale_row("b@x.com", "2025-01-05", customer_name="bruno")),
        row_to_sale(make_sale_row("a@x.com", "2025-01-05", customer_name="Alba")),
        row_to_sale(make_sale_row("c@x.com", "2025-01-05", customer_name="Carla")),
    ]

    ordered = sort_sales(sales, SortableField.CUSTOMER_NAME, SortDirection.ASC)

    assert [s.customer_name for s in ordered] == ["Alba", "bruno", "Carla"]


def test_apply_client_filters_matches_every_filter() -> None:
    sales = [
        row_to_sale(make_sale_row("ana@x.com", "2025-01-05", vendor_id="v1", status="approved")),
        row_to_sale(make_sale_row("ana@x.com", "2025-01-06", vendor_id="v2", status="approved")),
        row_to_sale(make_sale_row("bob@x.com", "2025-01-07", vendor_id="v1", status="pending")),
        row_to_sale(make_sale_row("anabel@x.com", "2025-02-01", vendor_id="v1", status="approved")),
    ]
    filters = SalesQueryFilters(
        text="ANA",
        vendor_id="v1",
        status=SaleStatus.APPROVED,
        date_to=datetime(2025, 1, 31, 23, 59, 59, tzinfo=timezone.utc),
    )

    result = apply_client_filters(sales, filters)

    assert [s.sale_id for s in result] == [sales[0].sale_id]


# ============================================================================
# Cursors
# ============================================================================

def test_keyset_condition_descending_exclusive() -> None:
    cursor = SalesCursor(column="date", descending=True, value="2025-01-06T00:00:00+00:00", sale_id="s1")

    assert keyset_condition(cursor, inclusive=False) == (
        'date.lt."2025-01-06T00:00:00+00:00",'
        'and(date.eq."2025-01-06T00:00:00+00:00",id.gt."s1")'
    )


def test_keyset_condition_ascending_inclusive_quotes_values() -> None:
    cursor = SalesCursor(column="customer_name", descending=False, value='O"Brien, Ana', sale_id="s1")

    assert keyset_condition(cursor, inclusive=True) == (
        'customer_name.gt."O\\"Brien, Ana",'
        'and(customer_name.eq."O\\"Brien, Ana",id.gte."s1")'
    )


def test_cursor_encode_decode() -> None:
    cursor = SalesCursor(column="usd_amount", descending=False, value=200.5, sale_id="s1")

    assert SalesCursor.decode(cursor.encode()) == cursor


@pytest.mark.parametrize("token", ["", "not-base64!!", "eyJmb28iOjF9"])
def test_cursor_decode_rejects_garbage(token: str) -> None:
    with pytest.raises(ValueError):
        SalesCursor.decode(token)


# ============================================================================
# fetch_sales_page
# ============================================================================

def test_vendor_filter_sorted_by_customer_name_is_resorted_in_memory(db) -> None:
    """Store query orders by date; the page still comes back by customer name."""

    _seed(
        db,
        [
            make_sale_row("zoe@x.com", "2025-01-09", customer_name="Zoe", vendor_id="v1"),
            make_sale_row("carla@x.com", "2025-01-08", customer_name="Carla", vendor_id="v2"),
            make_sale_row("mario@x.com", "2025-01-07", customer_name="Mario", vendor_id="v1"),
            make_sale_row("alba@x.com", "2025-01-06", customer_name="Alba", vendor_id="v1"),
            make_sale_row("bruno@x.com", "2025-01-05", customer_name="Bruno", vendor_id="v2"),
        ],
    )

    page = fetch_sales_page(
        db,
        SalesQueryFilters(
            vendor_id="v1",
            sort_by=SortableField.CUSTOMER_NAME,
            sort_dir=SortDirection.ASC,
        ),
        PaginationOptions(page_size=50),
    )

    assert [s.customer_name for s in page.sales] == ["Alba", "Mario", "Zoe"]
    assert {s.vendor_id for s in page.sales} == {"v1"}
    assert db.queries[-1].orders == [("date", True), ("id", False)]


def test_filtered_page_can_underfill_while_reporting_next_page(db) -> None:
    _seed(
        db,
        [
            make_sale_row("a@x.com", "2025-01-09", vendor_id="v1"),
            make_sale_row("b@x.com", "2025-01-08", vendor_id="v2"),
            make_sale_row("c@x.com", "2025-01-07", vendor_id="v2"),
        ],
    )

    page = fetch_sales_page(
        db,
        SalesQueryFilters(vendor_id="v1"),
        PaginationOptions(page_size=2),
    )

    assert len(page.sales) == 1
    assert page.has_next_page is True

    following = fetch_sales_page(
        db,
        SalesQueryFilters(vendor_id="v1"),
        PaginationOptions(page_size=2, cursor=page.next_cursor),
    )

    assert following.sales == []
    assert following.has_next_page is False


def test_cursor_pagination_walks_every_row_once(db) -> None:
    _seed(db, [make_sale_row(f"c{i}@x.com", f"2025-01-0{i}") for i in range(1, 6)])
    filters = SalesQueryFilters()

    seen = []
    cursor = None
    for _ in range(5):
        page = fetch_sales_page(db, filters, PaginationOptions(page_size=2, cursor=cursor))
        seen.extend(s.customer_email for s in page.sales)
        if not page.has_next_page:
            break
        cursor = page.next_cursor

    assert seen == [f"c{i}@x.com" for i in range(5, 0, -1)]


def test_cursor_pagination_never_repeats_rows_with_equal_sort_values(db) -> None:
    _seed(db, [make_sale_row(f"{name}@x.com", "2025-01-06") for name in ("ana", "bea", "cai")])

    first = fetch_sales_page(db, SalesQueryFilters(), PaginationOptions(page_size=2))
    second = fetch_sales_page(
        db, SalesQueryFilters(), PaginationOptions(page_size=2, cursor=first.next_cursor)
    )

    ids = [s.sale_id for s in first.sales + second.sales]
    assert len(ids) == len(set(ids)) == 3
    assert second.has_prev_page is True
    assert first.has_prev_page is False


def test_prev_cursor_starts_at_first_row_of_page(db) -> None:
    _seed(db, [make_sale_row(f"c{i}@x.com", f"2025-01-0{i}") for i in range(1, 6)])

    first = fetch_sales_page(db, SalesQueryFilters(), PaginationOptions(page_size=2))
    second = fetch_sales_page(
        db, SalesQueryFilters(), PaginationOptions(page_size=2, cursor=first.next_cursor)
    )
    replay = fetch_sales_page(
        db,
        SalesQueryFilters(),
        PaginationOptions(page_size=2, cursor=second.prev_cursor, direction=PageDirection.PREV),
    )

    assert [s.sale_id for s in replay.sales] == [s.sale_id for s in second.sales]


def test_status_filter_sorted_by_status_is_pushed(db) -> None:
    _seed(
        db,
        [
            make_sale_row("a@x.com", "2025-01-09", status="approved"),
            make_sale_row("b@x.com", "2025-01-08", status="pending"),
            make_sale_row("c@x.com", "2025-01-07", status="approved"),
        ],
    )

    page = fetch_sales_page(
        db,
        SalesQueryFilters(status=SaleStatus.APPROVED, sort_by=SortableField.STATUS),
        PaginationOptions(page_size=10),
    )

    assert {s.status for s in page.sales} == {SaleStatus.APPROVED}
    assert len(page.sales) == 2
    assert db.queries[-1].orders == [("status", True), ("id", False)]


def test_sort_by_usd_amount_pages_numerically(db) -> None:
    _seed(
        db,
        [
            make_sale_row("a@x.com", "2025-01-09", usd_amount=90.0),
            make_sale_row("b@x.com", "2025-01-08", usd_amount=1000.0),
            make_sale_row("c@x.com", "2025-01-07", usd_amount=200.0),
        ],
    )
    filters = SalesQueryFilters(sort_by=SortableField.USD_AMOUNT, sort_dir=SortDirection.ASC)

    first = fetch_sales_page(db, filters, PaginationOptions(page_size=2))
    second = fetch_sales_page(db, filters, PaginationOptions(page_size=2, cursor=first.next_cursor))

    amounts = [int(s.usd_amount) for s in first.sales + second.sales]
    assert amounts == [90, 200, 1000]


def test_keyset_condition_null_cursor_value() -> None:
    descending = SalesCursor(column="usd_amount", descending=True, value=None, sale_id="s1")
    ascending = SalesCursor(column="usd_amount", descending=False, value=None, sale_id="s1")

    assert keyset_condition(descending, inclusive=False) == (
        'usd_amount.not.is.null,and(usd_amount.is.null,id.gt."s1")'
    )
    assert keyset_condition(ascending, inclusive=True) == 'and(usd_amount.is.null,id.gte."s1")'


def test_keyset_condition_ascending_keeps_null_rows_reachable() -> None:
    cursor = SalesCursor(column="usd_amount", descending=False, value=90.0, sale_id="s1")

    assert keyset_condition(cursor, inclusive=False).endswith(",usd_amount.is.null")


def test_keyset_condition_null_value_on_required_column_raises() -> None:
    cursor = SalesCursor(column="date", descending=True, value=None, sale_id="s1")

    with pytest.raises(ValueError):
        keyset_condition(cursor, inclusive=False)


def _walk(db, filters: SalesQueryFilters) -> list:
    emails = []
    cursor = None
    while True:
        page = fetch_sales_page(db, filters, PaginationOptions(page_size=1, cursor=cursor))
        emails.extend(s.customer_email for s in page.sales)
        if not page.has_next_page:
            return emails
        cursor = page.next_cursor


@pytest.mark.parametrize(
    "sort_dir, expected",
    [
        (SortDirection.DESC, ["legacy@x.com", "b@x.com", "a@x.com"]),
        (SortDirection.ASC, ["a@x.com", "b@x.com", "legacy@x.com"]),
    ],
)
def test_usd_amount_paging_includes_rows_without_usd_amount(db, sort_dir, expected) -> None:
    """Legacy rows with no usd_amount sort where Postgres puts NULLs and are never skipped."""
    _seed(
        db,
        [
            make_sale_row("a@x.com", "2025-01-09", usd_amount=90.0),
            make_sale_row("b@x.com", "2025-01-08", usd_amount=200.0),
            make_sale_row("legacy@x.com", "2025-01-07", usd_amount=None, amount=50.0),
        ],
    )

    emails = _walk(db, SalesQueryFilters(sort_by=SortableField.USD_AMOUNT, sort_dir=sort_dir))

    assert emails == expected


def test_cursor_from_another_ordering_is_rejected(db) -> None:
    _seed(db, [make_sale_row(f"c{i}@x.com", f"2025-01-0{i}") for i in range(1, 4)])
    first = fetch_sales_page(db, SalesQueryFilters(), PaginationOptions(page_size=2))

    with pytest.raises(ValueError):
        fetch_sales_page(
            db,
            SalesQueryFilters(sort_by=SortableField.CUSTOMER_NAME),
            PaginationOptions(page_size=2, cursor=first.next_cursor),
        )


def test_page_size_must_be_positive(db) -> None:
    with pytest.raises(ValueError):
        fetch_sales_page(db, SalesQueryFilters(), PaginationOptions(page_size=0))


def test_store_errors_propagate(db) -> None:
    db.failing_tables.add("sales")

    with pytest.raises(RuntimeError):
        fetch_sales_page(db, SalesQueryFilters(), PaginationOptions(page_size=10))
