"""
Sales API Endpoints.

Listing (filter/sort/cursor pagination), detail, registration, review,
comments, CSV export and the KPI stats of the sales page.

Sellers only ever see and register their own sales; the vendor filter is
forced to their id. Reviewing requires the admin role.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse

from api.dependencies import get_current_vendor, get_db, get_settings, require_admin
from api.models import (
    CommentRequest,
    CommentResponse,
    ReviewRequest,
    SaleCreateRequest,
    SaleCreatedResponse,
    SaleResponse,
    SalesPageResponse,
    SalesStatsResponse,
    ValidationErrorResponse,
)
from domain.catalog import Vendor
from domain.client import SaleUser
from domain.sale import InvalidStatusTransition, SaleStatus
from domain.sales_query import (
    PageDirection,
    PaginationOptions,
    SalesCursor,
    SalesQueryFilters,
    SortableField,
    SortDirection,
)
from repositories.client import Client as SupabaseClient
from repositories.client import StoreSettings
from repositories.sale_repository import get_sale_by_id
from repositories.sales_query_repository import fetch_sales_page
from services.csv_export_service import export_sales_csv
from services.sale_service import (
    ProductNotFound,
    SaleNotFound,
    SaleSubmission,
    add_sale_comment,
    register_sale,
    review_sale,
)
from services.stats_service import get_sales_stats

logger = logging.getLogger(__name__)

router = APIRouter()

EXPORT_FILENAME = "sales_filtered.csv"


def _day_start(value: Optional[date]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _day_end(value: Optional[date]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


def sales_filters(
    text: Optional[str] = Query(None, description="Case-insensitive match on customer name or email"),
    product_id: Optional[str] = Query(None),
    vendor_id: Optional[str] = Query(None, description="Ignored for sellers (always their own id)"),
    status: Optional[SaleStatus] = Query(None),
    date_from: Optional[date] = Query(None, description="First sale day, inclusive (UTC)"),
    date_to: Optional[date] = Query(None, description="Last sale day, inclusive (UTC)"),
    sort_by: SortableField = Query(SortableField.DATE),
    sort_dir: SortDirection = Query(SortDirection.DESC),
    vendor: Vendor = Depends(get_current_vendor),
) -> SalesQueryFilters:
    """Listing filters from the query string, scoped to the acting vendor."""
    return SalesQueryFilters(
        text=text,
        product_id=product_id,
        vendor_id=vendor_id if vendor.is_admin() else vendor.vendor_id,
        status=status,
        date_from=_day_start(date_from),
        date_to=_day_end(date_to),
        sort_by=sort_by,
        sort_dir=sort_dir,
    )


def _unexpected(action: str, exc: Exception) -> HTTPException:
    logger.exception("Unexpected error while trying to %s", action)
    return HTTPException(status_code=500, detail=f"Failed to {action}: {exc}")


@router.get(
    "/sales",
    response_model=SalesPageResponse,
    summary="List Sales",
    description="Filtered, sorted, cursor-paginated sales listing."
)
def list_sales(
    filters: SalesQueryFilters = Depends(sales_filters),
    page_size: int = Query(25, ge=1, le=1000),
    cursor: Optional[str] = Query(None, description="next_cursor or prev_cursor of a previous page"),
    direction: PageDirection = Query(PageDirection.NEXT),
    db: SupabaseClient = Depends(get_db),
):
    """
    Query one page of sales.

    **Paging:** pass the `next_cursor` of a page with `direction=next` to get
    the following page, or its `prev_cursor` with `direction=prev`. Cursors
    are only valid for the ordering they were issued under.

    **Note:** when `has_next_page` is true the next page may still turn out
    empty, since text/product/vendor filters are completed after paging.
    """
    try:
        decoded = SalesCursor.decode(cursor) if cursor else None
        page = fetch_sales_page(
            db,
            filters,
            PaginationOptions(page_size=page_size, cursor=decoded, direction=direction),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise _unexpected("list sales", exc)

    return SalesPageResponse.from_page(page)


@router.get(
    "/sales/stats",
    response_model=SalesStatsResponse,
    summary="Sales KPI Stats",
    description="Pending/approved counts and USD totals. Degrades to zeros on store errors."
)
def sales_stats(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: SupabaseClient = Depends(get_db),
    vendor: Vendor = Depends(get_current_vendor),
):
    stats = get_sales_stats(db, _day_start(date_from), _day_end(date_to))
    return SalesStatsResponse(
        pending_count=stats.pending_count,
        approved_count=stats.approved_count,
        pending_amount=stats.pending_amount,
        approved_amount=stats.approved_amount,
    )


@router.get(
    "/sales/export",
    summary="Export Sales CSV",
    description="Every sale matching the listing filters, as a UTF-8 CSV file."
)
def export_sales(
    filters: SalesQueryFilters = Depends(sales_filters),
    db: SupabaseClient = Depends(get_db),
):
    try:
        content = export_sales_csv(db, filters)
    except Exception as exc:
        raise _unexpected("export sales", exc)

    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.get(
    "/sales/{sale_id}",
    response_model=SaleResponse,
    summary="Get Sale",
)
def get_sale(
    sale_id: str,
    db: SupabaseClient = Depends(get_db),
    vendor: Vendor = Depends(get_current_vendor),
):
    try:
        sale = get_sale_by_id(db, sale_id)
    except Exception as exc:
        raise _unexpected("get sale", exc)

    # Sellers cannot tell other vendors' sales from missing ones
    if sale is None or (not vendor.is_admin() and sale.vendor_id != vendor.vendor_id):
        raise HTTPException(status_code=404, detail=f"Sale not found: {sale_id}")

    return SaleResponse.from_sale(sale)


@router.post(
    "/sales",
    response_model=SaleCreatedResponse,
    status_code=201,
    responses={422: {"model": ValidationErrorResponse}},
    summary="Register Sale",
    description="Validate a sale form, resolve its client and upsert the sale."
)
def create_sale(
    request: SaleCreateRequest,
    db: SupabaseClient = Depends(get_db),
    settings: StoreSettings = Depends(get_settings),
    vendor: Vendor = Depends(get_current_vendor),
):
    """
    Register (or re-submit) a sale.

    The sale id is derived from customer email, sale day and product, so
    submitting the same combination again updates the existing sale instead
    of creating a duplicate.

    **How it works:**
    1. Validates every field; problems come back as 422 `{"errors": {...}}`
    2. Finds, updates or creates the client (an email change retires the old record)
    3. Upserts the sale and stamps the client's last purchase
    """
    submission = SaleSubmission(
        client_name=request.client_name,
        client_email=request.client_email,
        client_phone=request.client_phone,
        selected_client_id=request.selected_client_id,
        product_id=request.product_id,
        sale_value=request.sale_value,
        currency=request.currency,
        usd_value=request.usd_value,
        sale_date=request.sale_date,
        payment_method=request.payment_method,
        source=request.source,
        week=request.week,
        iteration=request.iteration,
        evidence_type=request.evidence_type,
        evidence_value=request.evidence_value,
        users=tuple(SaleUser(name=u.name, email=u.email, phone=u.phone) for u in request.users),
    )

    try:
        registration = register_sale(
            db,
            submission,
            vendor_id=vendor.vendor_id,
            vendor_name=vendor.name,
            reset_status=settings.reset_status_on_resubmit,
        )
    except ProductNotFound as exc:
        raise HTTPException(status_code=404, detail=f"Product not found: {exc}")
    except Exception as exc:
        raise _unexpected("register sale", exc)

    if not registration.is_valid:
        return JSONResponse(status_code=422, content={"errors": registration.errors})

    resolution = registration.resolution
    return SaleCreatedResponse(
        sale=SaleResponse.from_sale(registration.sale),
        client_id=resolution.client.client_id,
        deactivated_client_id=resolution.deactivated_client_id,
    )


@router.post(
    "/sales/{sale_id}/review",
    response_model=SaleResponse,
    summary="Review Sale",
    description="Approve or reject a pending sale (admin only)."
)
def review(
    sale_id: str,
    request: ReviewRequest,
    db: SupabaseClient = Depends(get_db),
    admin: Vendor = Depends(require_admin),
):
    try:
        status = SaleStatus(request.status)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Must be 'approved' or 'rejected', got '{request.status}'"
        )

    try:
        sale = review_sale(
            db,
            sale_id,
            status,
            reviewer_id=admin.vendor_id,
            reviewer_name=admin.name,
            message=request.message,
        )
    except SaleNotFound:
        raise HTTPException(status_code=404, detail=f"Sale not found: {sale_id}")
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception as exc:
        raise _unexpected("review sale", exc)

    return SaleResponse.from_sale(sale)


@router.post(
    "/sales/{sale_id}/comments",
    response_model=CommentResponse,
    status_code=201,
    summary="Comment on Sale",
)
def comment_on_sale(
    sale_id: str,
    request: CommentRequest,
    db: SupabaseClient = Depends(get_db),
    vendor: Vendor = Depends(get_current_vendor),
):
    try:
        sale = get_sale_by_id(db, sale_id)
        if sale is None or (not vendor.is_admin() and sale.vendor_id != vendor.vendor_id):
            raise HTTPException(status_code=404, detail=f"Sale not found: {sale_id}")

        comment = add_sale_comment(db, sale_id, request.message, vendor.vendor_id, vendor.name)
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise _unexpected("comment on sale", exc)

    return CommentResponse.from_comment(comment)
