"""
Sale repository (persistence).

This module provides *only* persistence operations for the Sale domain
entity. It does not enforce business rules (review transitions, status
policy on re-submission); it writes what it is given.

Comment appends go through PostgreSQL functions so that concurrent
comments are appended server-side instead of overwriting each other:
- append_sale_comment(p_sale_id, p_comment)
- update_sale_status_with_comment(p_sale_id, p_status, p_comment)
(see sql/schema.sql)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional

from domain.client import SaleUser
from domain.sale import Currency, Sale, SaleComment, SaleStatus, SaleType, comment_from_dict
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc
from repositories.client import Client as SupabaseClient
from repositories.client import raise_for_error, response_rows

# Keep this aligned with sql/schema.sql.
_SALES_TABLE: str = "sales"


def row_to_sale(row: Mapping[str, Any]) -> Sale:
    """Convert a stored row into a Sale."""

    return Sale(
        sale_id=str(row["id"]),
        sale_type=SaleType(str(row.get("type") or SaleType.INDIVIDUAL.value)),
        client_id=str(row["client_id"]),
        customer_name=str(row.get("customer_name") or ""),
        customer_email=str(row["customer_email"]),
        customer_phone=row.get("customer_phone") or None,
        product_id=str(row["product_id"]),
        product_name=str(row.get("product_name") or ""),
        vendor_id=str(row["vendor_id"]),
        vendor_name=str(row.get("vendor_name") or ""),
        amount=Decimal(str(row["amount"])),
        currency=Currency(str(row.get("currency") or Currency.USD.value)),
        # Legacy rows predate usd_amount
        usd_amount=Decimal(str(row["usd_amount"] if row.get("usd_amount") is not None else row["amount"])),
        date=parse_utc_datetime(row["date"]),
        payment_method=str(row.get("payment_method") or ""),
        source=str(row.get("source") or ""),
        week=int(row.get("week") or 0),
        iteration=int(row.get("iteration") or 0),
        evidence_type=row.get("evidence_type") or None,
        evidence_value=row.get("evidence_value") or None,
        status=SaleStatus(str(row.get("status") or SaleStatus.PENDING.value)),
        users=tuple(SaleUser.from_dict(user) for user in (row.get("users") or [])),
        comments=tuple(comment_from_dict(comment) for comment in (row.get("comments") or [])),
        created_by=str(row.get("created_by") or ""),
        created_at=parse_utc_datetime(row["created_at"]),
        updated_at=parse_optional_utc_datetime(row.get("updated_at")),
    )


def sale_to_payload(sale: Sale) -> dict[str, Any]:
    """Full row for a whole-record write. Optional fields absent from the sale are stored as null."""

    return {
        "id": sale.sale_id,
        "type": sale.sale_type.value,
        "client_id": sale.client_id,
        "customer_name": sale.customer_name,
        "customer_email": sale.customer_email,
        "customer_phone": sale.customer_phone,
        "product_id": sale.product_id,
        "product_name": sale.product_name,
        "vendor_id": sale.vendor_id,
        "vendor_name": sale.vendor_name,
        "amount": float(sale.amount),
        "currency": sale.currency.value,
        "usd_amount": float(sale.usd_amount),
        "date": to_iso_utc(sale.date, name="date"),
        "payment_method": sale.payment_method,
        "source": sale.source,
        "week": sale.week,
        "iteration": sale.iteration,
        "evidence_type": sale.evidence_type,
        "evidence_value": sale.evidence_value,
        "status": sale.status.value,
        "users": [user.to_dict() for user in sale.users] or None,
        "comments": [comment.to_dict() for comment in sale.comments] or None,
        "created_by": sale.created_by,
        "created_at": to_iso_utc(sale.created_at, name="created_at"),
        "updated_at": to_iso_utc(sale.updated_at, name="updated_at") if sale.updated_at else None,
    }


def get_sale_by_id(db: SupabaseClient, sale_id: str) -> Optional[Sale]:
    """
    Retrieve a single sale by its id.

    Returns:
        Sale or None if not found
    """

    response = (
        db.table(_SALES_TABLE)
        .select("*")
        .eq("id", sale_id)
        .limit(1)
        .execute()
    )
    raise_for_error(response, "get sale")

    rows = response_rows(response)
    if not rows:
        return None
    return row_to_sale(rows[0])


def save_sale(db: SupabaseClient, sale: Sale, *, keep_comments: bool = False) -> Sale:
    """
    Write the sale row (replace semantics, last write wins).

    With keep_comments the comments column is left out of the upsert, so
    comments appended by the store functions are never overwritten.
    """

    payload = sale_to_payload(sale)
    if keep_comments:
        del payload["comments"]

    response = db.table(_SALES_TABLE).upsert(payload).execute()
    raise_for_error(response, "save sale")
    return sale


def update_sale_status(db: SupabaseClient, sale_id: str, status: SaleStatus) -> None:
    """
    Set the status of a sale.

    Unconditional: transition rules are enforced by services.sale_service.review_sale.
    """

    response = (
        db.table(_SALES_TABLE)
        .update({"status": status.value})
        .eq("id", sale_id)
        .execute()
    )
    raise_for_error(response, "update sale status")


def append_sale_comment(db: SupabaseClient, sale_id: str, comment: SaleComment) -> None:
    """Append one comment to the sale's trail (atomic server-side append)."""

    response = db.rpc(
        "append_sale_comment",
        {"p_sale_id": sale_id, "p_comment": comment.to_dict()},
    ).execute()
    raise_for_error(response, "add sale comment")


def update_sale_status_with_comment(
    db: SupabaseClient,
    sale_id: str,
    status: SaleStatus,
    comment: SaleComment,
) -> None:
    """Set the status and append a comment in a single write."""

    response = db.rpc(
        "update_sale_status_with_comment",
        {
            "p_sale_id": sale_id,
            "p_status": status.value,
            "p_comment": comment.to_dict(),
        },
    ).execute()
    raise_for_error(response, "update sale status with comment")


__all__ = [
    "row_to_sale",
    "sale_to_payload",
    "get_sale_by_id",
    "save_sale",
    "update_sale_status",
    "append_sale_comment",
    "update_sale_status_with_comment",
]
