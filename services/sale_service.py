"""
Sale service: idempotent sale upsert, review and comments, and the
registration workflow behind the sale forms.

Upsert contract:
- the sale id is derived from (customer email, sale date, product id), so
  re-submitting the same key updates the existing record
- created_at of an existing record is preserved and updated_at is set
- existing comments are never rewritten: the update leaves the comments
  column out, so appends made since the read are kept
- existing status is preserved unless `reset_status=True`, which sends the
  sale back to pending (every re-submission is then a fresh review request)

Review contract:
- pending -> approved and pending -> rejected are the only transitions
- the repository writes are unconditional; review_sale enforces the rule
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Dict, Optional, Tuple

from domain.client import SaleUser
from domain.identity import comment_id_at, sale_date_iso, sale_id_from
from domain.sale import (
    Currency,
    InvalidStatusTransition,
    Sale,
    SaleComment,
    SaleStatus,
    SaleType,
    can_transition,
)
from domain.time import utc_now
from domain.validation import validate_email_format, validate_evidence_value, validate_sale_value
from repositories import sale_repository
from repositories.catalog_repository import get_product_by_id
from repositories.client import Client as SupabaseClient
from repositories.client_repository import update_client
from services.client_resolution_service import ClientResolution, resolve_client_for_sale

logger = logging.getLogger(__name__)


class SaleNotFound(Exception):
    """Raised when an operation targets a sale id with no record."""


class ProductNotFound(Exception):
    """Raised when a submission references an unknown product."""


@dataclass(frozen=True, slots=True)
class CreateSaleData:
    """Everything needed to compose a sale record."""

    client_id: str
    customer_name: str
    customer_email: str

    product_id: str
    product_name: str

    vendor_id: str
    vendor_name: str

    amount: Decimal
    currency: Currency
    usd_amount: Decimal
    date: datetime

    payment_method: str
    source: str
    week: int
    iteration: int

    customer_phone: Optional[str] = None
    evidence_type: Optional[str] = None
    evidence_value: Optional[str] = None
    sale_type: SaleType = SaleType.INDIVIDUAL
    users: Tuple[SaleUser, ...] = ()
    created_by: Optional[str] = None


def create_sale(db: SupabaseClient, data: CreateSaleData, *, reset_status: bool = False) -> Sale:
    """
    Create or update the sale keyed on (customer email, sale date, product).

    Args:
        db: Supabase client
        data: sale contents
        reset_status: send an existing sale back to pending instead of keeping its status

    Returns:
        The composed Sale, as written

    Example:
        sale = create_sale(db, data)
        sale.sale_id  # "juanc2587-hotmail-com-2025-01-06-chatgpt-live-workshop"
    """
    sale_id = sale_id_from(data.customer_email, sale_date_iso(data.date), data.product_id)
    existing = sale_repository.get_sale_by_id(db, sale_id)
    now = utc_now()

    if existing is None:
        status = SaleStatus.PENDING
        created_at = now
        updated_at = None
        comments: Tuple[SaleComment, ...] = ()
    else:
        status = SaleStatus.PENDING if reset_status else existing.status
        created_at = existing.created_at
        updated_at = now
        comments = existing.comments

    sale = Sale(
        sale_id=sale_id,
        sale_type=data.sale_type,
        client_id=data.client_id,
        customer_name=data.customer_name,
        customer_email=data.customer_email,
        customer_phone=data.customer_phone or None,
        product_id=data.product_id,
        product_name=data.product_name,
        vendor_id=data.vendor_id,
        vendor_name=data.vendor_name,
        amount=data.amount,
        currency=data.currency,
        usd_amount=data.usd_amount,
        date=data.date,
        payment_method=data.payment_method,
        source=data.source,
        week=data.week,
        iteration=data.iteration,
        evidence_type=data.evidence_type or None,
        evidence_value=data.evidence_value or None,
        status=status,
        users=tuple(data.users) if data.sale_type == SaleType.GROUP else (),
        comments=comments,
        created_by=data.created_by or data.vendor_id,
        created_at=created_at,
        updated_at=updated_at,
    )

    sale_repository.save_sale(db, sale, keep_comments=existing is not None)

    if existing is not None:
        logger.info(
            "Sale re-submitted",
            extra={
                "sale_id": sale_id,
                "previous_status": existing.status.value,
                "status": sale.status.value,
            },
        )
    return sale


def update_sale_status(db: SupabaseClient, sale_id: str, status: SaleStatus) -> None:
    """Unconditional status write (no transition check)."""
    sale_repository.update_sale_status(db, sale_id, status)


def new_comment(message: str, created_by: str, created_by_name: str) -> SaleComment:
    now = utc_now()
    return SaleComment(
        comment_id=comment_id_at(now),
        message=message.strip(),
        created_by=created_by,
        created_by_name=created_by_name,
        created_at=now,
    )


def add_sale_comment(
    db: SupabaseClient,
    sale_id: str,
    message: str,
    created_by: str,
    created_by_name: str,
) -> SaleComment:
    """Append a comment to a sale, at any status."""
    if not message or not message.strip():
        raise ValueError("Comment message must not be empty")

    comment = new_comment(message, created_by, created_by_name)
    sale_repository.append_sale_comment(db, sale_id, comment)
    return comment


def update_sale_status_with_comment(
    db: SupabaseClient,
    sale_id: str,
    status: SaleStatus,
    message: str,
    created_by: str,
    created_by_name: str,
) -> SaleComment:
    """Status write and comment append in one atomic call (no transition check)."""
    comment = new_comment(message, created_by, created_by_name)
    sale_repository.update_sale_status_with_comment(db, sale_id, status, comment)
    return comment


def review_sale(
    db: SupabaseClient,
    sale_id: str,
    status: SaleStatus,
    *,
    reviewer_id: str,
    reviewer_name: str,
    message: Optional[str] = None,
) -> Sale:
    """
    Approve or reject a pending sale, optionally with a comment.

    Raises:
        SaleNotFound: if no sale has this id
        InvalidStatusTransition: if the sale is not pending
    """
    sale = sale_repository.get_sale_by_id(db, sale_id)
    if sale is None:
        raise SaleNotFound(sale_id)

    if not can_transition(sale.status, status):
        raise InvalidStatusTransition(sale.status, status)

    if message and message.strip():
        comment = update_sale_status_with_comment(
            db, sale_id, status, message, reviewer_id, reviewer_name
        )
        return replace(sale, status=status, comments=sale.comments + (comment,))

    update_sale_status(db, sale_id, status)
    return replace(sale, status=status)


# ============================================================================
# Registration workflow (sale forms)
# ============================================================================

def get_week_number(value: date) -> int:
    """Week of the year as ceil(days since Jan 1 / 7); Jan 1 itself is week 0."""
    days = (value - date(value.year, 1, 1)).days
    return math.ceil(days / 7)


@dataclass(frozen=True, slots=True)
class SaleSubmission:
    """Raw values of an individual or group sale form."""

    client_name: str
    client_email: str
    product_id: str
    sale_value: str
    currency: str
    sale_date: Optional[date]
    payment_method: str
    source: str
    week: str
    iteration: str

    selected_client_id: Optional[str] = None
    client_phone: Optional[str] = None
    usd_value: Optional[str] = None
    evidence_type: Optional[str] = None
    evidence_value: Optional[str] = None
    users: Tuple[SaleUser, ...] = ()


@dataclass(frozen=True, slots=True)
class SaleRegistration:
    """Result of register_sale: either field errors, or the written sale."""

    errors: Dict[str, str] = field(default_factory=dict)
    sale: Optional[Sale] = None
    resolution: Optional[ClientResolution] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _is_int(value: str) -> bool:
    try:
        int(value)
    except (TypeError, ValueError):
        return False
    return True


def validate_sale_submission(submission: SaleSubmission) -> Dict[str, str]:
    """Field-level errors for a submission (empty dict when valid)."""

    errors: Dict[str, str] = {}

    if not submission.client_name.strip():
        errors["client_name"] = "Client name is required"

    email_check = validate_email_format(submission.client_email)
    if not email_check.is_valid:
        errors["client_email"] = email_check.error or "Invalid email"

    if not submission.product_id:
        errors["product_id"] = "Product is required"

    value_check = validate_sale_value(submission.sale_value)
    if not value_check.is_valid:
        errors["sale_value"] = value_check.error or "Invalid sale value"

    if submission.currency not in {c.value for c in Currency}:
        errors["currency"] = "Currency is required"
    elif submission.currency != Currency.USD.value:
        if not submission.usd_value or not submission.usd_value.strip():
            errors["usd_value"] = "USD value is required when the currency is not USD"
        elif not validate_sale_value(submission.usd_value).is_valid:
            errors["usd_value"] = "USD value must be a valid number"

    if submission.sale_date is None:
        errors["sale_date"] = "Sale date is required"

    if not submission.payment_method:
        errors["payment_method"] = "Payment method is required"

    if not submission.source:
        errors["source"] = "Source is required"

    if not _is_int(submission.week):
        errors["week"] = "Week must be a valid number"

    if not _is_int(submission.iteration):
        errors["iteration"] = "Iteration must be a valid number"

    if submission.evidence_type:
        evidence_check = validate_evidence_value(
            submission.evidence_type, submission.evidence_value or ""
        )
        if not evidence_check.is_valid:
            errors["evidence_value"] = evidence_check.error or "Invalid evidence"

    for index, user in enumerate(submission.users):
        if not user.name.strip():
            errors[f"users.{index}.name"] = "Participant name is required"
        if not validate_email_format(user.email).is_valid:
            errors[f"users.{index}.email"] = "Invalid participant email"

    return errors


def register_sale(
    db: SupabaseClient,
    submission: SaleSubmission,
    *,
    vendor_id: str,
    vendor_name: str,
    reset_status: bool = False,
) -> SaleRegistration:
    """
    Validate a form submission, resolve its client and upsert the sale.

    Validation problems come back as `errors` without touching the store.
    Store errors propagate; nothing is written for the sale when client
    resolution fails.

    Raises:
        ProductNotFound: if the product id does not exist
    """
    errors = validate_sale_submission(submission)
    if errors:
        return SaleRegistration(errors=errors)

    product = get_product_by_id(db, submission.product_id)
    if product is None:
        raise ProductNotFound(submission.product_id)

    resolution = resolve_client_for_sale(
        db,
        submission.selected_client_id,
        submission.client_name,
        submission.client_email,
        submission.client_phone,
    )
    client = resolution.client

    amount = validate_sale_value(submission.sale_value).normalized_value
    currency = Currency(submission.currency)
    if currency == Currency.USD:
        usd_amount = amount
    else:
        usd_amount = validate_sale_value(submission.usd_value or "").normalized_value

    # Form dates carry no time of day; midnight UTC keeps the calendar day
    sale_moment = datetime.combine(submission.sale_date, time.min, tzinfo=timezone.utc)
    sale_type = SaleType.GROUP if submission.users else SaleType.INDIVIDUAL

    sale = create_sale(
        db,
        CreateSaleData(
            client_id=client.client_id,
            customer_name=client.name,
            customer_email=client.email,
            customer_phone=client.phone,
            product_id=product.product_id,
            product_name=product.name,
            vendor_id=vendor_id,
            vendor_name=vendor_name,
            amount=amount,
            currency=currency,
            usd_amount=usd_amount,
            date=sale_moment,
            payment_method=submission.payment_method,
            source=submission.source,
            week=int(submission.week),
            iteration=int(submission.iteration),
            evidence_type=submission.evidence_type,
            evidence_value=submission.evidence_value,
            sale_type=sale_type,
            users=submission.users,
            created_by=vendor_id,
        ),
        reset_status=reset_status,
    )

    if sale_type == SaleType.GROUP:
        update_client(db, client.client_id, last_purchase_at=sale_moment, users=submission.users)
    else:
        update_client(db, client.client_id, last_purchase_at=sale_moment)

    return SaleRegistration(sale=sale, resolution=resolution)


__all__ = [
    "SaleNotFound",
    "ProductNotFound",
    "CreateSaleData",
    "create_sale",
    "update_sale_status",
    "add_sale_comment",
    "update_sale_status_with_comment",
    "review_sale",
    "get_week_number",
    "SaleSubmission",
    "SaleRegistration",
    "validate_sale_submission",
    "register_sale",
]
