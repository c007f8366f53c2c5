"""
Domain: Sale records.

Contract excerpts relevant here:
- The same (customer_email, sale date, product_id) triple always maps to the
  same sale id; re-submitting updates rather than duplicates.
- created_at is preserved across updates; updated_at is only set on update.
- Status starts as pending and only moves pending -> approved or
  pending -> rejected through review.
- Comments are append-only.

This module captures sale records and the review state machine. Persistence
lives in repositories.sale_repository.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from .client import SaleUser
from .time import parse_utc_datetime, require_utc_timestamp


class SaleStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SaleType(str, Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"


class Currency(str, Enum):
    USD = "USD"
    MXN = "MXN"
    COP = "COP"


# Review transitions exposed to admins. approved/rejected are terminal.
_ALLOWED_TRANSITIONS: dict[SaleStatus, frozenset[SaleStatus]] = {
    SaleStatus.PENDING: frozenset({SaleStatus.APPROVED, SaleStatus.REJECTED}),
    SaleStatus.APPROVED: frozenset(),
    SaleStatus.REJECTED: frozenset(),
}


class InvalidStatusTransition(Exception):
    """Raised when a review asks for a transition the state machine forbids."""

    def __init__(self, current: SaleStatus, requested: SaleStatus) -> None:
        super().__init__(
            f"Cannot change sale status from '{current.value}' to '{requested.value}'"
        )
        self.current = current
        self.requested = requested


def can_transition(current: SaleStatus, requested: SaleStatus) -> bool:
    return requested in _ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True, slots=True)
class SaleComment:
    """Single entry of a sale's comment trail."""

    comment_id: str
    message: str
    created_by: str
    created_by_name: str
    created_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.comment_id,
            "message": self.message,
            "created_by": self.created_by,
            "created_by_name": self.created_by_name,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class Sale:
    """
    Sale record with denormalized client, product and vendor snapshots.

    amount/currency is what the customer paid; usd_amount is the
    currency-normalized value every aggregation uses.
    """

    sale_id: str
    sale_type: SaleType

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

    status: SaleStatus
    created_by: str
    created_at: datetime

    customer_phone: Optional[str] = None
    evidence_type: Optional[str] = None
    evidence_value: Optional[str] = None
    users: tuple[SaleUser, ...] = ()
    comments: tuple[SaleComment, ...] = ()
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("date", self.date)
        require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    def is_pending(self) -> bool:
        return self.status == SaleStatus.PENDING


def comment_from_dict(data: Mapping[str, Any]) -> SaleComment:
    return SaleComment(
        comment_id=str(data["id"]),
        message=str(data.get("message") or ""),
        created_by=str(data.get("created_by") or ""),
        created_by_name=str(data.get("created_by_name") or ""),
        created_at=parse_utc_datetime(data["created_at"]),
    )
