"""
Domain: Client (purchasing contact).

A client is keyed by the slug of its email. Email is never changed in place:
a new email means a new client record, and the old one is deactivated.
Clients are never hard-deleted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from .identity import slugify_email
from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class SaleUser:
    """Participant of a group sale."""

    name: str
    email: str
    phone: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "email": self.email}
        if self.phone:
            payload["phone"] = self.phone
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SaleUser":
        return cls(
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            phone=data.get("phone") or None,
        )


@dataclass(frozen=True, slots=True)
class Client:
    """
    Client record with activation tracking.

    Invariants:
    - client_id == slugify_email(email) for records created by this system
    - at most one *active* client per email
    """

    client_id: str
    name: str
    email: str
    active: bool
    created_at: datetime

    phone: Optional[str] = None
    last_purchase_at: Optional[datetime] = None
    users: tuple[SaleUser, ...] = ()

    def __post_init__(self) -> None:
        """Validate timestamps are UTC-aware."""
        require_utc_timestamp("created_at", self.created_at)
        if self.last_purchase_at is not None:
            require_utc_timestamp("last_purchase_at", self.last_purchase_at)

    def is_active(self) -> bool:
        return self.active

    def has_email(self, email: str) -> bool:
        """Stored email comparison used for identity-change detection (exact match)."""
        return self.email == email

    @staticmethod
    def id_for(email: str) -> str:
        return slugify_email(email)
