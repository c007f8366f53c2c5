"""
Domain: reference entities (vendors, products, lookup lists).

These are plain records. Vendors are keyed by the slug of their email,
products by an app-assigned id (the SKU by default).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .sale import Currency
from .time import require_utc_timestamp


class VendorRole(str, Enum):
    ADMIN = "admin"
    SELLER = "seller"


@dataclass(frozen=True, slots=True)
class Vendor:
    vendor_id: str
    name: str
    email: str
    role: VendorRole
    active: bool
    created_at: datetime

    position: Optional[str] = None
    photo_url: Optional[str] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    def is_admin(self) -> bool:
        return self.role == VendorRole.ADMIN


@dataclass(frozen=True, slots=True)
class Product:
    product_id: str
    name: str
    sku: str
    base_currency: Currency
    base_price: Decimal
    active: bool
    created_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)


@dataclass(frozen=True, slots=True)
class ReferenceItem:
    """Entry of a lookup list (sources, payment methods, evidence types)."""

    item_id: str
    name: str
    created_at: Optional[datetime] = None
