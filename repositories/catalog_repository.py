"""
Catalog repository: products, vendors and lookup lists.

Simple CRUD records. Vendor ids are the slug of the vendor email; product
ids default to the SKU.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Mapping, Optional

from domain.catalog import Product, ReferenceItem, Vendor, VendorRole
from domain.identity import slugify_email
from domain.sale import Currency
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc, utc_now
from repositories.client import Client as SupabaseClient
from repositories.client import raise_for_error, response_rows

_PRODUCTS_TABLE: str = "products"
_VENDORS_TABLE: str = "vendors"

# Lookup collections exposed by list_reference_items
REFERENCE_TABLES: frozenset[str] = frozenset({"sources", "payment_methods", "evidence_types"})


def _row_to_product(row: Mapping[str, Any]) -> Product:
    return Product(
        product_id=str(row["id"]),
        name=str(row.get("name") or ""),
        sku=str(row.get("sku") or row["id"]),
        base_currency=Currency(str(row.get("base_currency") or Currency.USD.value)),
        base_price=Decimal(str(row.get("base_price") or 0)),
        active=bool(row.get("active", False)),
        created_at=parse_utc_datetime(row["created_at"]),
    )


def _row_to_vendor(row: Mapping[str, Any]) -> Vendor:
    return Vendor(
        vendor_id=str(row["id"]),
        name=str(row.get("name") or ""),
        email=str(row.get("email") or ""),
        role=VendorRole(str(row.get("role") or VendorRole.SELLER.value)),
        active=bool(row.get("active", False)),
        created_at=parse_utc_datetime(row["created_at"]),
        position=row.get("position") or None,
        photo_url=row.get("photo_url") or None,
        updated_at=parse_optional_utc_datetime(row.get("updated_at")),
    )


# ============================================================================
# Products
# ============================================================================

def list_products(db: SupabaseClient) -> List[Product]:
    response = db.table(_PRODUCTS_TABLE).select("*").order("name").execute()
    raise_for_error(response, "list products")
    return [_row_to_product(row) for row in response_rows(response)]


def list_active_products(db: SupabaseClient) -> List[Product]:
    response = db.table(_PRODUCTS_TABLE).select("*").eq("active", True).execute()
    raise_for_error(response, "list products")
    return [_row_to_product(row) for row in response_rows(response)]


def get_product_by_id(db: SupabaseClient, product_id: str) -> Optional[Product]:
    response = (
        db.table(_PRODUCTS_TABLE)
        .select("*")
        .eq("id", product_id)
        .limit(1)
        .execute()
    )
    raise_for_error(response, "fetch product")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_product(rows[0])


def create_product(
    db: SupabaseClient,
    name: str,
    sku: str,
    base_currency: Currency,
    base_price: Decimal,
    product_id: Optional[str] = None,
    active: bool = True,
) -> Product:
    product = Product(
        product_id=product_id or sku,
        name=name,
        sku=sku,
        base_currency=base_currency,
        base_price=base_price,
        active=active,
        created_at=utc_now(),
    )
    payload = {
        "id": product.product_id,
        "name": product.name,
        "sku": product.sku,
        "base_currency": product.base_currency.value,
        "base_price": float(product.base_price),
        "active": product.active,
        "created_at": to_iso_utc(product.created_at, name="created_at"),
    }
    response = db.table(_PRODUCTS_TABLE).upsert(payload).execute()
    raise_for_error(response, "create product")
    return product


def set_product_active(db: SupabaseClient, product_id: str, active: bool) -> None:
    response = (
        db.table(_PRODUCTS_TABLE)
        .update({"active": active})
        .eq("id", product_id)
        .execute()
    )
    raise_for_error(response, "update product")


# ============================================================================
# Vendors
# ============================================================================

def list_active_vendors(db: SupabaseClient) -> List[Vendor]:
    response = db.table(_VENDORS_TABLE).select("*").eq("active", True).execute()
    raise_for_error(response, "list vendors")
    return [_row_to_vendor(row) for row in response_rows(response)]


def list_all_vendors(db: SupabaseClient) -> List[Vendor]:
    response = db.table(_VENDORS_TABLE).select("*").order("name").execute()
    raise_for_error(response, "list vendors")
    return [_row_to_vendor(row) for row in response_rows(response)]


def get_vendor_by_id(db: SupabaseClient, vendor_id: str) -> Optional[Vendor]:
    response = (
        db.table(_VENDORS_TABLE)
        .select("*")
        .eq("id", vendor_id)
        .limit(1)
        .execute()
    )
    raise_for_error(response, "fetch vendor")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_vendor(rows[0])


def create_vendor(
    db: SupabaseClient,
    name: str,
    email: str,
    role: VendorRole,
    position: Optional[str] = None,
) -> Vendor:
    """Create (or overwrite) the vendor keyed on the slug of `email`."""
    vendor = Vendor(
        vendor_id=slugify_email(email),
        name=name,
        email=email,
        role=role,
        active=True,
        created_at=utc_now(),
        position=position,
    )
    payload = {
        "id": vendor.vendor_id,
        "name": vendor.name,
        "email": vendor.email,
        "role": vendor.role.value,
        "position": vendor.position,
        "active": True,
        "created_at": to_iso_utc(vendor.created_at, name="created_at"),
    }
    response = db.table(_VENDORS_TABLE).upsert(payload).execute()
    raise_for_error(response, "create vendor")
    return vendor


def _update_vendor_fields(db: SupabaseClient, vendor_id: str, fields: dict[str, Any]) -> None:
    payload = {**fields, "updated_at": to_iso_utc(utc_now(), name="updated_at")}
    response = (
        db.table(_VENDORS_TABLE)
        .update(payload)
        .eq("id", vendor_id)
        .execute()
    )
    raise_for_error(response, "update vendor")


def update_vendor(
    db: SupabaseClient,
    vendor_id: str,
    name: str,
    role: VendorRole,
    position: Optional[str] = None,
) -> None:
    _update_vendor_fields(
        db, vendor_id, {"name": name, "role": role.value, "position": position}
    )


def update_vendor_role(db: SupabaseClient, vendor_id: str, role: VendorRole) -> None:
    _update_vendor_fields(db, vendor_id, {"role": role.value})


def toggle_vendor_status(db: SupabaseClient, vendor_id: str, active: bool) -> None:
    _update_vendor_fields(db, vendor_id, {"active": active})


# ============================================================================
# Lookup lists
# ============================================================================

def list_reference_items(db: SupabaseClient, table: str) -> List[ReferenceItem]:
    """Entries of `sources`, `payment_methods` or `evidence_types`."""
    if table not in REFERENCE_TABLES:
        raise ValueError(f"Unknown reference collection: {table!r}")

    response = db.table(table).select("*").order("name").execute()
    raise_for_error(response, f"list {table}")
    return [
        ReferenceItem(
            item_id=str(row["id"]),
            name=str(row.get("name") or ""),
            created_at=parse_optional_utc_datetime(row.get("created_at")),
        )
        for row in response_rows(response)
    ]


def upsert_reference_item(db: SupabaseClient, table: str, item_id: str, name: str) -> None:
    if table not in REFERENCE_TABLES:
        raise ValueError(f"Unknown reference collection: {table!r}")

    payload = {
        "id": item_id,
        "name": name,
        "created_at": to_iso_utc(utc_now(), name="created_at"),
    }
    response = db.table(table).upsert(payload).execute()
    raise_for_error(response, f"upsert {table}")


__all__ = [
    "REFERENCE_TABLES",
    "list_products",
    "list_active_products",
    "get_product_by_id",
    "create_product",
    "set_product_active",
    "list_active_vendors",
    "list_all_vendors",
    "get_vendor_by_id",
    "create_vendor",
    "update_vendor",
    "update_vendor_role",
    "toggle_vendor_status",
    "list_reference_items",
    "upsert_reference_item",
]
