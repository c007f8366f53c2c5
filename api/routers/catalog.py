"""
Catalog API Endpoints.

Products, vendors and the lookup lists (sources, payment methods, evidence
types) that feed the sale forms. Changes require the admin role.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_current_vendor, get_db, require_admin
from api.models import (
    ProductCreateRequest,
    ProductResponse,
    ProductStatusRequest,
    ReferenceItemResponse,
    VendorCreateRequest,
    VendorResponse,
    VendorUpdateRequest,
)
from domain.catalog import Vendor, VendorRole
from domain.sale import Currency
from domain.validation import validate_email_format
from repositories import catalog_repository
from repositories.client import Client as SupabaseClient

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_role(value: str) -> VendorRole:
    try:
        return VendorRole(value)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid role. Must be 'admin' or 'seller', got '{value}'"
        )


# ============================================================================
# Products
# ============================================================================

@router.get("/products", response_model=List[ProductResponse], summary="List Products")
def list_products(
    active_only: bool = Query(True),
    db: SupabaseClient = Depends(get_db),
    vendor: Vendor = Depends(get_current_vendor),
):
    try:
        if active_only:
            products = catalog_repository.list_active_products(db)
        else:
            products = catalog_repository.list_products(db)
    except Exception as exc:
        logger.exception("Error listing products")
        raise HTTPException(status_code=500, detail=f"Failed to list products: {exc}")

    return [ProductResponse.from_product(product) for product in products]


@router.post("/products", response_model=ProductResponse, status_code=201, summary="Create Product")
def create_product(
    request: ProductCreateRequest,
    db: SupabaseClient = Depends(get_db),
    admin: Vendor = Depends(require_admin),
):
    try:
        currency = Currency(request.base_currency)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unsupported currency: {request.base_currency}")

    try:
        product = catalog_repository.create_product(
            db,
            name=request.name,
            sku=request.sku,
            base_currency=currency,
            base_price=request.base_price,
            product_id=request.id,
        )
    except Exception as exc:
        logger.exception("Error creating product")
        raise HTTPException(status_code=500, detail=f"Failed to create product: {exc}")

    return ProductResponse.from_product(product)


@router.patch("/products/{product_id}", status_code=204, summary="Activate/Deactivate Product")
def set_product_status(
    product_id: str,
    request: ProductStatusRequest,
    db: SupabaseClient = Depends(get_db),
    admin: Vendor = Depends(require_admin),
):
    try:
        if catalog_repository.get_product_by_id(db, product_id) is None:
            raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")
        catalog_repository.set_product_active(db, product_id, request.active)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Error updating product")
        raise HTTPException(status_code=500, detail=f"Failed to update product: {exc}")


# ============================================================================
# Vendors
# ============================================================================

@router.get("/vendors", response_model=List[VendorResponse], summary="List Vendors")
def list_vendors(
    include_inactive: bool = Query(False),
    db: SupabaseClient = Depends(get_db),
    vendor: Vendor = Depends(get_current_vendor),
):
    try:
        if include_inactive:
            vendors = catalog_repository.list_all_vendors(db)
        else:
            vendors = catalog_repository.list_active_vendors(db)
    except Exception as exc:
        logger.exception("Error listing vendors")
        raise HTTPException(status_code=500, detail=f"Failed to list vendors: {exc}")

    return [VendorResponse.from_vendor(v) for v in vendors]


@router.post("/vendors", response_model=VendorResponse, status_code=201, summary="Create Vendor")
def create_vendor(
    request: VendorCreateRequest,
    db: SupabaseClient = Depends(get_db),
    admin: Vendor = Depends(require_admin),
):
    role = _parse_role(request.role)
    email_check = validate_email_format(request.email)
    if not email_check.is_valid:
        raise HTTPException(status_code=422, detail=email_check.error)

    try:
        created = catalog_repository.create_vendor(
            db, request.name, request.email, role, position=request.position
        )
    except Exception as exc:
        logger.exception("Error creating vendor")
        raise HTTPException(status_code=500, detail=f"Failed to create vendor: {exc}")

    return VendorResponse.from_vendor(created)


@router.patch("/vendors/{vendor_id}", response_model=VendorResponse, summary="Update Vendor")
def update_vendor(
    vendor_id: str,
    request: VendorUpdateRequest,
    db: SupabaseClient = Depends(get_db),
    admin: Vendor = Depends(require_admin),
):
    role = _parse_role(request.role) if request.role is not None else None

    try:
        existing = catalog_repository.get_vendor_by_id(db, vendor_id)
        if existing is None:
            raise HTTPException(status_code=404, detail=f"Vendor not found: {vendor_id}")

        if request.name is not None or request.position is not None:
            catalog_repository.update_vendor(
                db,
                vendor_id,
                name=request.name if request.name is not None else existing.name,
                role=role or existing.role,
                position=request.position if request.position is not None else existing.position,
            )
        elif role is not None:
            catalog_repository.update_vendor_role(db, vendor_id, role)

        if request.active is not None:
            catalog_repository.toggle_vendor_status(db, vendor_id, request.active)

        updated = catalog_repository.get_vendor_by_id(db, vendor_id)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Error updating vendor")
        raise HTTPException(status_code=500, detail=f"Failed to update vendor: {exc}")

    return VendorResponse.from_vendor(updated or existing)


# ============================================================================
# Lookup lists
# ============================================================================

@router.get(
    "/reference/{collection}",
    response_model=List[ReferenceItemResponse],
    summary="List Lookup Values",
    description="Entries of `sources`, `payment_methods` or `evidence_types`."
)
def list_reference(
    collection: str,
    db: SupabaseClient = Depends(get_db),
    vendor: Vendor = Depends(get_current_vendor),
):
    if collection not in catalog_repository.REFERENCE_TABLES:
        raise HTTPException(status_code=404, detail=f"Unknown collection: {collection}")

    try:
        items = catalog_repository.list_reference_items(db, collection)
    except Exception as exc:
        logger.exception("Error listing %s", collection)
        raise HTTPException(status_code=500, detail=f"Failed to list {collection}: {exc}")

    return [ReferenceItemResponse.from_item(item) for item in items]
