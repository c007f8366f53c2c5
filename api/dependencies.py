"""
FastAPI dependencies: settings, the database handle, and the acting vendor.

The database handle is built once per process from the environment and
injected into every route, so tests can override `get_db` with a fake.

The acting vendor is identified by the `X-Vendor-Id` header. Its role comes
from the vendor record, never from the request.
"""

from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from domain.catalog import Vendor
from repositories.catalog_repository import get_vendor_by_id
from repositories.client import Client as SupabaseClient
from repositories.client import StoreSettings, create_supabase_client, load_settings


@lru_cache(maxsize=1)
def get_settings() -> StoreSettings:
    return load_settings()


@lru_cache(maxsize=1)
def _client_for(settings: StoreSettings) -> SupabaseClient:
    return create_supabase_client(settings)


def get_db(settings: StoreSettings = Depends(get_settings)) -> SupabaseClient:
    return _client_for(settings)


def get_current_vendor(
    x_vendor_id: str = Header(..., description="Id of the acting vendor"),
    db: SupabaseClient = Depends(get_db),
) -> Vendor:
    """Resolve the acting vendor; unknown or inactive vendors are rejected."""
    vendor = get_vendor_by_id(db, x_vendor_id)
    if vendor is None:
        raise HTTPException(status_code=401, detail=f"Unknown vendor: {x_vendor_id}")
    if not vendor.active:
        raise HTTPException(status_code=403, detail="Vendor is inactive")
    return vendor


def require_admin(vendor: Vendor = Depends(get_current_vendor)) -> Vendor:
    if not vendor.is_admin():
        raise HTTPException(status_code=403, detail="Admin role required")
    return vendor
