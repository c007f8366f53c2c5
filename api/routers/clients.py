"""
Clients API Endpoints.

Listing and explicit creation of purchasing contacts. Creating a client with
an email that already has an active record returns that record.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_current_vendor, get_db
from api.models import ClientCreateRequest, ClientResponse
from domain.catalog import Vendor
from domain.validation import validate_email_format
from repositories.client import Client as SupabaseClient
from repositories.client_repository import get_client_by_id, list_active_clients, list_all_clients
from services.client_resolution_service import resolve_client_for_sale

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/clients",
    response_model=List[ClientResponse],
    summary="List Clients",
)
def list_clients(
    include_inactive: bool = Query(False, description="Also return deactivated records"),
    db: SupabaseClient = Depends(get_db),
    vendor: Vendor = Depends(get_current_vendor),
):
    try:
        clients = list_all_clients(db) if include_inactive else list_active_clients(db)
    except Exception as exc:
        logger.exception("Error listing clients")
        raise HTTPException(status_code=500, detail=f"Failed to list clients: {exc}")

    return [ClientResponse.from_client(client) for client in clients]


@router.get(
    "/clients/{client_id}",
    response_model=ClientResponse,
    summary="Get Client",
)
def get_client(
    client_id: str,
    db: SupabaseClient = Depends(get_db),
    vendor: Vendor = Depends(get_current_vendor),
):
    try:
        client = get_client_by_id(db, client_id)
    except Exception as exc:
        logger.exception("Error fetching client")
        raise HTTPException(status_code=500, detail=f"Failed to get client: {exc}")

    if client is None:
        raise HTTPException(status_code=404, detail=f"Client not found: {client_id}")
    return ClientResponse.from_client(client)


@router.post(
    "/clients",
    response_model=ClientResponse,
    status_code=201,
    summary="Create Client",
)
def create_client(
    request: ClientCreateRequest,
    db: SupabaseClient = Depends(get_db),
    vendor: Vendor = Depends(get_current_vendor),
):
    email_check = validate_email_format(request.email)
    if not email_check.is_valid:
        raise HTTPException(status_code=422, detail=email_check.error)

    try:
        resolution = resolve_client_for_sale(db, None, request.name, request.email, request.phone)
    except Exception as exc:
        logger.exception("Error creating client")
        raise HTTPException(status_code=500, detail=f"Failed to create client: {exc}")

    return ClientResponse.from_client(resolution.client)
