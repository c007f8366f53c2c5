"""
Client repository for managing purchasing contacts.

Persistence only: identity-change rules (deactivate old / create new when an
email changes) live in services.client_resolution_service.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence

from domain.client import Client, SaleUser
from domain.identity import slugify_email
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc, utc_now
from repositories.client import Client as SupabaseClient
from repositories.client import raise_for_error, response_rows

_CLIENTS_TABLE: str = "clients"

# Sentinel for "leave this field alone" in partial updates
_UNSET: Any = object()


def _row_to_client(row: Mapping[str, Any]) -> Client:
    """Convert a stored row into a Client."""
    return Client(
        client_id=str(row["id"]),
        name=str(row.get("name") or ""),
        email=str(row["email"]),
        active=bool(row.get("active", False)),
        created_at=parse_utc_datetime(row["created_at"]),
        phone=row.get("phone") or None,
        last_purchase_at=parse_optional_utc_datetime(row.get("last_purchase_at")),
        users=tuple(SaleUser.from_dict(user) for user in (row.get("users") or [])),
    )


def get_client_by_id(db: SupabaseClient, client_id: str) -> Optional[Client]:
    """
    Get a client by id.

    Returns:
        Client domain model or None if not found
    """
    response = (
        db.table(_CLIENTS_TABLE)
        .select("*")
        .eq("id", client_id)
        .limit(1)
        .execute()
    )
    raise_for_error(response, "fetch client")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_client(rows[0])


def get_client_by_email(db: SupabaseClient, email: str) -> Optional[Client]:
    """
    Get a client by exact email.

    Several records can share an email once deactivated records pile up; the
    active one wins, otherwise the most recently created.
    """
    response = db.table(_CLIENTS_TABLE).select("*").eq("email", email).execute()
    raise_for_error(response, "fetch client")

    clients = [_row_to_client(row) for row in response_rows(response)]
    if not clients:
        return None

    for client in clients:
        if client.active:
            return client

    return max(clients, key=lambda c: c.created_at)


def list_active_clients(db: SupabaseClient) -> List[Client]:
    """Active clients, used to pre-fill the sale form."""
    response = db.table(_CLIENTS_TABLE).select("*").eq("active", True).execute()
    raise_for_error(response, "list clients")
    return [_row_to_client(row) for row in response_rows(response)]


def list_all_clients(db: SupabaseClient) -> List[Client]:
    """Every client (active and inactive), ordered by name."""
    response = db.table(_CLIENTS_TABLE).select("*").order("name").execute()
    raise_for_error(response, "list clients")
    return [_row_to_client(row) for row in response_rows(response)]


def create_client(
    db: SupabaseClient,
    name: str,
    email: str,
    phone: Optional[str] = None,
    users: Sequence[SaleUser] = (),
) -> Client:
    """
    Create (or overwrite) the client keyed on the slug of `email`.

    The write is a whole-record upsert that replaces any record under the same
    slug; callers check for one first and use reactivate_client instead.
    """
    client = Client(
        client_id=slugify_email(email),
        name=name,
        email=email,
        active=True,
        created_at=utc_now(),
        phone=phone or None,
        users=tuple(users),
    )

    payload: dict[str, Any] = {
        "id": client.client_id,
        "name": client.name,
        "email": client.email,
        "phone": client.phone,
        "active": True,
        "created_at": to_iso_utc(client.created_at, name="created_at"),
        "users": [user.to_dict() for user in client.users] or None,
    }

    response = db.table(_CLIENTS_TABLE).upsert(payload).execute()
    raise_for_error(response, "create client")
    return client


def update_client(
    db: SupabaseClient,
    client_id: str,
    *,
    name: Any = _UNSET,
    email: Any = _UNSET,
    phone: Any = _UNSET,
    active: Any = _UNSET,
    last_purchase_at: Any = _UNSET,
    users: Any = _UNSET,
) -> None:
    """Partial update; only the keyword arguments actually passed are written."""

    payload: dict[str, Any] = {}
    if name is not _UNSET:
        payload["name"] = name
    if email is not _UNSET:
        payload["email"] = email
    if phone is not _UNSET:
        payload["phone"] = phone
    if active is not _UNSET:
        payload["active"] = bool(active)
    if last_purchase_at is not _UNSET:
        payload["last_purchase_at"] = (
            to_iso_utc(last_purchase_at, name="last_purchase_at")
            if isinstance(last_purchase_at, datetime)
            else None
        )
    if users is not _UNSET:
        payload["users"] = [user.to_dict() for user in users] if users else None

    if not payload:
        return

    response = (
        db.table(_CLIENTS_TABLE)
        .update(payload)
        .eq("id", client_id)
        .execute()
    )
    raise_for_error(response, "update client")


def reactivate_client(
    db: SupabaseClient,
    client: Client,
    name: str,
    email: str,
    phone: Optional[str] = None,
) -> Client:
    """
    Bring an existing record back as the active client for `email`.

    Only contact fields and the active flag are written; created_at, users
    and purchase history stay as stored.
    """
    update_client(db, client.client_id, name=name, email=email, phone=phone or None, active=True)
    return replace(client, name=name, email=email, phone=phone or None, active=True)


def deactivate_client(db: SupabaseClient, client_id: str) -> None:
    update_client(db, client_id, active=False)


def with_contact(client: Client, name: str, phone: Optional[str]) -> Client:
    """Copy of `client` carrying new mutable contact fields."""
    return replace(client, name=name, phone=phone or None)


__all__ = [
    "get_client_by_id",
    "get_client_by_email",
    "list_active_clients",
    "list_all_clients",
    "create_client",
    "update_client",
    "reactivate_client",
    "deactivate_client",
    "with_contact",
]
