"""
Client resolution for sale registration.

Decides which client record a submitted sale belongs to:
- no client selected: reuse the active client with that email (or with the
  same email slug), reactivate an inactive one, or create one
- client selected, same email: update name/phone in place when they changed
- client selected, different email: identity change; deactivate the old
  record and take over the new email's slug (reusing a record already there)
- client selected, email differing only in case or punctuation: same record
- client selected but gone: create one

Errors from the store propagate. Callers must not create a sale when
resolution failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from domain.client import Client
from domain.identity import slugify_email
from repositories.client import Client as SupabaseClient
from repositories.client_repository import (
    create_client,
    deactivate_client,
    get_client_by_email,
    get_client_by_id,
    reactivate_client,
    update_client,
    with_contact,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClientResolution:
    """
    Outcome of resolving the customer of a sale.

    deactivated_client_id is set when an email change retired a record, so
    the caller can surface a confirmation or audit message.
    """

    client: Client
    deactivated_client_id: Optional[str] = None


def _claim_slug(
    db: SupabaseClient, name: str, email: str, phone: Optional[str]
) -> Client:
    """
    Active client keyed on the slug of `email`.

    An active record already under that slug is returned unchanged, an
    inactive one is reactivated in place, and only a free slug gets a new
    record.
    """
    current = get_client_by_id(db, slugify_email(email))
    if current is None:
        return create_client(db, name, email, phone)
    if current.is_active():
        return current
    return reactivate_client(db, current, name, email, phone)


def _resolve_by_email(
    db: SupabaseClient, name: str, email: str, phone: Optional[str]
) -> ClientResolution:
    existing = get_client_by_email(db, email)
    if existing is not None and existing.is_active():
        return ClientResolution(client=existing)
    return ClientResolution(client=_claim_slug(db, name, email, phone))


def resolve_client_for_sale(
    db: SupabaseClient,
    selected_client_id: Optional[str],
    name: str,
    email: str,
    phone: Optional[str] = None,
) -> ClientResolution:
    """
    Resolve (find, update or create) the client for a sale.

    Args:
        db: Supabase client
        selected_client_id: id picked in the form, or None for a new customer
        name, email, phone: contact data as submitted

    Returns:
        ClientResolution with the client to attach the sale to

    Example:
        resolution = resolve_client_for_sale(db, None, "Jane Doe", "jane@x.com")
        resolution.client.client_id  # "jane-x-com"
    """
    phone = phone or None

    if not selected_client_id:
        return _resolve_by_email(db, name, email, phone)

    existing = get_client_by_id(db, selected_client_id)
    if existing is None:
        logger.info(
            "Selected client no longer exists, creating a new one",
            extra={"selected_client_id": selected_client_id},
        )
        return ClientResolution(client=_claim_slug(db, name, email, phone))

    if existing.has_email(email):
        if existing.name != name or existing.phone != phone:
            update_client(db, existing.client_id, name=name, phone=phone)
            return ClientResolution(client=with_contact(existing, name, phone))
        return ClientResolution(client=existing)

    # Same slug (case or punctuation only): same identity, kept in place
    if slugify_email(email) == existing.client_id:
        return ClientResolution(client=reactivate_client(db, existing, name, email, phone))

    # Identity change: never rewrite an email in place
    deactivate_client(db, existing.client_id)
    new_client = _claim_slug(db, name, email, phone)

    logger.info(
        "Client email changed, record replaced",
        extra={
            "previous_client_id": existing.client_id,
            "new_client_id": new_client.client_id,
        },
    )
    return ClientResolution(client=new_client, deactivated_client_id=existing.client_id)


__all__ = ["ClientResolution", "resolve_client_for_sale"]
