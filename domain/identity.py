"""
Domain: deterministic entity identity (pure).

Client and vendor ids are slugs of their email address; sale ids combine the
customer's email slug, the sale's calendar date and the product id, so that
re-submitting the same (customer, day, product) lands on the same record.

Two emails that differ only in characters replaced by the slug (e.g.
"a+b@x.com" vs "a-b@x.com") map to the same id. This is accepted.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone

_DISALLOWED = re.compile(r"[^a-z0-9@.]")
_SEPARATORS = re.compile(r"[@.]")
_DASH_RUNS = re.compile(r"-+")


def slugify_email(email: str) -> str:
    """
    Derive an id-safe slug from an email address.

    Example:
        slugify_email("Juan.C@Hotmail.com")  # "juan-c-hotmail-com"
    """
    slug = _DISALLOWED.sub("-", email.lower())
    slug = _SEPARATORS.sub("-", slug)
    slug = _DASH_RUNS.sub("-", slug)
    return slug.strip("-")


def sale_date_iso(value: date | datetime) -> str:
    """
    Calendar date (YYYY-MM-DD) a sale is keyed on.

    Datetimes are converted to UTC first and the time of day is discarded.
    Naive datetimes are taken as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    return value.isoformat()


def sale_id_from(customer_email: str, date_iso: str, product_id: str) -> str:
    """
    Build the deterministic sale id.

    Example:
        sale_id_from("juanc2587@hotmail.com", "2025-01-06", "chatgpt-live-workshop")
        # "juanc2587-hotmail-com-2025-01-06-chatgpt-live-workshop"
    """
    return f"{slugify_email(customer_email)}-{date_iso}-{product_id}"


def comment_id_at(moment: datetime) -> str:
    """
    Comment ids are ``comment_<epoch-ms>`` of their creation time.

    Two comments created in the same millisecond share an id. Both are still
    stored, since appends never look comments up by id, so ids are labels
    rather than keys.
    """
    return f"comment_{int(moment.timestamp() * 1000)}"


__all__ = [
    "slugify_email",
    "sale_date_iso",
    "sale_id_from",
    "comment_id_at",
]
