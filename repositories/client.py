"""
Supabase client construction.

This module contains *only* the database connection setup. Nothing here is
created at import time: callers build a client with `create_supabase_client`
and pass it to the repository functions, so tests can inject their own.

Environment variables:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
- SALES_RESET_STATUS_ON_RESUBMIT: "1"/"true" to send re-submitted sales back to pending
- LOG_LEVEL: logging level for the API process (default INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

# .env lives at the project root
ENV_PATH = Path(__file__).parent.parent / ".env"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class StoreSettings:
    """Connection and behavior settings read from the environment."""

    supabase_url: str
    supabase_key: str
    reset_status_on_resubmit: bool = False
    log_level: str = "INFO"


def load_settings(env_path: Path | None = ENV_PATH) -> StoreSettings:
    """
    Read settings from the process environment (after loading `.env`).

    Raises:
        RuntimeError: if SUPABASE_URL or SUPABASE_KEY is missing
    """
    if env_path is not None:
        load_dotenv(dotenv_path=env_path)

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")

    if not supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    reset_status = os.getenv("SALES_RESET_STATUS_ON_RESUBMIT", "").strip().lower() in _TRUTHY
    log_level = os.getenv("LOG_LEVEL", "INFO").strip() or "INFO"

    return StoreSettings(
        supabase_url=supabase_url,
        supabase_key=supabase_key,
        reset_status_on_resubmit=reset_status,
        log_level=log_level,
    )


def create_supabase_client(settings: StoreSettings) -> Client:
    """Official Supabase Python client for the configured project."""
    return create_client(settings.supabase_url, settings.supabase_key)


def raise_for_error(response: object, action: str) -> None:
    """Raise RuntimeError when a Supabase response carries an error."""
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")


def response_rows(response: object) -> list[dict]:
    return list(getattr(response, "data", None) or [])


__all__ = [
    "Client",
    "StoreSettings",
    "load_settings",
    "create_supabase_client",
    "raise_for_error",
    "response_rows",
]
