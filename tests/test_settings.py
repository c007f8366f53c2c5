"""
Tests for `repositories/client.py` settings loading.

Covers contract rules:
- SUPABASE_URL and SUPABASE_KEY are required.
- The status-reset policy is off unless explicitly enabled.
"""

from __future__ import annotations

import pytest

from repositories.client import load_settings, raise_for_error, response_rows


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "anon-key")
    monkeypatch.delenv("SALES_RESET_STATUS_ON_RESUBMIT", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    return monkeypatch


def test_load_settings_defaults(env) -> None:
    settings = load_settings(env_path=None)

    assert settings.supabase_url == "https://example.supabase.co"
    assert settings.supabase_key == "anon-key"
    assert settings.reset_status_on_resubmit is False
    assert settings.log_level == "INFO"


@pytest.mark.parametrize("value, expected", [("1", True), ("true", True), ("YES", True), ("0", False), ("", False)])
def test_load_settings_reset_flag(env, value: str, expected: bool) -> None:
    env.setenv("SALES_RESET_STATUS_ON_RESUBMIT", value)

    assert load_settings(env_path=None).reset_status_on_resubmit is expected


@pytest.mark.parametrize("missing", ["SUPABASE_URL", "SUPABASE_KEY"])
def test_load_settings_requires_credentials(env, missing: str) -> None:
    env.delenv(missing)

    with pytest.raises(RuntimeError, match=missing):
        load_settings(env_path=None)


def test_raise_for_error() -> None:
    class Response:
        data = [{"id": "a"}]
        error = "permission denied"

    with pytest.raises(RuntimeError, match="permission denied"):
        raise_for_error(Response(), "list sales")

    assert response_rows(Response()) == [{"id": "a"}]
