"""
Tests for `domain/validation.py`.

Covers contract rules:
- Sale values accept only digits, dots and commas and must be > 0.
- The first comma is read as the decimal separator.
- Evidence values are checked against their declared type.
- Validators return results, they never raise for bad input.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from domain.validation import validate_email_format, validate_evidence_value, validate_sale_value


def test_validate_sale_value_accepts_decimal_point() -> None:
    result = validate_sale_value("100.50")

    assert result.is_valid
    assert result.normalized_value == Decimal("100.50")
    assert result.error is None


def test_validate_sale_value_rejects_letters() -> None:
    result = validate_sale_value("abc")

    assert not result.is_valid
    assert result.normalized_value is None
    assert result.error


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("200", Decimal("200")),
        ("3660,22", Decimal("3660.22")),
        ("1,5,0", Decimal("1.5")),
        ("1.234.5", Decimal("1.234")),
        (".5", Decimal(".5")),
    ],
)
def test_validate_sale_value_normalizes_separators(raw: str, expected: Decimal) -> None:
    result = validate_sale_value(raw)

    assert result.is_valid
    assert result.normalized_value == expected


@pytest.mark.parametrize("raw", ["", "   ", "0", "0,0", "$200", "-5", "1e3", ",", "."])
def test_validate_sale_value_rejects(raw: str) -> None:
    assert not validate_sale_value(raw).is_valid


def test_validate_evidence_url() -> None:
    assert not validate_evidence_value("url", "not-a-url").is_valid
    assert validate_evidence_value("url", "https://x.com/y").is_valid


@pytest.mark.parametrize(
    "value, valid",
    [
        ("HP1234", True),
        ("abc1", True),
        ("abc", False),
        ("HP-1234", False),
        ("x" * 64, True),
        ("x" * 65, False),
    ],
)
def test_validate_evidence_transaction_number(value: str, valid: bool) -> None:
    assert validate_evidence_value("transaction_number", value).is_valid is valid


def test_validate_evidence_requires_value_once_type_selected() -> None:
    assert not validate_evidence_value("url", "").is_valid
    assert not validate_evidence_value("other", "   ").is_valid
    assert validate_evidence_value("other", "receipt in drive").is_valid


def test_validate_email_format() -> None:
    assert validate_email_format("ana@x.com").is_valid
    assert not validate_email_format("").is_valid
    assert not validate_email_format("ana@x").is_valid
    assert not validate_email_format("ana x@x.com").is_valid
