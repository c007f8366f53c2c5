"""
Domain: input validation for sale submissions (pure).

Validators never raise for bad input. They return a ValidationResult so
callers can render field-level errors next to the offending input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from pydantic import AnyUrl, TypeAdapter, ValidationError

_SALE_VALUE_CHARS = re.compile(r"^[\d.,]+$")
# Leading numeric prefix, the way a lenient float parser reads "1.234.5" as 1.234
_NUMERIC_PREFIX = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_TRANSACTION_NUMBER = re.compile(r"^[a-zA-Z0-9]{4,64}$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_URL_ADAPTER: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    is_valid: bool
    normalized_value: Optional[Decimal] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, normalized_value: Optional[Decimal] = None) -> "ValidationResult":
        return cls(is_valid=True, normalized_value=normalized_value)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error)


def validate_sale_value(value: str) -> ValidationResult:
    """
    Validate a monetary amount typed by a vendor.

    Only digits, dots and commas are accepted. The first comma is read as a
    decimal separator.

    Example:
        validate_sale_value("100.50")  # ok, normalized_value=Decimal("100.50")
        validate_sale_value("abc")     # fail
    """
    if not value or not value.strip():
        return ValidationResult.fail("Sale value is required")

    if not _SALE_VALUE_CHARS.match(value):
        return ValidationResult.fail("Only numbers, dots and commas are allowed")

    normalized = value.replace(",", ".", 1)
    match = _NUMERIC_PREFIX.match(normalized)
    if match is None:
        return ValidationResult.fail("Invalid number format")

    number = Decimal(match.group(0))
    if number <= 0:
        return ValidationResult.fail("Sale value must be greater than 0")

    return ValidationResult.ok(number)


def validate_evidence_value(evidence_type: str, value: str) -> ValidationResult:
    """
    Validate an evidence value against its declared type.

    - url: must be an absolute URL
    - transaction_number: 4-64 alphanumeric characters
    - anything else: any non-blank value
    """
    if not value or not value.strip():
        return ValidationResult.fail("Evidence value is required when a type is selected")

    if evidence_type == "url":
        try:
            _URL_ADAPTER.validate_python(value)
        except ValidationError:
            return ValidationResult.fail("Invalid URL format")
        return ValidationResult.ok()

    if evidence_type == "transaction_number":
        if not _TRANSACTION_NUMBER.match(value):
            return ValidationResult.fail(
                "Transaction number must be 4-64 alphanumeric characters"
            )
        return ValidationResult.ok()

    return ValidationResult.ok()


def validate_email_format(email: str) -> ValidationResult:
    if not email or not email.strip():
        return ValidationResult.fail("Email is required")
    if not _EMAIL.match(email):
        return ValidationResult.fail("Invalid email format")
    return ValidationResult.ok()


__all__ = [
    "ValidationResult",
    "validate_sale_value",
    "validate_evidence_value",
    "validate_email_format",
]
