"""
CSV export service for the sales listing.

Generates the "filtered sales" CSV: the rows currently matching the listing
filters, in a fixed column order that spreadsheets downstream rely on:

    customerName, customerEmail, productName, vendorName,
    saleDateISO, paymentMethod, amountUsd, status

Security:
- CSV Injection Prevention: Sanitizes text fields to prevent formula execution
- Security Logging: Logs when dangerous characters are stripped
"""

from __future__ import annotations

import csv
import logging
from io import StringIO
from typing import Iterable, List

from domain.sales_query import SaleRow, SalesQueryFilters
from repositories.client import Client as SupabaseClient
from repositories.sales_query_repository import EXPORT_MAX_ROWS, fetch_all_sales_for_export

logger = logging.getLogger(__name__)

CSV_COLUMNS: List[str] = [
    "customerName",
    "customerEmail",
    "productName",
    "vendorName",
    "saleDateISO",
    "paymentMethod",
    "amountUsd",
    "status",
]

# Byte order mark so spreadsheet apps detect UTF-8 (accented customer names)
UTF8_BOM = "\ufeff"


def sanitize_csv_field(value: str | None, field_name: str = "unknown") -> str:
    """
    Sanitize field to prevent CSV injection attacks with security logging.

    Strips leading characters that can trigger formula execution in Excel/Sheets:
    =, +, -, @, tab, carriage return

    Example:
        sanitize_csv_field("=HYPERLINK(...)", "customerName")
        # Returns "HYPERLINK(...)" and logs a warning

        sanitize_csv_field("Ana López", "customerName")
        # Returns "Ana López" (unchanged, no logging)
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    original_text = text
    dangerous_chars = {'=', '+', '-', '@', '\t', '\r'}

    stripped_chars = []
    while text and text[0] in dangerous_chars:
        stripped_chars.append(text[0])
        text = text[1:]

    if stripped_chars:
        logger.warning(
            f"CSV injection character(s) stripped from field '{field_name}'",
            extra={
                "field_name": field_name,
                "stripped_characters": "".join(stripped_chars),
                "original_value": original_text[:100],
                "sanitized_value": text[:100],
                "modification_type": "csv_injection_prevention"
            }
        )

    return text


def _row_values(row: SaleRow) -> List[str]:
    return [
        sanitize_csv_field(row.customer_name, "customerName"),
        sanitize_csv_field(row.customer_email, "customerEmail"),
        sanitize_csv_field(row.product_name, "productName"),
        sanitize_csv_field(row.vendor_name, "vendorName"),
        row.sale_date_iso,
        sanitize_csv_field(row.payment_method, "paymentMethod"),
        str(row.amount_usd),
        row.status.value,
    ]


def generate_sales_csv(rows: Iterable[SaleRow], *, include_bom: bool = True) -> str:
    """
    Render sale rows as CSV text (header + one line per row).

    Args:
        rows: rows to export, already ordered
        include_bom: prefix the UTF-8 byte order mark

    Returns:
        CSV content as a string
    """
    output = StringIO()
    writer = csv.writer(output, lineterminator="\n")

    writer.writerow(CSV_COLUMNS)
    for row in rows:
        writer.writerow(_row_values(row))

    content = output.getvalue()
    return UTF8_BOM + content if include_bom else content


def export_sales_csv(
    db: SupabaseClient,
    filters: SalesQueryFilters,
    max_rows: int = EXPORT_MAX_ROWS,
) -> str:
    """Export every sale matching the listing filters (up to `max_rows`)."""

    rows = fetch_all_sales_for_export(db, filters, max_rows=max_rows)
    logger.info("Exporting %d sales to CSV", len(rows))
    return generate_sales_csv(rows)


__all__ = [
    "CSV_COLUMNS",
    "sanitize_csv_field",
    "generate_sales_csv",
    "export_sales_csv",
]
