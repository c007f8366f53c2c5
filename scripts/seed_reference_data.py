"""
Seed lookup lists, demo products and demo vendors.

Idempotent: every record is upserted on its fixed id, so the script can be
re-run after editing the lists below.

Usage:
    python scripts/seed_reference_data.py
"""

import sys
from decimal import Decimal
from pathlib import Path

# Add parent directory to path so we can import from repositories
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.catalog import VendorRole
from domain.sale import Currency
from repositories.catalog_repository import create_product, create_vendor, upsert_reference_item
from repositories.client import create_supabase_client, load_settings


REFERENCE_DATA = {
    "sources": [
        ("hotmart", "Hotmart"),
        ("linkedin", "LinkedIn"),
        ("youtube", "YouTube"),
        ("referral", "Referral"),
        ("facebook", "Facebook"),
        ("email_campaign", "Campaña de correo"),
        ("aspe", "ASPE"),
        ("manual", "Manual"),
    ],
    "payment_methods": [
        ("transfer", "Transferencia"),
        ("card", "Tarjeta"),
        ("paypal", "PayPal"),
        ("other", "Otro"),
    ],
    "evidence_types": [
        ("url", "URL"),
        ("transaction_number", "Número de transacción"),
    ],
}

# (sku, name, currency, base price, active)
DEMO_PRODUCTS = [
    ("chatgpt-live-workshop", "Taller en vivo Domina ChatGPT", Currency.MXN, "3660.22", True),
    ("ai-business-basics", "AI para Negocios - Fundamentos", Currency.USD, "197", True),
    ("prompt-engineering-pro", "Prompt Engineering Profesional", Currency.USD, "299", True),
    ("automation-workshop", "Automatización con IA", Currency.COP, "450000", True),
    ("ai-writing-mastery", "Escritura con IA - Nivel Experto", Currency.USD, "149", True),
    ("claude-advanced-course", "Claude AI Avanzado", Currency.MXN, "2499", True),
    ("ai-productivity-bootcamp", "Bootcamp de Productividad con IA", Currency.USD, "399", True),
    ("midjourney-masterclass", "Midjourney Masterclass", Currency.COP, "280000", False),
]

DEMO_VENDORS = [
    ("Angela Ojeda", "angela@academiadeia.com", VendorRole.ADMIN),
    ("Angelica Bou", "angelica@academiadeia.com", VendorRole.SELLER),
    ("Carlos Rodriguez", "carlos@academiadeia.com", VendorRole.SELLER),
]


def seed_reference_data():
    """Upsert lookup lists, demo products and demo vendors."""

    db = create_supabase_client(load_settings())

    for table, items in REFERENCE_DATA.items():
        for item_id, name in items:
            upsert_reference_item(db, table, item_id, name)
        print(f"[OK] {table}: {len(items)} upserted")

    for sku, name, currency, price, active in DEMO_PRODUCTS:
        create_product(db, name, sku, currency, Decimal(price), active=active)
    print(f"[OK] products: {len(DEMO_PRODUCTS)} upserted")

    for name, email, role in DEMO_VENDORS:
        vendor = create_vendor(db, name, email, role)
        print(f"  {vendor.vendor_id} ({role.value})")
    print(f"[OK] vendors: {len(DEMO_VENDORS)} upserted")


if __name__ == "__main__":
    seed_reference_data()
