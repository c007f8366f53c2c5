"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import the domain,
repositories, services and api packages, and provides an in-memory Supabase
stand-in seeded with a product and two vendors.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from fake_supabase import CREATED_AT, FakeSupabase  # noqa: E402


@pytest.fixture
def db() -> FakeSupabase:
    fake = FakeSupabase()
    fake.seed(
        "products",
        [
            {
                "id": "chatgpt-live-workshop",
                "name": "Taller en vivo Domina ChatGPT",
                "sku": "chatgpt-live-workshop",
                "base_currency": "MXN",
                "base_price": 3660.22,
                "active": True,
                "created_at": CREATED_AT,
            },
            {
                "id": "midjourney-masterclass",
                "name": "Midjourney Masterclass",
                "sku": "midjourney-masterclass",
                "base_currency": "COP",
                "base_price": 280000.0,
                "active": False,
                "created_at": CREATED_AT,
            },
        ],
    )
    fake.seed(
        "vendors",
        [
            {
                "id": "angela-academiadeia-com",
                "name": "Angela Ojeda",
                "email": "angela@academiadeia.com",
                "role": "admin",
                "active": True,
                "created_at": CREATED_AT,
            },
            {
                "id": "angelica-academiadeia-com",
                "name": "Angelica Bou",
                "email": "angelica@academiadeia.com",
                "role": "seller",
                "active": True,
                "created_at": CREATED_AT,
            },
        ],
    )
    return fake
