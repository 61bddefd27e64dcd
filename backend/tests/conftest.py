"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def movement_repository():
    """In-memory provider seeded with a few entries and exits."""
    from tests.sample_data import make_repository

    return make_repository()


@pytest.fixture
def client(monkeypatch, movement_repository) -> TestClient:
    """Create a TestClient instance for a FastAPI app bound to the in-memory provider."""
    monkeypatch.delenv("MOVEMENTS_API_KEY", raising=False)
    from backend.main import create_app

    return TestClient(create_app(service=movement_repository))
