"""
Pytest configuration and fixtures for anirename tests.
"""

import os
import sys
import threading
import time

import pytest
import requests

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from anirename.config import DEFAULT_SETTINGS  # noqa: E402
from anirename.models import LookupFailure, SeasonInfo, SeriesMetadata  # noqa: E402


class FakeCatalog:
    """In-memory catalog that records every lookup it receives."""

    def __init__(
        self,
        metadata: dict[str, SeriesMetadata] | None = None,
        by_id: dict[int, SeriesMetadata] | None = None,
        default: SeriesMetadata | None = None,
        delay: float = 0.0,
    ):
        self.metadata = metadata or {}
        self.by_id = by_id or {}
        self.default = default
        self.delay = delay
        self.calls: list[str] = []
        self.id_calls: list[int] = []
        self._lock = threading.Lock()

    def lookup(self, query, prefer_romaji=False):
        with self._lock:
            self.calls.append(query)
        if self.delay:
            time.sleep(self.delay)
        found = self.metadata.get(query, self.default)
        return found or LookupFailure(query, f"no match for '{query}'")

    def lookup_by_id(self, catalog_id):
        with self._lock:
            self.id_calls.append(catalog_id)
        found = self.by_id.get(catalog_id)
        return found or LookupFailure(str(catalog_id), f"no series {catalog_id}")


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code=200, headers=None):
        self._payload = payload
        self.status_code = status_code
        self.headers = headers or {}

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"HTTP {self.status_code}")


@pytest.fixture
def bocchi() -> SeriesMetadata:
    return SeriesMetadata("孤独搖滾！", (SeasonInfo(1, 12),), catalog_id=119100)


@pytest.fixture
def kimetsu() -> SeriesMetadata:
    return SeriesMetadata("鬼灭之刃", (SeasonInfo(1, 26), SeasonInfo(2, 18)), catalog_id=85937)


@pytest.fixture
def three_seasons() -> tuple[SeasonInfo, ...]:
    return (SeasonInfo(1, 12), SeasonInfo(2, 24), SeasonInfo(3, 13))


@pytest.fixture
def fake_catalog():
    """Factory for FakeCatalog instances."""
    return FakeCatalog


@pytest.fixture
def fake_response():
    """Factory for FakeResponse instances."""
    return FakeResponse


@pytest.fixture
def default_settings(monkeypatch):
    """Keep the user's settings file out of CLI tests."""
    settings = dict(DEFAULT_SETTINGS)
    monkeypatch.setattr("anirename.renamer.load_settings", lambda: dict(settings))
    return settings
