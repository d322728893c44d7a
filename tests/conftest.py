"""Shared fixtures: stored-document factory and an in-memory results collection."""

from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from core.config import reset_settings
from tests.fakes import FakeCollection


@pytest.fixture
def make_doc():
    """Factory for stored ExperimentResult documents (camelCase, as the importer writes them)."""
    base = datetime(2025, 11, 3, 14, 0)

    def _make(version="optimized", minutes=5.0, score=50.0, created_offset=0, **overrides):
        start = base + timedelta(hours=created_offset)
        doc = {
            "_id": ObjectId(),
            "version": version,
            "startTime": start,
            "endTime": start + timedelta(minutes=minutes),
            "duration": minutes * 60 * 1000,
            "confirmationCode": f"CODE-{version}-{created_offset}",
            "nasatlx": {
                "mentalDemand": score,
                "physicalDemand": score,
                "temporalDemand": score,
                "performance": score,
                "effort": score,
                "frustration": score,
            },
            "createdAt": base + timedelta(days=1, hours=created_offset),
        }
        doc.update(overrides)
        return doc

    return _make


@pytest.fixture
def fake_collection():
    return FakeCollection()


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()
