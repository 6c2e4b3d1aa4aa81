"""Shared pytest fixtures."""

from unittest.mock import patch

import pytest

from makeready.fetch.cache import MemoryCacheStore


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set mock environment variables for testing."""
    monkeypatch.setenv("EQUIPS_API_KEY", "test-api-key")
    monkeypatch.delenv("MAKEREADY_PROXY_URL", raising=False)
    monkeypatch.delenv("MAKEREADY_PROXY_KEY", raising=False)
    monkeypatch.delenv("MAKEREADY_CACHE_DIR", raising=False)
    monkeypatch.delenv("MAKEREADY_TIMEZONE", raising=False)


@pytest.fixture
def no_dotenv():
    """Keep a local .env file from leaking into tests."""
    with patch("makeready.core.config.load_dotenv"):
        yield


@pytest.fixture
def shared_memory_cache():
    """Shared in-memory cache, emptied before and after the test."""
    MemoryCacheStore._memory.clear()
    yield
    MemoryCacheStore._memory.clear()


@pytest.fixture
def legacy_record():
    """Record in the legacy tabular-export shape."""
    return {
        "Due Date: Day": "2025-02-23",
        "Status - StatusId → Name": "In Progress",
        "title": "Unit 204 turnover",
        "descriptionText2": "Paint and carpet",
        "CP Walk Date": "Feb 20",
        "Key Release": "Feb 24",
        "Make Readys - Location → Count Open": 3,
        "Service Request Id": "SR-1001",
        "Building": "North",
    }


@pytest.fixture
def service_request():
    """Raw Equips service request with a status reference."""
    return {
        "id": "sr-1",
        "title": "Unit 12 make ready",
        "serviceWorkflowToServiceStatusId": "ref-1",
        "requestStatus": "internalDispatch",
        "dueDate": 1740268800000,
        "customFields": {
            "move_in": 1740268800000,
            "evs": "TBD",
        },
    }
