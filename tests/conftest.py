"""Shared fixtures: sample payloads shaped like the backend's JSON."""

from __future__ import annotations

from typing import Any

import pytest

from shelfscan.config import ApiSettings, RefreshSettings, SearchSettings, UpstreamSettings
from shelfscan.models.library import Library

API = "http://backend.test"
UPSTREAM = "https://upstream.test"


@pytest.fixture()
def api_settings() -> ApiSettings:
    return ApiSettings(base_url=API)


@pytest.fixture()
def upstream_settings() -> UpstreamSettings:
    return UpstreamSettings(base_url=UPSTREAM)


@pytest.fixture()
def search_settings() -> SearchSettings:
    return SearchSettings(narrow_debounce_ms=0, wide_debounce_ms=0)


@pytest.fixture()
def refresh_settings() -> RefreshSettings:
    return RefreshSettings(favorites_delay_ms=0, non_favorites_delay_ms=0)


@pytest.fixture()
def libraries_payload() -> dict[str, Any]:
    return {
        "libraries": [
            {"id": "nypl", "websiteId": 57, "name": "New York Public Library"},
            {"id": "lapl", "websiteId": 92, "name": "Los Angeles Public Library"},
            # Two consortium members share website id 300
            {"id": "ohdbc", "websiteId": 300, "name": "Ohio Digital Library", "isConsortium": True},
            {"id": "ohdbc-akron", "websiteId": 300, "name": "akron-summit"},
        ]
    }


@pytest.fixture()
def sample_libraries(libraries_payload: dict[str, Any]) -> list[Library]:
    return [Library.model_validate(entry) for entry in libraries_payload["libraries"]]


@pytest.fixture()
def availability_payload() -> dict[str, Any]:
    return {
        "id": 9001,
        "title": "Tomorrow, and Tomorrow, and Tomorrow",
        "subtitle": "",
        "description": "<p>A novel</p>",
        "creators": [{"name": "Gabrielle Zevin", "role": "Author"}],
        "languages": ["English"],
        "formats": ["ebook-kindle", "audiobook-mp3"],
        "coverUrl": "https://img.test/9001.jpg",
        "seriesName": "",
        "seriesReadOrder": 0,
        "libraryCount": 3,
        "availability": [
            {
                "library": {"id": "nypl", "name": "New York Public Library", "websiteId": 57},
                "ownedCount": 10,
                "availableCount": 0,
                "holdsCount": 40,
                "estimatedWaitDays": 60,
                "formats": ["ebook-kindle"],
            },
            {
                "library": {"id": "lapl", "name": "Los Angeles Public Library", "websiteId": 92},
                "ownedCount": 4,
                "availableCount": 1,
                "holdsCount": 0,
                "estimatedWaitDays": 0,
                "formats": None,
            },
            {
                "library": {"id": "ohdbc", "name": "Ohio Digital Library", "websiteId": 300},
                "ownedCount": 20,
                "availableCount": 3,
                "holdsCount": 2,
                "estimatedWaitDays": 14,
                "formats": [],
            },
        ],
    }


@pytest.fixture()
def search_payload() -> dict[str, Any]:
    return {
        "results": [
            {
                "id": 1,
                "title": "Tomorrow, and Tomorrow, and Tomorrow",
                "creators": [],
                "languages": ["English"],
                "formats": ["ebook-kindle"],
                "coverUrl": "",
                "seriesName": "",
                "seriesReadOrder": 0,
                "libraryCount": 40,
            },
            {
                "id": 2,
                "title": "Zevin's Guide",
                "creators": [],
                "languages": ["English"],
                "formats": ["ebook-kindle"],
                "coverUrl": "",
                "seriesName": "",
                "seriesReadOrder": 0,
                "libraryCount": 5,
            },
        ]
    }


@pytest.fixture()
def hardcover_payload() -> list[Any]:
    # /api/search-hardcover returns a bare array, sometimes padded with nulls.
    return [
        {"id": 1, "title": "Piranesi", "libraryCount": 30},
        None,
        {"id": 2, "title": "Circe", "libraryCount": 12},
        {"id": 3, "title": "The Left Hand of Darkness", "libraryCount": 8},
    ]
