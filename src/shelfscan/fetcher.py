"""HTTP clients for the backend API and the upstream availability endpoint.

Both wrap a shared ``httpx.AsyncClient``. Every failure mode (connection
errors, timeouts, non-2xx statuses, undecodable JSON, payloads that fail
validation) surfaces as ``ShelfscanError``. ``asyncio.CancelledError`` is left
alone so superseded requests unwind normally.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from shelfscan.config import ApiSettings, UpstreamSettings
from shelfscan.errors import ErrorCode, ShelfscanError
from shelfscan.models.availability import AvailabilitySnapshot, UpstreamAvailability
from shelfscan.models.comparison import DiffResponse, IntersectResponse, UniqueResult
from shelfscan.models.hardcover import HardcoverResults
from shelfscan.models.library import Library, LibraryList
from shelfscan.models.search import SearchResponse, SearchResult

log = structlog.get_logger()

_ModelT = TypeVar("_ModelT", bound=BaseModel)

_USER_AGENT = "shelfscan/0.1"


def build_http_client(timeout_seconds: float = 30.0) -> httpx.AsyncClient:
    """Create the shared AsyncClient used by both API wrappers."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": _USER_AGENT, "Accept": "application/json"},
    )


async def _request_model(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    model: type[_ModelT],
    code: ErrorCode,
    *,
    params: dict[str, Any] | None = None,
    json: Any = None,
    timeout: float | None = None,
) -> _ModelT:
    """Issue one request and validate the JSON body into *model*."""
    try:
        response = await client.request(
            method,
            url,
            params=params,
            json=json,
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )
    except httpx.HTTPError as exc:
        raise ShelfscanError(code, f"{method} {url} failed: {exc}") from exc

    if response.status_code >= 500:
        raise ShelfscanError(code, f"{method} {url} returned HTTP {response.status_code}")
    if response.status_code >= 400:
        raise ShelfscanError(
            code,
            f"{method} {url} returned HTTP {response.status_code}",
            recoverable=False,
        )

    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise ShelfscanError(
            ErrorCode.INVALID_RESPONSE,
            f"{method} {url} returned an unexpected payload: {exc}",
        ) from exc


class ApiClient:
    """Client for the meta-search backend (/api/*)."""

    def __init__(self, client: httpx.AsyncClient, settings: ApiSettings | None = None) -> None:
        self._client = client
        self._settings = settings or ApiSettings()

    def _url(self, path: str) -> str:
        return self._settings.base_url.rstrip("/") + path

    async def search(self, term: str) -> SearchResponse:
        return await _request_model(
            self._client,
            "GET",
            self._url("/api/search"),
            SearchResponse,
            ErrorCode.SEARCH_FAILED,
            params={"q": term},
            timeout=self._settings.timeout_seconds,
        )

    async def search_hardcover(
        self, username: str, additional_filters: str = ""
    ) -> list[SearchResult]:
        """Return the titles on a Hardcover user's want-to-read shelf.

        *additional_filters* narrows the list the same way a search term would.
        Both values are trimmed; a blank username is refused before any request.
        """
        username = username.strip()
        if not username:
            raise ShelfscanError(
                ErrorCode.SEARCH_FAILED, "a Hardcover username is required", recoverable=False
            )
        payload = await _request_model(
            self._client,
            "GET",
            self._url("/api/search-hardcover"),
            HardcoverResults,
            ErrorCode.SEARCH_FAILED,
            params={"username": username, "additionalFilters": additional_filters.strip()},
            timeout=self._settings.timeout_seconds,
        )
        return payload.root

    async def availability(self, media_id: str) -> AvailabilitySnapshot:
        return await _request_model(
            self._client,
            "GET",
            self._url("/api/availability"),
            AvailabilitySnapshot,
            ErrorCode.SNAPSHOT_LOAD_FAILED,
            params={"id": media_id},
            timeout=self._settings.timeout_seconds,
        )

    async def libraries(self) -> list[Library]:
        """Return the full library catalog sorted by name."""
        payload = await _request_model(
            self._client,
            "GET",
            self._url("/api/libraries"),
            LibraryList,
            ErrorCode.CATALOG_UNAVAILABLE,
            timeout=self._settings.timeout_seconds,
        )
        return sorted(payload.libraries, key=lambda library: library.name.casefold())

    async def diff(self, left_library_id: str, right_library_id: str) -> DiffResponse:
        return await _request_model(
            self._client,
            "GET",
            self._url("/api/diff"),
            DiffResponse,
            ErrorCode.COMPARISON_FAILED,
            params={"leftLibraryId": left_library_id, "rightLibraryId": right_library_id},
            timeout=self._settings.timeout_seconds,
        )

    async def intersect(self, left_library_id: str, right_library_id: str) -> IntersectResponse:
        return await _request_model(
            self._client,
            "GET",
            self._url("/api/intersect"),
            IntersectResponse,
            ErrorCode.COMPARISON_FAILED,
            params={"leftLibraryId": left_library_id, "rightLibraryId": right_library_id},
            timeout=self._settings.timeout_seconds,
        )

    async def unique(self, library_id: str) -> UniqueResult:
        return await _request_model(
            self._client,
            "GET",
            self._url("/api/unique"),
            UniqueResult,
            ErrorCode.COMPARISON_FAILED,
            params={"libraryId": library_id},
            timeout=self._settings.timeout_seconds,
        )


class UpstreamClient:
    """Client for the third-party per-library availability endpoint."""

    def __init__(
        self, client: httpx.AsyncClient, settings: UpstreamSettings | None = None
    ) -> None:
        self._client = client
        self._settings = settings or UpstreamSettings()

    def availability_url(self, library_id: str) -> str:
        return (
            f"{self._settings.base_url.rstrip('/')}/v2/libraries/{library_id}/media/availability"
        )

    async def availability(self, library_id: str, media_ids: list[str]) -> UpstreamAvailability:
        log.debug("upstream_availability_request", library_id=library_id, media_ids=media_ids)
        return await _request_model(
            self._client,
            "POST",
            self.availability_url(library_id),
            UpstreamAvailability,
            ErrorCode.REFRESH_FAILED,
            json={"ids": media_ids},
            timeout=self._settings.timeout_seconds,
        )
