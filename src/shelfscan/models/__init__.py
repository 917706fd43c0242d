from __future__ import annotations

from shelfscan.models.availability import (
    AvailabilityRow,
    AvailabilitySnapshot,
    RefreshWorkSet,
    UpstreamAvailability,
    UpstreamItem,
    WorkState,
)
from shelfscan.models.comparison import (
    DiffEntry,
    DiffResponse,
    IntersectEntry,
    IntersectResponse,
    LibraryCounts,
    UniqueEntry,
    UniqueResult,
)
from shelfscan.models.hardcover import FavoriteAvailability, HardcoverResults, WantToReadEntry
from shelfscan.models.library import Library, LibraryList, LibraryRef
from shelfscan.models.search import Creator, MediaFields, SearchResponse, SearchResult

__all__ = [
    # library
    "Library",
    "LibraryList",
    "LibraryRef",
    # search
    "Creator",
    "MediaFields",
    "SearchResult",
    "SearchResponse",
    # availability
    "AvailabilityRow",
    "AvailabilitySnapshot",
    "RefreshWorkSet",
    "WorkState",
    "UpstreamItem",
    "UpstreamAvailability",
    # comparison
    "LibraryCounts",
    "DiffEntry",
    "DiffResponse",
    "IntersectEntry",
    "IntersectResponse",
    "UniqueEntry",
    "UniqueResult",
    # hardcover
    "HardcoverResults",
    "FavoriteAvailability",
    "WantToReadEntry",
]
