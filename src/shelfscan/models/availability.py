from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from shelfscan.models.library import LibraryRef
from shelfscan.models.search import MediaFields


class AvailabilityRow(BaseModel):
    """Availability of one media item at one library.

    Rows are treated as immutable once they belong to a snapshot: the refresh
    path builds a copy and swaps it in with ``AvailabilitySnapshot.replace_row``.
    """

    model_config = ConfigDict(populate_by_name=True)

    library: LibraryRef
    owned_count: int = Field(default=0, alias="ownedCount")
    available_count: int = Field(default=0, alias="availableCount")
    holds_count: int = Field(default=0, alias="holdsCount")
    estimated_wait_days: int = Field(default=0, alias="estimatedWaitDays")
    formats: list[str] = []
    favorite: bool = False
    fresh: bool = False  # True once a live refresh has been reconciled into the row

    @field_validator("formats", mode="before")
    @classmethod
    def null_to_empty(cls, v: object) -> object:
        return [] if v is None else v


class WorkState(StrEnum):
    QUEUED = "queued"
    IN_FLIGHT = "in_flight"


@dataclass
class RefreshWorkSet:
    """Library id → pending refresh state for a single snapshot.

    Holds at most one entry per library. Entries are dropped once the refresh
    finishes, successfully or not. Each entry remembers the owner that queued
    it, so a late ``finish`` from an earlier refresh cannot drop an entry that
    a newer refresh of the same library has since queued.
    """

    pending: dict[str, WorkState] = field(default_factory=dict)
    owners: dict[str, object] = field(default_factory=dict)

    def __contains__(self, library_id: object) -> bool:
        return library_id in self.pending

    def __len__(self) -> int:
        return len(self.pending)

    def queue(self, library_id: str, owner: object = None) -> bool:
        """Mark *library_id* as queued. Returns False if it is already pending."""
        if library_id in self.pending:
            return False
        self.pending[library_id] = WorkState.QUEUED
        self.owners[library_id] = owner
        return True

    def start(self, library_id: str) -> None:
        self.pending[library_id] = WorkState.IN_FLIGHT

    def finish(self, library_id: str, owner: object = None) -> None:
        """Drop the entry for *library_id* if *owner* (when given) still holds it."""
        if owner is not None and self.owners.get(library_id) is not owner:
            return
        self.pending.pop(library_id, None)
        self.owners.pop(library_id, None)

    def state(self, library_id: str) -> WorkState | None:
        return self.pending.get(library_id)


class AvailabilitySnapshot(MediaFields):
    """Media details plus one availability row per library carrying the title."""

    rows: list[AvailabilityRow] = Field(default=[], alias="availability")

    _work: RefreshWorkSet = PrivateAttr(default_factory=RefreshWorkSet)

    @field_validator("rows", mode="before")
    @classmethod
    def rows_null_to_empty(cls, v: object) -> object:
        return [] if v is None else v

    @property
    def work(self) -> RefreshWorkSet:
        return self._work

    def row_for(self, library_id: str) -> AvailabilityRow | None:
        for row in self.rows:
            if row.library.id == library_id:
                return row
        return None

    def replace_row(self, row: AvailabilityRow) -> bool:
        """Swap in *row* for the existing row of the same library.

        Returns False when the snapshot has no row for that library.
        """
        for index, existing in enumerate(self.rows):
            if existing.library.id == row.library.id:
                self.rows[index] = row
                return True
        return False

    def favorites(self) -> list[AvailabilityRow]:
        return [row for row in self.rows if row.favorite]

    def non_favorites(self) -> list[AvailabilityRow]:
        return [row for row in self.rows if not row.favorite]


class UpstreamItem(BaseModel):
    """Per-title counts returned by the upstream availability endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    owned_copies: int = Field(default=0, alias="ownedCopies")
    available_copies: int = Field(default=0, alias="availableCopies")
    holds_count: int = Field(default=0, alias="holdsCount")
    estimated_wait_days: int | None = Field(default=None, alias="estimatedWaitDays")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> object:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("owned_copies", "available_copies", "holds_count", mode="before")
    @classmethod
    def null_to_zero(cls, v: object) -> object:
        return 0 if v is None else v


class UpstreamAvailability(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[UpstreamItem] = []

    @field_validator("items", mode="before")
    @classmethod
    def drop_empty_items(cls, v: object) -> object:
        # Upstream pads the list with nulls for ids it does not know.
        if v is None:
            return []
        if isinstance(v, list):
            return [item for item in v if item and isinstance(item, dict) and item.get("id")]
        return v

    def find(self, media_id: str) -> UpstreamItem | None:
        for item in self.items:
            if item.id == media_id:
                return item
        return None
