from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shelfscan.models.library import Library
from shelfscan.models.search import MediaFields


class LibraryCounts(BaseModel):
    """Copy counts for one title at one library."""

    model_config = ConfigDict(populate_by_name=True)

    library: Library | None = None
    owned_count: int = Field(default=0, alias="ownedCount")
    available_count: int = Field(default=0, alias="availableCount")
    holds_count: int = Field(default=0, alias="holdsCount")
    estimated_wait_days: int = Field(default=0, alias="estimatedWaitDays")
    formats: list[str] = []

    @field_validator("formats", mode="before")
    @classmethod
    def null_to_empty(cls, v: object) -> object:
        return [] if v is None else v


class DiffEntry(MediaFields):
    """A title owned by the left library but not the right one."""

    library: Library | None = None
    owned_count: int = Field(default=0, alias="ownedCount")
    available_count: int = Field(default=0, alias="availableCount")
    holds_count: int = Field(default=0, alias="holdsCount")
    estimated_wait_days: int = Field(default=0, alias="estimatedWaitDays")


class IntersectEntry(MediaFields):
    """A title owned by both libraries, with each side's counts."""

    left: LibraryCounts = Field(alias="leftLibraryMediaCounts")
    right: LibraryCounts = Field(alias="rightLibraryMediaCounts")


class UniqueEntry(MediaFields):
    """A title owned by exactly one library."""

    owned_count: int = Field(default=0, alias="ownedCount")
    available_count: int = Field(default=0, alias="availableCount")
    holds_count: int = Field(default=0, alias="holdsCount")
    estimated_wait_days: int = Field(default=0, alias="estimatedWaitDays")


class DiffResponse(BaseModel):
    diff: list[DiffEntry] = []

    @field_validator("diff", mode="before")
    @classmethod
    def null_to_empty(cls, v: object) -> object:
        return [] if v is None else v


class IntersectResponse(BaseModel):
    intersect: list[IntersectEntry] = []

    @field_validator("intersect", mode="before")
    @classmethod
    def null_to_empty(cls, v: object) -> object:
        return [] if v is None else v


class UniqueResult(BaseModel):
    library: Library | None = None
    unique: list[UniqueEntry] = []

    @field_validator("unique", mode="before")
    @classmethod
    def null_to_empty(cls, v: object) -> object:
        return [] if v is None else v
