from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Library(BaseModel):
    """Single entry returned by /api/libraries."""

    model_config = ConfigDict(populate_by_name=True)

    id: str  # Opaque identifier, e.g. "nypl"
    legacy_numeric_id: int = Field(alias="websiteId")  # Not unique across consortia
    name: str
    is_consortium: bool = Field(default=False, alias="isConsortium")


class LibraryRef(BaseModel):
    """Library reference embedded in availability rows."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    legacy_numeric_id: int = Field(default=0, alias="websiteId")


class LibraryList(BaseModel):
    libraries: list[Library] = []
