from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

from shelfscan.models.search import SearchResult

LIBBY_LINK_TEMPLATE = "https://libbyapp.com/library/{library_id}/generated-36532/page-1/{media_id}"


class HardcoverResults(RootModel[list[SearchResult]]):
    """Bare JSON array returned by /api/search-hardcover."""

    root: list[SearchResult] = []

    @field_validator("root", mode="before")
    @classmethod
    def drop_empty(cls, v: object) -> object:
        if v is None:
            return []
        if isinstance(v, list):
            return [item for item in v if isinstance(item, dict) and item.get("id") is not None]
        return v


class FavoriteAvailability(BaseModel):
    """Best favorite library with a copy of one title available right now."""

    model_config = ConfigDict(populate_by_name=True)

    library_id: str = Field(alias="libraryId")
    media_id: str = Field(alias="mediaId")
    most_available_copies: int = Field(alias="mostAvailableCopies")
    total_libraries: int = Field(default=1, alias="totalLibraries")

    @property
    def libby_link(self) -> str:
        return LIBBY_LINK_TEMPLATE.format(library_id=self.library_id, media_id=self.media_id)


class WantToReadEntry(BaseModel):
    result: SearchResult
    available_now: FavoriteAvailability | None = None  # None: not found at favorites
