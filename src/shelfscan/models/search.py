from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Creator(BaseModel):
    name: str
    role: str = ""


class MediaFields(BaseModel):
    """Descriptive fields shared by search results, snapshots and comparisons."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    subtitle: str = ""
    description: str = ""
    publisher: str = ""
    creators: list[Creator] = []
    languages: list[str] = []
    formats: list[str] = []
    cover_url: str = Field(default="", alias="coverUrl")
    series_name: str = Field(default="", alias="seriesName")
    series_read_order: int = Field(default=0, alias="seriesReadOrder")
    library_count: int = Field(default=0, alias="libraryCount")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> object:
        # The backend serialises numeric media ids as JSON numbers.
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("creators", "languages", "formats", mode="before")
    @classmethod
    def null_to_empty(cls, v: object) -> object:
        return [] if v is None else v


class SearchResult(MediaFields):
    """Single hit returned by /api/search."""


class SearchResponse(BaseModel):
    results: list[SearchResult] = []

    @field_validator("results", mode="before")
    @classmethod
    def null_to_empty(cls, v: object) -> object:
        return [] if v is None else v
