"""
Pydantic schemas for the search proxy service.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SearchParams(BaseModel):
    """Query parameters forwarded to the upstream metadata API."""

    search: Optional[str] = None
    ordering: Optional[str] = None
    page_size: int = 10
    dates: Optional[str] = None
    platforms: Optional[str] = None

    def upstream_params(self, api_key: str) -> dict:
        params = {"key": api_key}
        if self.search:
            params["search"] = self.search
        if self.ordering:
            params["ordering"] = self.ordering
        params["page_size"] = self.page_size
        if self.dates:
            params["dates"] = self.dates
        if self.platforms:
            params["platforms"] = self.platforms
        return params


class SearchResponse(BaseModel):
    """The upstream body, passed through; only `results` is relied upon."""

    model_config = ConfigDict(extra="allow")

    results: list[dict] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
