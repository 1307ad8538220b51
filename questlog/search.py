"""
Client for the game metadata search proxy.

The proxy is a serverless function that holds the third-party API key and
forwards `search` (plus optional `ordering`, `page_size`, `dates` and
`platforms`) to the metadata database, returning its JSON verbatim.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds


class GameSearchError(RuntimeError):
    pass


@dataclass
class GameSearchResult:
    """One search hit, flattened from the proxy's nested JSON."""

    id: Optional[int]
    name: str
    platforms: Optional[list[str]] = None
    genres: list[str] = field(default_factory=list)
    released: Optional[str] = None
    background_image: Optional[str] = None
    metacritic: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "GameSearchResult":
        platforms = data.get("platforms")
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            platforms=(
                [
                    entry["platform"]["name"]
                    for entry in platforms
                    if ((entry or {}).get("platform") or {}).get("name")
                ]
                if platforms is not None
                else None
            ),
            genres=[
                g["name"] for g in data.get("genres") or [] if (g or {}).get("name")
            ],
            released=data.get("released"),
            background_image=data.get("background_image"),
            metacritic=data.get("metacritic"),
        )


class SearchClient:
    def __init__(
        self,
        endpoint: str,
        timeout: float = REQUEST_TIMEOUT,
        page_size: int = 10,
        session: requests.Session | None = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.page_size = page_size
        self._session = session or requests.Session()

    def search(
        self,
        query: str,
        *,
        ordering: str | None = None,
        page_size: int | None = None,
        dates: str | None = None,
        platforms: str | None = None,
    ) -> list[GameSearchResult]:
        """
        Searches the metadata database by name.

        Returns an empty list for a blank query or when nothing matched.

        Raises:
            GameSearchError: on a non-2xx response or an undecodable body.
        """
        if not query or not query.strip():
            return []
        params = {"search": query.strip(), "page_size": page_size or self.page_size}
        if ordering:
            params["ordering"] = ordering
        if dates:
            params["dates"] = dates
        if platforms:
            params["platforms"] = platforms

        try:
            response = self._session.get(
                self.endpoint, params=params, timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Game search for %r failed: %s", query, e)
            raise GameSearchError("Search failed. Try again.") from e

        if not isinstance(payload, dict):
            raise GameSearchError("Search failed. Try again.")
        return [
            GameSearchResult.from_dict(item)
            for item in payload.get("results") or []
            if isinstance(item, dict)
        ]

    def close(self) -> None:
        self._session.close()
