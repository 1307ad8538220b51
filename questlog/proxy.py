"""
Search forwarding shared by the FastAPI proxy and the cloud function.
"""

from __future__ import annotations

import logging

import requests

from questlog.config import Settings
from questlog.schemas import ErrorResponse, SearchParams
from questlog.search import REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

INTERNAL_ERROR = ErrorResponse(error="Internal Server Error").model_dump()


def forward_search(
    upstream: requests.Session, settings: Settings, params: SearchParams
) -> tuple[int, dict]:
    """
    Calls the metadata API with the server-held key.

    Returns (status_code, body): the upstream JSON object unchanged, or 500
    with `{"error": "Internal Server Error"}` when the call or decoding fails.
    """
    if not settings.rawg_api_key:
        logger.error("Search proxy has no upstream API key configured")
        return 500, INTERNAL_ERROR
    try:
        response = upstream.get(
            settings.rawg_base_url,
            params=params.upstream_params(settings.rawg_api_key),
            timeout=REQUEST_TIMEOUT,
        )
        payload = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Error fetching games: %s", e)
        return 500, INTERNAL_ERROR
    if not isinstance(payload, dict):
        logger.error("Upstream returned %s instead of an object", type(payload).__name__)
        return 500, INTERNAL_ERROR
    return 200, payload
