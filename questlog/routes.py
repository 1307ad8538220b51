"""
HTTP routes for the search proxy.

The proxy keeps the metadata API key server-side: the client calls
`GET /searchGames?search=...` and gets the upstream JSON back unchanged.
"""

from __future__ import annotations

import requests
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from questlog.config import Settings
from questlog.proxy import forward_search
from questlog.schemas import ErrorResponse, SearchParams, SearchResponse

router = APIRouter()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_upstream(request: Request) -> requests.Session:
    return request.app.state.upstream


@router.get(
    "/searchGames",
    response_model=SearchResponse,
    responses={500: {"model": ErrorResponse}},
)
def search_games(
    params: SearchParams = Depends(),
    settings: Settings = Depends(get_app_settings),
    upstream: requests.Session = Depends(get_upstream),
):
    status, payload = forward_search(upstream, settings, params)
    if status != 200:
        return JSONResponse(status_code=status, content=payload)
    return payload


@router.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}
