"""
FastAPI application entry point for the search proxy.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import requests
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from questlog.config import Settings, get_settings
from questlog.routes import router


def create_app(
    settings: Settings | None = None, upstream: requests.Session | None = None
) -> FastAPI:
    settings = settings or get_settings()
    upstream = upstream or requests.Session()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        upstream.close()

    app = FastAPI(title="QuestLog Search Proxy", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.upstream = upstream
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
