"""
Dependency wiring: backend handles are built explicitly and passed to the
components that need them, then closed on shutdown.
"""

from __future__ import annotations

import logging
from typing import Optional

from questlog.config import Settings, get_settings
from questlog.db import (
    DocumentStore,
    FirestoreDocumentStore,
    InMemoryDocumentStore,
    SqlDocumentStore,
)
from questlog.search import SearchClient

logger = logging.getLogger(__name__)


def create_document_store(settings: Settings) -> DocumentStore:
    """
    Picks the store for the given settings: in-memory when forced or when
    nothing is configured, otherwise SQL (database_url) before Firestore.
    """
    if settings.use_in_memory_backends:
        return InMemoryDocumentStore()
    if settings.database_url:
        return SqlDocumentStore(settings.database_url)
    if settings.firebase_project_id:
        return FirestoreDocumentStore(
            settings.firebase_project_id,
            credentials_path=settings.google_application_credentials,
        )
    return InMemoryDocumentStore()


class Backend:
    """Owns the document store and the search client for one app instance."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._store: Optional[DocumentStore] = None
        self._search: Optional[SearchClient] = None

    @property
    def is_open(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> DocumentStore:
        if self._store is None:
            raise RuntimeError("Backend is not open")
        return self._store

    @property
    def search(self) -> SearchClient:
        if self._search is None:
            raise RuntimeError("Backend is not open")
        return self._search

    def open(self) -> "Backend":
        if self._store is not None:
            return self
        self._store = create_document_store(self.settings)
        self._search = SearchClient(
            self.settings.search_endpoint,
            timeout=self.settings.search_timeout_seconds,
            page_size=self.settings.search_page_size,
        )
        logger.info("Opened %s", type(self._store).__name__)
        return self

    def close(self) -> None:
        store, self._store = self._store, None
        search, self._search = self._search, None
        if search is not None:
            search.close()
        if store is not None:
            store.close()
            logger.info("Closed %s", type(store).__name__)

    def __enter__(self) -> "Backend":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
