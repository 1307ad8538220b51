"""
The client core a front end drives: one object that wires the board,
persistence, auth transitions, the social layer and search together.
"""

from __future__ import annotations

from typing import Callable, Optional

from questlog.auth import AuthProvider, InMemoryAuthProvider
from questlog.board_store import BoardDataStore
from questlog.config import Settings, get_settings
from questlog.dependencies import Backend
from questlog.playlists import PlaylistService
from questlog.profiles import ProfileService
from questlog.relationships import RelationshipStore
from questlog.saver import DebouncedSaver, TimerFactory, _start_timer
from questlog.search import GameSearchResult
from questlog.session import Session
from questlog.types import SaveStatus


class QuestLogClient:
    def __init__(
        self,
        settings: Settings,
        backend: Backend,
        auth: AuthProvider,
        *,
        start_timer: TimerFactory = _start_timer,
        on_save_status: Optional[Callable[[SaveStatus], None]] = None,
    ):
        self.settings = settings
        self.backend = backend
        self.auth = auth
        store = backend.store
        self.saver = DebouncedSaver(
            store,
            settings.app_id,
            delay=settings.save_debounce_seconds,
            saved_display=settings.saved_status_seconds,
            start_timer=start_timer,
            on_status=on_save_status,
        )
        self.board = BoardDataStore(
            self.saver,
            max_columns=settings.max_columns,
            initial_load_timeout=settings.initial_load_timeout_seconds,
            start_timer=start_timer,
        )
        self.profiles = ProfileService(store, settings.app_id)
        self.relationships = RelationshipStore(store, settings.app_id)
        self.playlists = PlaylistService(store, settings.app_id)
        self.session = Session(
            auth,
            store,
            settings.app_id,
            self.board,
            self.saver,
            self.profiles,
            self.relationships,
        )

    def start(self) -> "QuestLogClient":
        self.session.start()
        return self

    def search_games(self, query: str, **params) -> list[GameSearchResult]:
        return self.backend.search.search(query, **params)

    def close(self) -> None:
        self.session.close()
        self.backend.close()

    def __enter__(self) -> "QuestLogClient":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def create_client(
    settings: Settings | None = None,
    backend: Backend | None = None,
    auth: AuthProvider | None = None,
    **kwargs,
) -> QuestLogClient:
    """Builds a client; the backend is opened here if the caller did not."""
    settings = settings or get_settings()
    backend = (backend or Backend(settings)).open()
    return QuestLogClient(settings, backend, auth or InMemoryAuthProvider(), **kwargs)
