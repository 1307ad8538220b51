"""
Auth-state transitions.

`Session` listens to the auth provider and moves the board, the saver, the
settings watch and the relationship mirrors from one identity to the next.
A guest who signs in to a permanent account has their board merged into
that account before the new board subscription starts.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from questlog.auth import AuthError, AuthProvider, Identity
from questlog.board_store import BoardDataStore
from questlog.constants import INITIAL_BOARD
from questlog.db import DocumentStore, Unsubscribe
from questlog.firebase_constants import board_path
from questlog.migration import merge_guest_board, migrate_guest_board
from questlog.profiles import ProfileService, needs_onboarding
from questlog.relationships import RelationshipStore
from questlog.saver import DebouncedSaver
from questlog.streams import board_stream
from questlog.types import Board, Result, UserSettings

logger = logging.getLogger(__name__)


class Session:
    def __init__(
        self,
        auth: AuthProvider,
        store: DocumentStore,
        app_id: str,
        board_store: BoardDataStore,
        saver: DebouncedSaver,
        profiles: ProfileService,
        relationships: RelationshipStore,
    ):
        self._auth = auth
        self._store = store
        self._app_id = app_id
        self.board_store = board_store
        self.saver = saver
        self.profiles = profiles
        self.relationships = relationships
        self._lock = threading.RLock()
        self._identity: Optional[Identity] = None
        self._settings = UserSettings()
        self._settings_unsubscribe: Optional[Unsubscribe] = None
        self._auth_unsubscribe: Optional[Callable[[], None]] = None

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def settings(self) -> UserSettings:
        return self._settings

    @property
    def needs_onboarding(self) -> bool:
        return needs_onboarding(self._identity, self._settings)

    def start(self) -> None:
        """Starts following auth state; signs in as a guest if nobody is."""
        self._auth_unsubscribe = self._auth.on_auth_state_changed(
            self.handle_auth_state
        )
        current = self._auth.current_identity
        if current is None:
            self._auth.sign_in_anonymously()
        else:
            self.handle_auth_state(current)

    def handle_auth_state(self, identity: Optional[Identity]) -> None:
        with self._lock:
            previous, self._identity = self._identity, identity
            guest_board = None
            if (
                identity is not None
                and previous is not None
                and previous.is_anonymous
                and not identity.is_anonymous
            ):
                guest_board = self.board_store.latest_board

            self._stop_watching(reset=identity is None)
            if identity is None:
                logger.info("Signed out")
            else:
                if (
                    previous is None
                    or previous.uid != identity.uid
                    or guest_board is not None
                ):
                    # Nothing is saved under the new uid until the local
                    # board belongs to it.
                    self.saver.set_identity(None)
                    self.board_store.apply_snapshot(
                        self._starting_board(identity, guest_board)
                    )
                self.saver.set_identity(identity.uid)
                self._start_watching(identity)

        if identity is None:
            self._auth.sign_in_anonymously()

    def _starting_board(
        self, identity: Identity, guest_board: Optional[Board]
    ) -> Board:
        """
        The board shown for `identity` until its first snapshot arrives: the
        merged board after a guest migration, else the account's stored
        board.
        """
        if guest_board is not None:
            merged = migrate_guest_board(
                self._store, self._app_id, guest_board, identity.uid
            )
            if merged is not None:
                return merged
        try:
            data = self._store.get(board_path(self._app_id, identity.uid))
        except Exception:
            logger.exception("Failed to load the board for %s", identity.uid)
            return INITIAL_BOARD
        target = Board.from_dict(data) if data is not None else None
        if guest_board is not None:
            # Migration failed or had no games; the next save carries the merge.
            return merge_guest_board(guest_board, target)
        return target if target is not None else INITIAL_BOARD

    def _start_watching(self, identity: Identity) -> None:
        self._settings = UserSettings(display_name=identity.display_name or "")
        self._settings_unsubscribe = self.profiles.watch_settings(
            identity.uid, self._on_settings
        )
        self.board_store.attach(
            board_stream(self._store, board_path(self._app_id, identity.uid))
        )
        self.relationships.start(identity)
        logger.info("Watching data for %s", identity.uid)

    def _stop_watching(self, reset: bool) -> None:
        if self._settings_unsubscribe is not None:
            self._settings_unsubscribe()
            self._settings_unsubscribe = None
        self.relationships.stop()
        if reset:
            self.saver.set_identity(None)
            self._settings = UserSettings()
        self.board_store.detach(reset=reset)

    def _on_settings(self, settings: UserSettings) -> None:
        identity = self._identity
        if identity is not None and not settings.display_name:
            settings.display_name = identity.display_name or ""
        self._settings = settings

    def sign_in(self) -> Result:
        try:
            self._auth.sign_in()
        except AuthError as e:
            logger.info("Sign-in failed: %s", e)
            return Result.failure(str(e) or "Sign-in failed")
        return Result.success()

    def sign_out(self) -> None:
        self._auth.sign_out()

    def save_settings(self, settings: UserSettings) -> Result:
        identity = self._identity
        self._settings = settings
        if identity is None:
            return Result.failure("Not signed in")
        return self.profiles.save_settings(identity, settings)

    def update_profile(self, settings: UserSettings) -> Result:
        """Pushes the display name to the auth account, then saves settings."""
        identity = self._identity
        if identity is None:
            return Result.failure("Not signed in")
        try:
            self._auth.update_profile(settings.display_name)
        except AuthError as e:
            return Result.failure(str(e) or "Updating profile failed")
        self._identity = replace(identity, display_name=settings.display_name)
        return self.save_settings(settings)

    def complete_onboarding(self, settings: UserSettings) -> Result:
        identity = self._identity
        if identity is None:
            return Result.failure("Not signed in")
        result = self.profiles.complete_onboarding(identity, settings)
        if result.ok:
            self._settings = settings
        return result

    def close(self) -> None:
        if self._auth_unsubscribe is not None:
            self._auth_unsubscribe()
            self._auth_unsubscribe = None
        with self._lock:
            self._stop_watching(reset=False)
        self.board_store.close()
