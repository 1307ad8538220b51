"""
User settings, the derived public profile, and profile discovery.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from questlog.auth import Identity
from questlog.db import DocumentStore, Unsubscribe
from questlog.firebase_constants import (
    board_path,
    public_profile_path,
    public_profiles_path,
    settings_path,
)
from questlog.types import Board, Privacy, PublicProfile, Result, UserSettings

logger = logging.getLogger(__name__)

SEARCHABLE_PRIVACIES = (Privacy.PUBLIC, Privacy.INVITE_ONLY)


class ProfileSearchError(RuntimeError):
    pass


def public_profile_for(identity: Identity, settings: UserSettings) -> PublicProfile:
    return PublicProfile(
        uid=identity.uid,
        display_name=settings.display_name or identity.display_name,
        photo_url=identity.photo_url,
        privacy=settings.privacy,
        bio=settings.bio,
    )


def needs_onboarding(identity: Optional[Identity], settings: UserSettings) -> bool:
    """Permanent accounts must pick a privacy level before using social features."""
    return identity is not None and not identity.is_anonymous and not settings.privacy


class ProfileService:
    def __init__(self, store: DocumentStore, app_id: str):
        self._store = store
        self._app_id = app_id

    def load_settings(self, uid: str) -> UserSettings:
        data = self._store.get(settings_path(self._app_id, uid))
        return UserSettings.from_dict(data) if data else UserSettings()

    def watch_settings(
        self, uid: str, callback: Callable[[UserSettings], None]
    ) -> Unsubscribe:
        return self._store.watch_document(
            settings_path(self._app_id, uid),
            lambda data: callback(UserSettings.from_dict(data) if data else UserSettings()),
        )

    def save_settings(self, identity: Identity, settings: UserSettings) -> Result:
        """
        Writes the settings document and keeps the public profile in step:
        non-private users get the full projection, private users are
        reduced to `{privacy: "private"}` so they drop out of search.
        """
        try:
            self._store.set(
                settings_path(self._app_id, identity.uid), settings.to_dict(), merge=True
            )
            profile_path = public_profile_path(self._app_id, identity.uid)
            if settings.privacy != Privacy.PRIVATE:
                self._store.set(
                    profile_path,
                    public_profile_for(identity, settings).to_dict(),
                    merge=True,
                )
            else:
                self._store.set(profile_path, {"privacy": Privacy.PRIVATE.value}, merge=True)
        except Exception as e:
            logger.error("Saving settings for %s failed: %s", identity.uid, e)
            return Result.failure(str(e) or "Saving settings failed")
        return Result.success()

    def complete_onboarding(self, identity: Identity, settings: UserSettings) -> Result:
        if not settings.privacy:
            return Result.failure("Please select a privacy level.")
        if settings.privacy not in {p.value for p in Privacy}:
            return Result.failure(f"Unknown privacy level: {settings.privacy}")
        return self.save_settings(identity, settings)

    def search_profiles(
        self, query: str, privacies: Iterable[str] = SEARCHABLE_PRIVACIES
    ) -> list[PublicProfile]:
        """
        Case-insensitive substring match on display name, done client-side
        over the profiles whose privacy is one of `privacies`.
        """
        needle = (query or "").strip().lower()
        if not needle:
            return []
        try:
            docs = self._store.list(
                public_profiles_path(self._app_id),
                field="privacy",
                values=[str(p) for p in privacies],
            )
        except Exception as e:
            logger.error("Profile search for %r failed: %s", query, e)
            raise ProfileSearchError("Search failed. Try again.") from e
        results = []
        for uid, data in docs.items():
            profile = PublicProfile.from_dict(data, uid=uid)
            if profile.display_name and needle in profile.display_name.lower():
                results.append(profile)
        return results

    def load_board(self, uid: str) -> Optional[Board]:
        """Another player's board, read once for their profile page."""
        try:
            data = self._store.get(board_path(self._app_id, uid))
        except Exception:
            logger.exception("Failed to load profile board for %s", uid)
            return None
        return Board.from_dict(data) if data is not None else None
