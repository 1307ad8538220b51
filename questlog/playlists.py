"""
Shared playlists: named lists of game snapshots anyone can browse unless
the owner marks them private.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from questlog.auth import Identity
from questlog.constants import GUEST_DISPLAY_NAME
from questlog.db import DocumentNotFoundError, DocumentStore, Unsubscribe
from questlog.firebase_constants import playlist_path, playlists_path
from questlog.types import Game, Playlist, PlaylistItem, Privacy, Result

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "New Playlist"
_PLACEHOLDER_RE = re.compile(r"^New Playlist(?: \((\d+)\))?$")


@dataclass
class CreatePlaylistResult(Result):
    playlist: Optional[Playlist] = None


def playlists_from_snapshot(docs: dict[str, dict]) -> list[Playlist]:
    return [Playlist.from_dict(data, playlist_id) for playlist_id, data in docs.items()]


def my_playlists(playlists: Iterable[Playlist], uid: Optional[str]) -> list[Playlist]:
    return [p for p in playlists if p.owner_uid == uid]


def browsable_playlists(
    playlists: Iterable[Playlist], uid: Optional[str]
) -> list[Playlist]:
    """Other players' playlists that are not private."""
    return [
        p
        for p in playlists
        if p.owner_uid and p.owner_uid != uid and p.privacy != Privacy.PRIVATE
    ]


def next_placeholder_title(mine: Iterable[Playlist]) -> str:
    """First free placeholder name: New Playlist, New Playlist (2), ..."""
    highest = 0
    for playlist in mine:
        match = _PLACEHOLDER_RE.match(playlist.title or "")
        if match:
            highest = max(highest, int(match.group(1)) if match.group(1) else 1)
    if not highest:
        return PLACEHOLDER_TITLE
    return f"{PLACEHOLDER_TITLE} ({highest + 1})"


def playlist_item_from_game(game: Game) -> PlaylistItem:
    return PlaylistItem(
        title=game.title,
        platform=game.platform,
        genre=game.genre,
        year=game.year,
        cover=game.cover,
        cover_index=game.cover_index or 0,
        rating=game.rating or 0,
        is_favorite=game.is_favorite or False,
        origin_id=game.id,
    )


class PlaylistService:
    def __init__(self, store: DocumentStore, app_id: str):
        self._store = store
        self._app_id = app_id

    def watch(self, callback: Callable[[list[Playlist]], None]) -> Unsubscribe:
        return self._store.watch_collection(
            playlists_path(self._app_id),
            lambda docs: callback(playlists_from_snapshot(docs)),
        )

    def list_all(self) -> list[Playlist]:
        return playlists_from_snapshot(self._store.list(playlists_path(self._app_id)))

    def get(self, playlist_id: str) -> Optional[Playlist]:
        data = self._store.get(playlist_path(self._app_id, playlist_id))
        return Playlist.from_dict(data, playlist_id) if data is not None else None

    def create_placeholder(
        self,
        identity: Optional[Identity],
        existing: Optional[Iterable[Playlist]] = None,
    ) -> CreatePlaylistResult:
        uid = identity.uid if identity else None
        try:
            playlists = self.list_all() if existing is None else list(existing)
            payload = {
                "title": next_placeholder_title(my_playlists(playlists, uid)),
                "description": "",
                "ownerUid": uid or "anon",
                "ownerName": (identity.display_name if identity else "")
                or GUEST_DISPLAY_NAME,
                "privacy": Privacy.PUBLIC.value,
                "items": [],
                "createdAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            }
            playlist_id = self._store.add(playlists_path(self._app_id), payload)
        except Exception as e:
            logger.error("Creating a playlist failed: %s", e)
            return CreatePlaylistResult.failure(str(e) or "Failed to create playlist")
        logger.info("Created playlist %s", playlist_id)
        return CreatePlaylistResult(ok=True, playlist=self.get(playlist_id))

    def _update(self, playlist_id: str, fields: dict) -> Result:
        try:
            self._store.update(
                playlist_path(self._app_id, playlist_id),
                {**fields, "updatedAt": SERVER_TIMESTAMP},
            )
        except DocumentNotFoundError:
            return Result.failure("Playlist not found")
        except Exception as e:
            logger.error("Updating playlist %s failed: %s", playlist_id, e)
            return Result.failure(str(e) or "Failed to update playlist")
        return Result.success()

    def rename(self, playlist_id: str, title: str) -> Result:
        title = (title or "").strip()
        if not title:
            return Result.failure("Playlist name is required.")
        return self._update(playlist_id, {"title": title})

    def set_description(self, playlist_id: str, description: str) -> Result:
        return self._update(playlist_id, {"description": description or ""})

    def toggle_privacy(self, playlist: Playlist) -> Result:
        privacy = (
            Privacy.PUBLIC if playlist.privacy == Privacy.PRIVATE else Privacy.PRIVATE
        )
        return self._update(playlist.id, {"privacy": privacy.value})

    def delete(self, playlist_id: str) -> Result:
        try:
            self._store.delete(playlist_path(self._app_id, playlist_id))
        except Exception as e:
            logger.error("Deleting playlist %s failed: %s", playlist_id, e)
            return Result.failure(str(e) or "Failed to delete playlist")
        return Result.success()

    def add_game(self, playlist_id: str, game: Game) -> Result:
        """Appends a snapshot of a board game unless it is already listed."""
        if not playlist_id or game is None:
            return Result.failure("invalid")
        try:
            playlist = self.get(playlist_id)
            if playlist is None:
                return Result.failure("Playlist not found")
            if any(
                item.origin_id == game.id or item.title == game.title
                for item in playlist.items
            ):
                return Result.failure("Game already in playlist")
            items = [item.to_dict() for item in playlist.items]
            items.append(playlist_item_from_game(game).to_dict())
        except Exception as e:
            logger.error("Add to playlist %s failed: %s", playlist_id, e)
            return Result.failure(str(e) or "Failed to add to playlist")
        return self._update(playlist_id, {"items": items})
