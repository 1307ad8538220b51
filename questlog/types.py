"""
Dataclasses and enums for board state, settings and the social layer.

In memory everything is snake_case and immutable where the board is
concerned; `to_dict`/`from_dict` produce and read the camelCase documents
kept in the hosted store.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any, Optional

from dacite import Config, from_dict

from questlog.json_utils import convert_keys

DACITE_CONFIG = Config(check_types=False, cast=[tuple])


class SaveStatus(StrEnum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class Privacy(StrEnum):
    PUBLIC = "public"
    INVITE_ONLY = "invite_only"
    PRIVATE = "private"


class RelationStatus(StrEnum):
    FOLLOWING = "following"
    PENDING = "pending"


class DeleteColumnMode(StrEnum):
    """What happens to a deleted column's games."""

    ORPHAN = "orphan"  # left in `games`, referenced by no column
    MOVE = "move"  # prepended to another column
    DELETE = "delete"  # removed from `games`


@dataclass(frozen=True)
class Game:
    id: str
    title: str = ""
    platform: str = ""
    genre: str = ""
    year: str = ""
    cover: Optional[str] = None
    cover_index: int = 0
    rating: float = 0
    is_favorite: bool = False

    def to_dict(self) -> dict:
        return convert_keys(asdict(self), "snake_to_camel")

    @classmethod
    def from_dict(cls, data: dict, game_id: str | None = None) -> "Game":
        decoded = convert_keys(data, "camel_to_snake")
        if game_id is not None:
            decoded.setdefault("id", game_id)
        return from_dict(data_class=cls, data=decoded, config=DACITE_CONFIG)


@dataclass(frozen=True)
class Column:
    id: str
    title: str = ""
    icon: str = "gamepad"
    item_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return convert_keys(asdict(self), "snake_to_camel")

    @classmethod
    def from_dict(cls, data: dict, column_id: str | None = None) -> "Column":
        decoded = convert_keys(data, "camel_to_snake")
        if column_id is not None:
            decoded.setdefault("id", column_id)
        return from_dict(data_class=cls, data=decoded, config=DACITE_CONFIG)


@dataclass(frozen=True)
class Board:
    """
    The whole tracker state of one identity, persisted as a single document.

    Invariants:
      - every id in any column's item_ids is a key of `games`
        (deleting a column in ORPHAN mode is the one sanctioned exception,
        and it only leaves games without a column, never dangling ids);
      - a game id appears in at most one column;
      - every key of `columns` appears exactly once in `column_order`.

    Operations in `questlog.board` never mutate a Board; they return a new
    one that shares untouched games/columns with the old one.
    """

    games: dict[str, Game] = field(default_factory=dict)
    columns: dict[str, Column] = field(default_factory=dict)
    column_order: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "games": {gid: game.to_dict() for gid, game in self.games.items()},
            "columns": {cid: col.to_dict() for cid, col in self.columns.items()},
            "columnOrder": list(self.column_order),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Board":
        games = {
            gid: Game.from_dict(raw, game_id=gid)
            for gid, raw in (data.get("games") or {}).items()
            if isinstance(raw, dict)
        }
        columns = {
            cid: Column.from_dict(raw, column_id=cid)
            for cid, raw in (data.get("columns") or {}).items()
            if isinstance(raw, dict)
        }
        return cls(
            games=games,
            columns=columns,
            column_order=tuple(data.get("columnOrder") or ()),
        )


@dataclass
class ColumnDraft:
    """The column form: a new column, or an existing one being edited."""

    id: str
    title: str = ""
    icon: str = "gamepad"
    is_editing: bool = False


@dataclass
class UserSettings:
    privacy: str = ""  # a Privacy value, or "" before onboarding
    bio: str = ""
    display_name: str = ""

    def to_dict(self) -> dict:
        return convert_keys(asdict(self), "snake_to_camel")

    @classmethod
    def from_dict(cls, data: dict) -> "UserSettings":
        return from_dict(
            data_class=cls,
            data=convert_keys(data, "camel_to_snake"),
            config=DACITE_CONFIG,
        )


@dataclass
class PublicProfile:
    uid: str
    display_name: str = ""
    photo_url: str = ""
    privacy: str = ""
    bio: str = ""

    def to_dict(self) -> dict:
        return convert_keys(asdict(self), "snake_to_camel")

    @classmethod
    def from_dict(cls, data: dict, uid: str | None = None) -> "PublicProfile":
        decoded = convert_keys(data, "camel_to_snake")
        if uid is not None:
            decoded.setdefault("uid", uid)
        return from_dict(data_class=cls, data=decoded, config=DACITE_CONFIG)


@dataclass
class RelationshipRecord:
    """One side of a relationship, stored under the viewing user."""

    uid: str
    display_name: str = ""
    photo_url: str = ""
    status: Optional[str] = None
    timestamp: Any = None  # Firestore timestamp (SERVER_TIMESTAMP when written)

    def to_dict(self) -> dict:
        return convert_keys(asdict(self), "snake_to_camel")

    @classmethod
    def from_dict(cls, data: dict, uid: str | None = None) -> "RelationshipRecord":
        decoded = convert_keys(data, "camel_to_snake")
        if uid is not None:
            decoded.setdefault("uid", uid)
        return from_dict(data_class=cls, data=decoded, config=DACITE_CONFIG)


@dataclass
class PlaylistItem:
    """A snapshot of a game copied into a playlist."""

    title: str
    platform: str = ""
    genre: str = ""
    year: str = ""
    cover: Optional[str] = None
    cover_index: int = 0
    rating: float = 0
    is_favorite: bool = False
    origin_id: Optional[str] = None
    source_type: str = "board"

    def to_dict(self) -> dict:
        return convert_keys(asdict(self), "snake_to_camel")


@dataclass
class Playlist:
    id: str
    title: str = ""
    description: str = ""
    owner_uid: str = "unknown"
    owner_name: str = ""
    privacy: str = Privacy.PUBLIC
    items: list[PlaylistItem] = field(default_factory=list)
    created_at: Any = None
    updated_at: Any = None

    @classmethod
    def from_dict(cls, data: dict, playlist_id: str) -> "Playlist":
        decoded = convert_keys(data, "camel_to_snake")
        decoded["id"] = playlist_id
        decoded["owner_uid"] = decoded.get("owner_uid") or "unknown"
        return from_dict(data_class=cls, data=decoded, config=DACITE_CONFIG)


@dataclass
class Result:
    """Uniform outcome of a mutator that must not raise."""

    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> "Result":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> "Result":
        return cls(ok=False, error=error)
