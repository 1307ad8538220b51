"""Read-only queries over a Board."""

from __future__ import annotations

from typing import Optional

from questlog.constants import PLACEHOLDER_COVERS
from questlog.types import Board, Game, PlaylistItem

ALL_PLATFORMS = "All"

# Checked in order; the first substring found names the family.
_PLATFORM_FAMILIES = (
    (("PlayStation",), "PlayStation"),
    (("Xbox",), "Xbox"),
    (("PC",), "PC"),
    (("Nintendo", "Switch"), "Nintendo"),
)


def platform_family(platform: str) -> str:
    for needles, family in _PLATFORM_FAMILIES:
        if any(needle in platform for needle in needles):
            return family
    return platform


def unique_platforms(board: Board) -> list[str]:
    """Platform filter choices: "All" plus one entry per platform family."""
    platforms = {ALL_PLATFORMS}
    for game in board.games.values():
        if game.platform:
            platforms.add(platform_family(game.platform))
    return sorted(platforms)


def matches_platform(game: Game, platform_filter: str) -> bool:
    if platform_filter == ALL_PLATFORMS:
        return True
    return platform_filter.lower() in (game.platform or "").lower()


def hidden_games_count(board: Board, platform_filter: str) -> int:
    if platform_filter == ALL_PLATFORMS:
        return 0
    visible = sum(1 for g in board.games.values() if matches_platform(g, platform_filter))
    return len(board.games) - visible


def column_games(
    board: Board, column_id: str, platform_filter: str = ALL_PLATFORMS
) -> list[Game]:
    column = board.columns.get(column_id)
    if column is None:
        return []
    return [
        board.games[gid]
        for gid in column.item_ids
        if gid in board.games and matches_platform(board.games[gid], platform_filter)
    ]


def favorite_games(board: Board) -> list[Game]:
    return [game for game in board.games.values() if game.is_favorite]


def placeholder_cover(game: Game) -> str:
    """The gradient shown for a game without a cover image."""
    return PLACEHOLDER_COVERS[game.cover_index % len(PLACEHOLDER_COVERS)]


def _normalize_title(title: Optional[str]) -> str:
    return (title or "").strip().lower()


def find_existing_game_id_by_title(board: Board, title: Optional[str]) -> Optional[str]:
    wanted = _normalize_title(title)
    if not wanted:
        return None
    for game in board.games.values():
        if _normalize_title(game.title) == wanted:
            return game.id
    return None


def game_column_id(board: Board, game_id: str) -> Optional[str]:
    """The column holding the game, following the board's column order."""
    for column_id in board.column_order:
        column = board.columns.get(column_id)
        if column and game_id in column.item_ids:
            return column_id
    return None


def is_on_board(board: Board, item: PlaylistItem) -> bool:
    title = (item.title or "").lower()
    return any(
        (item.origin_id and game.id == item.origin_id)
        or ((game.title or "").lower() == title and game.platform == item.platform)
        for game in board.games.values()
    )


def orphaned_game_ids(board: Board) -> tuple[str, ...]:
    """Ids of games that no listed column references."""
    referenced = {
        gid
        for cid in board.column_order
        if cid in board.columns
        for gid in board.columns[cid].item_ids
    }
    return tuple(gid for gid in board.games if gid not in referenced)


def orphaned_games(board: Board) -> list[Game]:
    return [board.games[gid] for gid in orphaned_game_ids(board)]


def invariant_violations(board: Board) -> list[str]:
    """Describes every broken Board invariant; empty when the board is sound."""
    problems: list[str] = []
    seen: dict[str, str] = {}
    for column_id, column in board.columns.items():
        for gid in column.item_ids:
            if gid not in board.games:
                problems.append(f"column {column_id} references missing game {gid}")
            if gid in seen and seen[gid] != column_id:
                problems.append(f"game {gid} is in columns {seen[gid]} and {column_id}")
            seen.setdefault(gid, column_id)
        if board.column_order.count(column_id) != 1:
            problems.append(f"column {column_id} appears "
                            f"{board.column_order.count(column_id)} times in column order")
    for column_id in board.column_order:
        if column_id not in board.columns:
            problems.append(f"column order lists unknown column {column_id}")
    return problems
