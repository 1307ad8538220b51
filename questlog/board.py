"""
Pure Board mutations.

Every operation takes a Board and returns a Board. Nothing is mutated in
place: a changed operation returns a new Board sharing every untouched
game and column with its input, and an operation that does not apply
(stale id, cap reached, same source and destination) returns its input
unchanged, so `new is old` means "nothing to save".
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Optional

from questlog.board_utils import orphaned_game_ids
from questlog.constants import (
    DEFAULT_COLUMN_ID,
    MAX_COLUMNS,
    UNKNOWN_GENRE,
    UNKNOWN_PLATFORM,
)
from questlog.search import GameSearchResult
from questlog.types import Board, Column, DeleteColumnMode, Game, PlaylistItem


def new_game_id() -> str:
    return f"g{uuid.uuid4().hex}"


def new_column_id() -> str:
    return f"col-{uuid.uuid4().hex}"


def game_from_search_result(result: GameSearchResult, game_id: str) -> Game:
    """Maps search metadata into a fresh, unrated, non-favourite Game."""
    if result.platforms is None:
        platform = UNKNOWN_PLATFORM
    else:
        platform = ", ".join(result.platforms[:2])
    return Game(
        id=game_id,
        title=result.name,
        platform=platform,
        genre=result.genres[0] if result.genres else UNKNOWN_GENRE,
        year=result.released.split("-")[0] if result.released else "",
        cover=result.background_image,
        cover_index=0,
        rating=0,
        is_favorite=False,
    )


def game_from_playlist_item(item: PlaylistItem, game_id: str) -> Game:
    return Game(
        id=game_id,
        title=item.title,
        platform=item.platform,
        genre=item.genre,
        year=item.year,
        cover=item.cover,
        cover_index=item.cover_index or 0,
        rating=item.rating or 0,
        is_favorite=bool(item.is_favorite),
    )


def target_column_id(board: Board, preferred: Optional[str] = None) -> Optional[str]:
    """The preferred (zoomed) column if it exists, else the default, else the first."""
    if preferred and preferred in board.columns:
        return preferred
    if DEFAULT_COLUMN_ID in board.columns:
        return DEFAULT_COLUMN_ID
    for column_id in board.column_order:
        if column_id in board.columns:
            return column_id
    return None


def find_column_of(board: Board, game_id: str) -> Optional[str]:
    """First column (in map order) whose item_ids holds game_id."""
    for column_id, column in board.columns.items():
        if game_id in column.item_ids:
            return column_id
    return None


def add_game(board: Board, game: Game, column_id: str) -> Board:
    """Inserts a new game at the head of a column."""
    column = board.columns.get(column_id)
    if column is None or game.id in board.games:
        return board
    return replace(
        board,
        games={**board.games, game.id: game},
        columns={
            **board.columns,
            column_id: replace(column, item_ids=(game.id, *column.item_ids)),
        },
    )


def add_game_from_search(
    board: Board,
    result: GameSearchResult,
    column_id: str,
    game_id: Optional[str] = None,
) -> Board:
    game = game_from_search_result(result, game_id or new_game_id())
    return add_game(board, game, column_id)


def move_game(board: Board, game_id: str, dest_column_id: str) -> Board:
    """Removes the game from its column and appends it to the destination."""
    source_id = find_column_of(board, game_id)
    dest = board.columns.get(dest_column_id)
    if source_id is None or source_id == dest_column_id or dest is None:
        return board
    source = board.columns[source_id]
    return replace(
        board,
        columns={
            **board.columns,
            source_id: replace(
                source, item_ids=tuple(i for i in source.item_ids if i != game_id)
            ),
            dest_column_id: replace(dest, item_ids=(*dest.item_ids, game_id)),
        },
    )


def delete_game(board: Board, game_id: str) -> Board:
    """Deletes the game and drops its id from any column holding it."""
    games = board.games
    if game_id in games:
        games = {gid: g for gid, g in games.items() if gid != game_id}

    columns = board.columns
    for column_id, column in board.columns.items():
        if game_id in column.item_ids:
            if columns is board.columns:
                columns = dict(board.columns)
            columns[column_id] = replace(
                column, item_ids=tuple(i for i in column.item_ids if i != game_id)
            )

    if games is board.games and columns is board.columns:
        return board
    return replace(board, games=games, columns=columns)


def toggle_favorite(board: Board, game_id: str) -> Board:
    game = board.games.get(game_id)
    if game is None:
        return board
    return replace(
        board,
        games={**board.games, game_id: replace(game, is_favorite=not game.is_favorite)},
    )


def replace_game(board: Board, game: Game) -> Board:
    """Whole-record replace of an existing game (the edit form)."""
    if game.id not in board.games:
        return board
    return replace(board, games={**board.games, game.id: game})


def set_rating(board: Board, game_id: str, rating: float) -> Board:
    game = board.games.get(game_id)
    if game is None:
        return board
    return replace_game(board, replace(game, rating=min(max(rating, 0), 10)))


def create_column(
    board: Board,
    title: str,
    icon: str,
    column_id: Optional[str] = None,
    max_columns: int = MAX_COLUMNS,
) -> Board:
    """Appends an empty column while fewer than `max_columns` exist."""
    column_id = column_id or new_column_id()
    if len(board.column_order) >= max_columns or column_id in board.columns:
        return board
    return replace(
        board,
        columns={
            **board.columns,
            column_id: Column(id=column_id, title=title, icon=icon),
        },
        column_order=(*board.column_order, column_id),
    )


def edit_column(board: Board, column_id: str, title: str, icon: str) -> Board:
    column = board.columns.get(column_id)
    if column is None:
        return board
    return replace(
        board,
        columns={**board.columns, column_id: replace(column, title=title, icon=icon)},
    )


def delete_column(
    board: Board,
    column_id: str,
    mode: DeleteColumnMode = DeleteColumnMode.ORPHAN,
    destination: Optional[str] = None,
) -> Board:
    """
    Removes a column from the map and the ordering.

    ORPHAN leaves the column's games in `games` without a column; MOVE
    prepends them (deduplicated) to `destination`, defaulting to the first
    other column, and does nothing when there is none; DELETE removes them.
    """
    if column_id not in board.columns and column_id not in board.column_order:
        return board
    doomed = board.columns.get(column_id)
    item_ids = doomed.item_ids if doomed else ()
    columns = {cid: col for cid, col in board.columns.items() if cid != column_id}
    order = tuple(cid for cid in board.column_order if cid != column_id)
    games = board.games

    if mode == DeleteColumnMode.MOVE:
        destination = destination or next((c for c in order if c in columns), None)
        dest = columns.get(destination) if destination else None
        if dest is None:
            return board
        moved = tuple(i for i in item_ids if i not in dest.item_ids)
        columns[destination] = replace(dest, item_ids=(*moved, *dest.item_ids))
    elif mode == DeleteColumnMode.DELETE and item_ids:
        games = {gid: g for gid, g in board.games.items() if gid not in item_ids}

    return replace(board, games=games, columns=columns, column_order=order)


def adopt_orphans(board: Board, column_id: str) -> Board:
    """Appends every game referenced by no column to the given column."""
    column = board.columns.get(column_id)
    orphans = orphaned_game_ids(board)
    if column is None or not orphans:
        return board
    return replace(
        board,
        columns={
            **board.columns,
            column_id: replace(column, item_ids=(*column.item_ids, *orphans)),
        },
    )


def add_playlist_item(
    board: Board,
    item: PlaylistItem,
    column_id: Optional[str] = None,
    game_id: Optional[str] = None,
) -> Board:
    """Copies a playlist item onto the board, by default into the first column."""
    if column_id not in board.columns:
        column_id = next((c for c in board.column_order if c in board.columns), None)
    if column_id is None:
        return board
    return add_game(board, game_from_playlist_item(item, game_id or new_game_id()), column_id)
