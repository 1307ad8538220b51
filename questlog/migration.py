"""
Guest to permanent account migration.

When an anonymous guest signs in to a permanent account, the board they
built as a guest is merged into whatever the account already has and
written back in one direct merge-write, bypassing the debounced saver.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from questlog.constants import INITIAL_BOARD
from questlog.db import DocumentStore
from questlog.firebase_constants import BOARD_FIELDS, board_path
from questlog.types import Board

logger = logging.getLogger(__name__)


def merge_guest_board(guest: Board, target: Optional[Board]) -> Board:
    """
    Merges a guest board into the account's existing board.

    - games: union, the guest's record wins on an id collision;
    - columns present on both sides: the target's order is kept and guest
      ids not already in that column are appended;
    - guest-only columns are not created; their games that the target does
      not reference anywhere are appended to the target's first column so
      nothing the guest added disappears;
    - column order: the target's, else the default order.

    Merging does not enforce single-column membership across columns: a
    game that sat in different columns on each side ends up in both.
    """
    if target is None:
        return guest

    games = {**target.games, **guest.games}
    columns = dict(target.columns)
    for column_id, guest_column in guest.columns.items():
        column = columns.get(column_id)
        if column is None:
            continue
        new_ids = tuple(i for i in guest_column.item_ids if i not in column.item_ids)
        if new_ids:
            columns[column_id] = replace(column, item_ids=(*column.item_ids, *new_ids))

    column_order = target.column_order or INITIAL_BOARD.column_order

    referenced = {gid for column in columns.values() for gid in column.item_ids}
    stranded = tuple(
        gid
        for column_id, guest_column in guest.columns.items()
        if column_id not in target.columns
        for gid in guest_column.item_ids
        if gid not in referenced and gid in games
    )
    first = next((c for c in column_order if c in columns), None)
    if stranded and first is not None:
        columns[first] = replace(
            columns[first],
            item_ids=(*columns[first].item_ids, *dict.fromkeys(stranded)),
        )

    return Board(games=games, columns=columns, column_order=tuple(column_order))


def migrate_guest_board(
    store: DocumentStore, app_id: str, guest: Board, target_uid: str
) -> Optional[Board]:
    """
    Fetches the account's board, merges the guest board in and writes the
    result. Returns the merged board, or None when there was nothing to
    migrate or the migration failed (failures are logged, never raised).
    """
    if not guest.games:
        return None
    path = board_path(app_id, target_uid)
    try:
        existing = store.get(path)
        target = Board.from_dict(existing) if existing is not None else None
        merged = merge_guest_board(guest, target)
        store.set(path, merged.to_dict(), merge=BOARD_FIELDS)
    except Exception:
        logger.exception("Guest migration into %s failed", target_uid)
        return None
    logger.info(
        "Migrated %d guest games into %s", len(guest.games), target_uid
    )
    return merged
