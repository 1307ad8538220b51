"""
In-memory board state: the single source of truth for the front end.

Local mutations go through `update`, which swaps in the new Board
synchronously and then hands it to the debounced saver. Snapshots from the
realtime subscription replace the board wholesale and are never saved back.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from threading import Timer
from typing import Callable, Iterable, Iterator, Optional

from questlog import board as ops
from questlog.board_utils import find_existing_game_id_by_title
from questlog.constants import (
    COLUMN_ICONS,
    DEFAULT_COLUMN_ICON,
    INITIAL_BOARD,
    INITIAL_LOAD_TIMEOUT_SECONDS,
    MAX_COLUMNS,
)
from questlog.saver import DebouncedSaver, TimerFactory, _start_timer
from questlog.search import GameSearchResult
from questlog.types import (
    Board,
    ColumnDraft,
    DeleteColumnMode,
    Game,
    PlaylistItem,
    Result,
)

logger = logging.getLogger(__name__)

BoardListener = Callable[[Board], None]


@dataclass
class AddGameResult:
    """`added` is False when a game with the same title was already on the board."""

    game_id: Optional[str]
    added: bool


@dataclass
class DragState:
    """Transient drag gesture state; never persisted."""

    game_id: Optional[str] = None
    source_column_id: Optional[str] = None
    drop_target: Optional[str] = None

    @property
    def is_dragging(self) -> bool:
        return self.game_id is not None


class BoardDataStore:
    def __init__(
        self,
        saver: DebouncedSaver,
        *,
        max_columns: int = MAX_COLUMNS,
        initial_load_timeout: float = INITIAL_LOAD_TIMEOUT_SECONDS,
        start_timer: TimerFactory = _start_timer,
    ):
        self._saver = saver
        self._max_columns = max_columns
        self._initial_load_timeout = initial_load_timeout
        self._start_timer = start_timer
        self._lock = threading.RLock()
        self._board: Board = INITIAL_BOARD
        self._listeners: list[BoardListener] = []
        self._loaded = threading.Event()
        self._loaded.set()
        self._generation = 0
        self._stream = None
        self._consumer: Optional[threading.Thread] = None
        self._load_guard: Optional[Timer] = None
        self.zoomed_column_id: Optional[str] = None
        self.drag = DragState()

    @property
    def board(self) -> Board:
        return self._board

    @property
    def latest_board(self) -> Board:
        """Last known board; read by the auth callback during guest migration."""
        with self._lock:
            return self._board

    @property
    def is_loading(self) -> bool:
        return not self._loaded.is_set()

    def wait_until_loaded(self, timeout: float | None = None) -> bool:
        return self._loaded.wait(timeout)

    def subscribe(self, listener: BoardListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, board: Board) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(board)

    def update(self, mutator: Callable[[Board], Board]) -> Board:
        """Applies a pure mutation and schedules a save if anything changed."""
        with self._lock:
            previous = self._board
            board = mutator(previous)
            if board is previous:
                return previous
            self._board = board
        self._saver.schedule(board)
        self._publish(board)
        return board

    # Games

    def _add_unless_duplicate(
        self, title: str, build: Callable[[Board, str], Board]
    ) -> AddGameResult:
        with self._lock:
            existing = find_existing_game_id_by_title(self._board, title)
            if existing:
                return AddGameResult(game_id=existing, added=False)
            game_id = ops.new_game_id()
            board = self.update(lambda b: build(b, game_id))
        added = game_id in board.games
        return AddGameResult(game_id=game_id if added else None, added=added)

    def add_game_from_search(
        self, result: GameSearchResult, column_id: Optional[str] = None
    ) -> AddGameResult:
        """
        Adds a search hit at the head of a column (the zoomed one by default).

        If a game with the same title exists, nothing is added and its id
        is returned so the caller can offer to move it instead.
        """
        def build(board: Board, game_id: str) -> Board:
            target = ops.target_column_id(board, column_id or self.zoomed_column_id)
            if target is None:
                return board
            return ops.add_game_from_search(board, result, target, game_id=game_id)

        return self._add_unless_duplicate(result.name, build)

    def add_manual_game(
        self,
        title: str,
        *,
        platform: str = "",
        genre: str = "",
        year: str = "",
        cover: Optional[str] = None,
        cover_index: int = 0,
        column_id: Optional[str] = None,
    ) -> AddGameResult:
        if not title.strip():
            return AddGameResult(game_id=None, added=False)

        def build(board: Board, game_id: str) -> Board:
            target = ops.target_column_id(board, column_id or self.zoomed_column_id)
            if target is None:
                return board
            game = Game(
                id=game_id,
                title=title.strip(),
                platform=platform,
                genre=genre,
                year=year,
                cover=cover,
                cover_index=cover_index,
            )
            return ops.add_game(board, game, target)

        return self._add_unless_duplicate(title, build)

    def add_playlist_item(
        self, item: PlaylistItem, column_id: Optional[str] = None
    ) -> AddGameResult:
        return self._add_unless_duplicate(
            item.title,
            lambda board, game_id: ops.add_playlist_item(
                board, item, column_id, game_id=game_id
            ),
        )

    def move_game(self, game_id: str, dest_column_id: str) -> Board:
        return self.update(lambda b: ops.move_game(b, game_id, dest_column_id))

    def delete_game(self, game_id: str) -> Board:
        return self.update(lambda b: ops.delete_game(b, game_id))

    def toggle_favorite(self, game_id: str) -> Board:
        return self.update(lambda b: ops.toggle_favorite(b, game_id))

    def save_game(self, game: Game) -> Board:
        return self.update(lambda b: ops.replace_game(b, game))

    def set_rating(self, game_id: str, rating: float) -> Board:
        return self.update(lambda b: ops.set_rating(b, game_id, rating))

    # Drag and drop

    def start_drag(self, game_id: str, source_column_id: str) -> None:
        self.drag = DragState(game_id=game_id, source_column_id=source_column_id)

    def drag_over(self, column_id: str) -> None:
        if self.drag.is_dragging and self.drag.drop_target != column_id:
            self.drag.drop_target = column_id

    def drop(self, dest_column_id: str) -> Board:
        drag, self.drag = self.drag, DragState()
        if not drag.is_dragging or drag.source_column_id == dest_column_id:
            return self.board
        return self.move_game(drag.game_id, dest_column_id)

    def cancel_drag(self) -> None:
        self.drag = DragState()

    # Columns

    def new_column_draft(self) -> Optional[ColumnDraft]:
        """A blank column form, or None once the column cap is reached."""
        if len(self.board.column_order) >= self._max_columns:
            return None
        return ColumnDraft(id=ops.new_column_id(), icon=DEFAULT_COLUMN_ICON)

    def edit_column_draft(self, column_id: str) -> Optional[ColumnDraft]:
        column = self.board.columns.get(column_id)
        if column is None:
            return None
        return ColumnDraft(
            id=column.id,
            title=column.title,
            icon=column.icon if column.icon in COLUMN_ICONS else DEFAULT_COLUMN_ICON,
            is_editing=True,
        )

    def save_column(self, draft: ColumnDraft) -> Result:
        title = draft.title.strip()
        if not title:
            return Result.failure("Column title is required.")
        if draft.icon not in COLUMN_ICONS:
            return Result.failure("Choose one of the available icons.")
        if draft.is_editing:
            if draft.id not in self.board.columns:
                return Result.failure("That list no longer exists.")
            self.update(lambda b: ops.edit_column(b, draft.id, title, draft.icon))
            return Result.success()
        board = self.update(
            lambda b: ops.create_column(
                b, title, draft.icon, column_id=draft.id, max_columns=self._max_columns
            )
        )
        if draft.id not in board.columns:
            return Result.failure(f"You can have at most {self._max_columns} lists.")
        return Result.success()

    def delete_column(
        self,
        draft: ColumnDraft,
        *,
        confirmed: bool,
        mode: DeleteColumnMode = DeleteColumnMode.ORPHAN,
        destination: Optional[str] = None,
    ) -> Result:
        """
        Deletes the column being edited. Irreversible, so the caller must
        pass `confirmed=True` after asking the user.
        """
        if not draft.is_editing:
            return Result.failure("Select a list to edit before deleting it.")
        if not confirmed:
            return Result.failure("Deleting a list must be confirmed.")
        if draft.id not in self.board.columns:
            return Result.failure("That list no longer exists.")
        if mode == DeleteColumnMode.MOVE:
            others = [c for c in self.board.column_order if c != draft.id]
            if not others:
                return Result.failure(
                    "No other lists available. Choose delete or create another list first."
                )
            if destination is not None and destination not in others:
                return Result.failure("Choose another list to move the games to.")
        self.update(lambda b: ops.delete_column(b, draft.id, mode, destination))
        if self.zoomed_column_id == draft.id:
            self.zoomed_column_id = None
        return Result.success()

    def adopt_orphans(self, column_id: str) -> Board:
        return self.update(lambda b: ops.adopt_orphans(b, column_id))

    # Realtime

    def apply_snapshot(
        self, board: Optional[Board], generation: Optional[int] = None
    ) -> None:
        """Replaces local state with the server copy (a missing doc means a fresh board)."""
        with self._lock:
            if generation is not None and generation != self._generation:
                return
            self._board = board if board is not None else INITIAL_BOARD
            self._finish_loading()
            current = self._board
        self._publish(current)

    def attach(self, stream: Iterable[Optional[Board]]) -> None:
        """Starts consuming a board stream on a background thread."""
        self.detach(reset=False)
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._stream = stream
            self._loaded.clear()
            self._load_guard = self._start_timer(
                self._initial_load_timeout, lambda: self._load_timed_out(generation)
            )
            self._consumer = threading.Thread(
                target=self._consume,
                args=(iter(stream), generation),
                name="board-stream",
                daemon=True,
            )
            self._consumer.start()

    def _consume(self, boards: Iterator[Optional[Board]], generation: int) -> None:
        try:
            for board in boards:
                if generation != self._generation:
                    return
                self.apply_snapshot(board, generation)
        except Exception:
            logger.exception("Board subscription failed")
            with self._lock:
                if generation == self._generation:
                    self._finish_loading()

    def _load_timed_out(self, generation: int) -> None:
        with self._lock:
            if generation == self._generation and self.is_loading:
                logger.info("No board snapshot yet; showing the board anyway")
                self._finish_loading()

    def _finish_loading(self) -> None:
        if self._load_guard is not None:
            self._load_guard.cancel()
            self._load_guard = None
        self._loaded.set()

    def detach(self, reset: bool = True) -> None:
        """Stops the subscription; with `reset`, returns to the default board."""
        with self._lock:
            self._generation += 1
            stream, self._stream = self._stream, None
            consumer, self._consumer = self._consumer, None
            self._finish_loading()
            if reset:
                self._board = INITIAL_BOARD
                self.zoomed_column_id = None
                self.drag = DragState()
        if stream is not None and hasattr(stream, "close"):
            stream.close()
        if consumer is not None and consumer is not threading.current_thread():
            consumer.join(timeout=1.0)
        if reset:
            self._publish(INITIAL_BOARD)

    def close(self) -> None:
        self.detach(reset=False)
        self._saver.cancel()
