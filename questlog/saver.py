"""
Debounced board persistence.

Bursts of local mutations collapse into one merge-write: each `schedule`
cancels the pending write and arms a new one, so only the last snapshot
of any quiet interval reaches the store. Status goes
idle -> saving -> saved (-> idle after a short display interval) or
error, which sticks until the next successful write. A failure while a
newer snapshot is already waiting stays in saving. Failed writes are not
retried; the next mutation re-arms the timer.
"""

from __future__ import annotations

import logging
import threading
from threading import Timer
from typing import Callable, Optional

from questlog.constants import SAVE_DEBOUNCE_SECONDS, SAVED_STATUS_SECONDS
from questlog.db import DocumentStore
from questlog.firebase_constants import BOARD_FIELDS, board_path
from questlog.types import Board, SaveStatus

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Timer]


def _start_timer(interval: float, function: Callable[[], None]) -> Timer:
    timer = Timer(interval, function)
    timer.daemon = True
    timer.start()
    return timer


class DebouncedSaver:
    def __init__(
        self,
        store: DocumentStore,
        app_id: str,
        *,
        delay: float = SAVE_DEBOUNCE_SECONDS,
        saved_display: float = SAVED_STATUS_SECONDS,
        start_timer: TimerFactory = _start_timer,
        on_status: Optional[Callable[[SaveStatus], None]] = None,
    ):
        self._store = store
        self._app_id = app_id
        self._delay = delay
        self._saved_display = saved_display
        self._start_timer = start_timer
        self._on_status = on_status
        self._lock = threading.Lock()
        self._uid: Optional[str] = None
        self._pending: Optional[Timer] = None
        self._reset: Optional[Timer] = None
        self._status = SaveStatus.IDLE

    @property
    def status(self) -> SaveStatus:
        return self._status

    def set_identity(self, uid: Optional[str]) -> None:
        """Switching identity drops any write still pending for the old one."""
        with self._lock:
            if uid != self._uid and self._pending is not None:
                self._cancel_pending()
                self._set_status(SaveStatus.IDLE)
            self._uid = uid

    def schedule(self, board: Board) -> None:
        with self._lock:
            if self._uid is None:
                self._set_status(SaveStatus.IDLE)
                return
            self._set_status(SaveStatus.SAVING)
            self._cancel_pending()
            uid = self._uid
            self._pending = self._start_timer(
                self._delay, lambda: self._write(board, uid)
            )

    def _write(self, board: Board, uid: str) -> None:
        with self._lock:
            if self._uid != uid:
                return
            self._pending = None
        try:
            self._store.set(
                board_path(self._app_id, uid), board.to_dict(), merge=BOARD_FIELDS
            )
        except Exception as e:
            logger.error("Save failed for %s: %s", uid, e)
            with self._lock:
                if self._pending is None:
                    self._set_status(SaveStatus.ERROR)
            return
        with self._lock:
            if self._pending is not None:
                # A newer snapshot is already waiting; stay in `saving`.
                return
            self._set_status(SaveStatus.SAVED)
            self._reset = self._start_timer(self._saved_display, self._clear_saved)

    def _clear_saved(self) -> None:
        with self._lock:
            if self._status == SaveStatus.SAVED:
                self._set_status(SaveStatus.IDLE)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _set_status(self, status: SaveStatus) -> None:
        if status == self._status:
            return
        self._status = status
        if self._reset is not None and status != SaveStatus.SAVED:
            self._reset.cancel()
            self._reset = None
        if self._on_status:
            self._on_status(status)

    def cancel(self) -> None:
        """Drops any pending write, e.g. on shutdown."""
        with self._lock:
            self._cancel_pending()
            if self._reset is not None:
                self._reset.cancel()
                self._reset = None
