"""Deterministic stand-ins shared by the test modules."""

from questlog.db import InMemoryDocumentStore


class FakeTimer:
    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled and not self.fired:
            self.fired = True
            self.function()


class FakeTimers:
    """Timer factory that records timers instead of starting threads."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, function):
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def live(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def fire_all(self):
        for timer in list(self.live):
            timer.fire()


class RecordingStore(InMemoryDocumentStore):
    """In-memory store that logs writes and can be told to fail."""

    def __init__(self):
        super().__init__()
        self.writes = []
        self.fail_on = set()

    def _check(self, op, path):
        if (op, path) in self.fail_on or op in self.fail_on:
            raise RuntimeError(f"{op} {path} failed")

    def set(self, path, data, merge=False):
        self._check("set", path)
        self.writes.append(("set", path, data, merge))
        super().set(path, data, merge=merge)

    def delete(self, path):
        self._check("delete", path)
        self.writes.append(("delete", path, None, None))
        super().delete(path)


class HeldWatchStore(InMemoryDocumentStore):
    """In-memory store whose new document watches stay silent until released."""

    def __init__(self):
        super().__init__()
        self.holding = False
        self._held = []

    def watch_document(self, path, callback):
        if not self.holding:
            return super().watch_document(path, callback)
        state = {"active": True, "unsubscribe": None}
        self._held.append((path, callback, state))

        def unsubscribe():
            state["active"] = False
            if state["unsubscribe"] is not None:
                state["unsubscribe"]()

        return unsubscribe

    def release(self):
        self.holding = False
        held, self._held = self._held, []
        for path, callback, state in held:
            if state["active"]:
                state["unsubscribe"] = super().watch_document(path, callback)
