"""
Identity and the auth provider interface.

Sign-in itself happens in the hosted auth service; the app only reacts to
auth-state changes. `InMemoryAuthProvider` stands in for it in local runs
and tests.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Optional, Protocol

AuthListener = Callable[[Optional["Identity"]], None]


class AuthError(Exception):
    """Sign-in was rejected or the sign-in popup was closed."""


@dataclass(frozen=True)
class Identity:
    uid: str
    display_name: str = ""
    photo_url: str = ""
    is_anonymous: bool = False


class AuthProvider(Protocol):
    @property
    def current_identity(self) -> Optional[Identity]:
        ...

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        ...

    def sign_in_anonymously(self) -> Identity:
        ...

    def sign_in(self) -> Identity:
        ...

    def sign_out(self) -> None:
        ...

    def update_profile(self, display_name: str) -> None:
        ...


class InMemoryAuthProvider:
    """Test double: `next_account` is who the next `sign_in` logs in as."""

    def __init__(self, next_account: Optional[Identity] = None):
        self.next_account = next_account
        self._identity: Optional[Identity] = None
        self._listeners: list[AuthListener] = []
        self._lock = threading.Lock()

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._identity

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, identity: Optional[Identity]) -> None:
        self._identity = identity
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(identity)

    def sign_in_anonymously(self) -> Identity:
        identity = Identity(uid=f"anon-{uuid.uuid4().hex[:12]}", is_anonymous=True)
        self._emit(identity)
        return identity

    def sign_in(self) -> Identity:
        if self.next_account is None:
            raise AuthError("The sign-in popup was closed before finishing.")
        self._emit(self.next_account)
        return self.next_account

    def sign_out(self) -> None:
        self._emit(None)

    def update_profile(self, display_name: str) -> None:
        if self._identity is not None:
            self._identity = replace(self._identity, display_name=display_name)
