"""
Follow / block relationships between players.

Each player has four collections (following, followers, blocked,
requests) keyed by the other player's uid. A relationship is two
independent documents, one under each player, so every mutation here
touches several documents. Those writes run as a saga: each step records
how to undo itself, and when a step fails the completed steps are undone
in reverse before the failure is reported.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from questlog.auth import Identity
from questlog.constants import DEFAULT_DISPLAY_NAME
from questlog.db import DocumentStore, Unsubscribe
from questlog.firebase_constants import (
    BLOCKED,
    FOLLOWERS,
    FOLLOWING,
    RELATION_KINDS,
    REQUESTS,
    relation_collection_path,
    relation_path,
)
from questlog.types import (
    Privacy,
    PublicProfile,
    RelationshipRecord,
    RelationStatus,
    Result,
)

logger = logging.getLogger(__name__)

INVALID = "invalid"


@dataclass
class _Step:
    description: str
    apply: Callable[[], None]
    compensate: Callable[[], None]


class _Saga:
    """An ordered list of document writes with compensations."""

    def __init__(self, store: DocumentStore):
        self._store = store
        self._steps: list[_Step] = []

    def set(self, path: str, data: dict) -> "_Saga":
        before: dict = {}

        def apply() -> None:
            before["doc"] = self._store.get(path)
            self._store.set(path, data, merge=True)

        def compensate() -> None:
            if before.get("doc") is None:
                self._store.delete(path)
            else:
                self._store.set(path, before["doc"])

        self._steps.append(_Step(f"set {path}", apply, compensate))
        return self

    def delete(self, path: str) -> "_Saga":
        before: dict = {}

        def apply() -> None:
            before["doc"] = self._store.get(path)
            self._store.delete(path)

        def compensate() -> None:
            if before.get("doc") is not None:
                self._store.set(path, before["doc"])

        self._steps.append(_Step(f"delete {path}", apply, compensate))
        return self

    def run(self, action: str) -> Result:
        done: list[_Step] = []
        for step in self._steps:
            try:
                step.apply()
            except Exception as e:
                logger.error("%s failed at %s: %s", action, step.description, e)
                self._compensate(action, done)
                return Result.failure(str(e) or f"{action} failed")
            done.append(step)
        return Result.success()

    def _compensate(self, action: str, done: list[_Step]) -> None:
        for step in reversed(done):
            try:
                step.compensate()
            except Exception as e:
                logger.error(
                    "%s: could not undo %s: %s", action, step.description, e
                )


class RelationshipStore:
    def __init__(self, store: DocumentStore, app_id: str):
        self._store = store
        self._app_id = app_id
        self._lock = threading.Lock()
        self._identity: Optional[Identity] = None
        self._unsubscribes: list[Unsubscribe] = []
        self._records: dict[str, dict[str, RelationshipRecord]] = {
            kind: {} for kind in RELATION_KINDS
        }

    @property
    def following(self) -> dict[str, RelationshipRecord]:
        return self._records[FOLLOWING]

    @property
    def followers(self) -> dict[str, RelationshipRecord]:
        return self._records[FOLLOWERS]

    @property
    def blocked(self) -> dict[str, RelationshipRecord]:
        return self._records[BLOCKED]

    @property
    def requests(self) -> dict[str, RelationshipRecord]:
        return self._records[REQUESTS]

    def start(self, identity: Identity) -> None:
        """Mirrors the identity's four relationship collections."""
        self.stop()
        self._identity = identity
        for kind in RELATION_KINDS:
            self._unsubscribes.append(
                self._store.watch_collection(
                    relation_collection_path(self._app_id, identity.uid, kind),
                    self._replacer(kind),
                )
            )

    def _replacer(self, kind: str) -> Callable[[dict[str, dict]], None]:
        def replace_all(docs: dict[str, dict]) -> None:
            records = {
                uid: RelationshipRecord.from_dict(data, uid=uid)
                for uid, data in docs.items()
            }
            with self._lock:
                self._records[kind] = records

        return replace_all

    def stop(self) -> None:
        unsubscribes, self._unsubscribes = self._unsubscribes, []
        for unsubscribe in unsubscribes:
            unsubscribe()
        self._identity = None
        with self._lock:
            self._records = {kind: {} for kind in RELATION_KINDS}

    def _path(self, uid: str, kind: str, other_uid: str) -> str:
        return relation_path(self._app_id, uid, kind, other_uid)

    def _me_record(self, me: Identity, status: RelationStatus) -> dict:
        return RelationshipRecord(
            uid=me.uid,
            display_name=me.display_name or "",
            photo_url=me.photo_url or "",
            status=status.value,
            timestamp=SERVER_TIMESTAMP,
        ).to_dict()

    def _target_check(self, uid: Optional[str]) -> Optional[Identity]:
        me = self._identity
        if me is None or not uid or uid == me.uid:
            return None
        return me

    def follow(self, profile: PublicProfile) -> Result:
        """
        Follows a player, or asks to when their profile is invite-only.

        Refused when either player has blocked the other.
        """
        me = self._target_check(profile.uid if profile else None)
        if me is None:
            return Result.failure(INVALID)
        try:
            if self._store.get(self._path(me.uid, BLOCKED, profile.uid)) is not None:
                return Result.failure("Unblock this player before following them.")
            if self._store.get(self._path(profile.uid, BLOCKED, me.uid)) is not None:
                return Result.failure("This player is not available.")
        except Exception as e:
            logger.error("Follow check for %s failed: %s", profile.uid, e)
            return Result.failure(str(e) or "Follow failed")

        pending = profile.privacy == Privacy.INVITE_ONLY
        status = RelationStatus.PENDING if pending else RelationStatus.FOLLOWING
        saga = _Saga(self._store).set(
            self._path(me.uid, FOLLOWING, profile.uid),
            RelationshipRecord(
                uid=profile.uid,
                display_name=profile.display_name or DEFAULT_DISPLAY_NAME,
                photo_url=profile.photo_url or "",
                status=status.value,
                timestamp=SERVER_TIMESTAMP,
            ).to_dict(),
        )
        if pending:
            saga.set(
                self._path(profile.uid, REQUESTS, me.uid),
                self._me_record(me, RelationStatus.PENDING),
            )
        else:
            saga.set(
                self._path(profile.uid, FOLLOWERS, me.uid),
                self._me_record(me, RelationStatus.FOLLOWING),
            )
        return saga.run("Follow")

    def unfollow(self, target_uid: str) -> Result:
        """Stops following; a still-pending request is withdrawn too."""
        me = self._target_check(target_uid)
        if me is None:
            return Result.failure(INVALID)
        saga = (
            _Saga(self._store)
            .delete(self._path(me.uid, FOLLOWING, target_uid))
            .delete(self._path(target_uid, FOLLOWERS, me.uid))
        )
        record = self.following.get(target_uid)
        if record is not None and record.status == RelationStatus.PENDING:
            saga.delete(self._path(target_uid, REQUESTS, me.uid))
        return saga.run("Unfollow")

    def block(self, profile: PublicProfile) -> Result:
        """Blocks a player and severs following/follower links both ways."""
        me = self._target_check(profile.uid if profile else None)
        if me is None:
            return Result.failure(INVALID)
        return (
            _Saga(self._store)
            .set(
                self._path(me.uid, BLOCKED, profile.uid),
                RelationshipRecord(
                    uid=profile.uid,
                    display_name=profile.display_name or DEFAULT_DISPLAY_NAME,
                    photo_url=profile.photo_url or "",
                    timestamp=SERVER_TIMESTAMP,
                ).to_dict(),
            )
            .delete(self._path(me.uid, FOLLOWING, profile.uid))
            .delete(self._path(me.uid, FOLLOWERS, profile.uid))
            .delete(self._path(profile.uid, FOLLOWERS, me.uid))
            .delete(self._path(profile.uid, FOLLOWING, me.uid))
            .run("Block")
        )

    def unblock(self, target_uid: str) -> Result:
        """Removes the block only; earlier follows are not restored."""
        me = self._target_check(target_uid)
        if me is None:
            return Result.failure(INVALID)
        return (
            _Saga(self._store)
            .delete(self._path(me.uid, BLOCKED, target_uid))
            .run("Unblock")
        )

    def accept_request(self, requester_uid: str) -> Result:
        me = self._target_check(requester_uid)
        if me is None or requester_uid not in self.requests:
            return Result.failure(INVALID)
        request = self.requests[requester_uid]
        return (
            _Saga(self._store)
            .set(
                self._path(me.uid, FOLLOWERS, requester_uid),
                RelationshipRecord(
                    uid=requester_uid,
                    display_name=request.display_name,
                    photo_url=request.photo_url,
                    status=RelationStatus.FOLLOWING.value,
                    timestamp=SERVER_TIMESTAMP,
                ).to_dict(),
            )
            .set(
                self._path(requester_uid, FOLLOWING, me.uid),
                {"status": RelationStatus.FOLLOWING.value, "timestamp": SERVER_TIMESTAMP},
            )
            .delete(self._path(me.uid, REQUESTS, requester_uid))
            .run("Accept request")
        )

    def decline_request(self, requester_uid: str) -> Result:
        me = self._target_check(requester_uid)
        if me is None:
            return Result.failure(INVALID)
        return (
            _Saga(self._store)
            .delete(self._path(me.uid, REQUESTS, requester_uid))
            .delete(self._path(requester_uid, FOLLOWING, me.uid))
            .run("Decline request")
        )
