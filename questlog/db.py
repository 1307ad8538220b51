"""
Document store abstraction: Firestore, a SQLAlchemy-backed store and an
in-memory test implementation.

Paths are slash-separated, alternating collection and document ids, e.g.
`artifacts/app/users/u1/data/board`. All stores deliver the current value
to a new watcher immediately and then once per change, like Firestore's
`on_snapshot`.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Protocol, Union

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter
from sqlalchemy import JSON, Column, Float, String, create_engine, delete, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DocumentCallback = Callable[[Optional[dict]], None]
CollectionCallback = Callable[[dict[str, dict]], None]
Unsubscribe = Callable[[], None]
Merge = Union[bool, list[str]]


class DocumentStoreError(Exception):
    pass


class DocumentNotFoundError(DocumentStoreError):
    pass


class DocumentStore(Protocol):
    """Operations the app needs from the hosted document database."""

    def get(self, path: str) -> Optional[dict]:
        ...

    def set(self, path: str, data: dict, merge: Merge = False) -> None:
        ...

    def update(self, path: str, data: dict) -> None:
        ...

    def delete(self, path: str) -> None:
        ...

    def add(self, collection_path: str, data: dict) -> str:
        ...

    def list(
        self,
        collection_path: str,
        field: str | None = None,
        values: Iterable[Any] | None = None,
    ) -> dict[str, dict]:
        ...

    def watch_document(self, path: str, callback: DocumentCallback) -> Unsubscribe:
        ...

    def watch_collection(
        self, collection_path: str, callback: CollectionCallback
    ) -> Unsubscribe:
        ...

    def close(self) -> None:
        ...


def split_path(path: str) -> tuple[str, str]:
    """Returns (collection_path, document_id) for a document path."""
    parts = [p for p in path.strip("/").split("/") if p]
    if len(parts) < 2 or len(parts) % 2:
        raise ValueError(f"Not a document path: {path!r}")
    return "/".join(parts[:-1]), parts[-1]


def resolve_server_timestamps(value: Any, now: Any) -> Any:
    """Replaces SERVER_TIMESTAMP sentinels for stores without server transforms."""
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: resolve_server_timestamps(v, now) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_server_timestamps(v, now) for v in value]
    return value


def _deep_merge(existing: dict, incoming: dict) -> dict:
    merged = dict(existing)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_document(existing: Optional[dict], data: dict, merge: Merge) -> dict:
    """
    Applies Firestore `set` semantics.

    merge=False replaces the document; merge=True deep-merges nested maps;
    a list of top-level field names replaces just those fields and keeps
    the rest of the document.
    """
    if merge is False:
        return copy.deepcopy(data)
    if merge is True:
        return _deep_merge(existing or {}, copy.deepcopy(data))
    result = dict(existing or {})
    for name in merge:
        if name in data:
            result[name] = copy.deepcopy(data[name])
    return result


class _LocalWatchers:
    """In-process watcher registry for stores without native listeners."""

    def __init__(self):
        self._watch_lock = threading.Lock()
        self._doc_watchers: dict[str, list[DocumentCallback]] = {}
        self._collection_watchers: dict[str, list[CollectionCallback]] = {}

    def _register(self, registry: dict, key: str, callback) -> Unsubscribe:
        with self._watch_lock:
            registry.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            with self._watch_lock:
                callbacks = registry.get(key, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def _notify(self, path: str) -> None:
        collection_path, _ = split_path(path)
        with self._watch_lock:
            doc_callbacks = list(self._doc_watchers.get(path, []))
            col_callbacks = list(self._collection_watchers.get(collection_path, []))
        if doc_callbacks:
            value = self.get(path)
            for callback in doc_callbacks:
                callback(copy.deepcopy(value))
        if col_callbacks:
            listing = self.list(collection_path)
            for callback in col_callbacks:
                callback(copy.deepcopy(listing))

    def watch_document(self, path: str, callback: DocumentCallback) -> Unsubscribe:
        split_path(path)
        unsubscribe = self._register(self._doc_watchers, path, callback)
        callback(self.get(path))
        return unsubscribe

    def watch_collection(
        self, collection_path: str, callback: CollectionCallback
    ) -> Unsubscribe:
        collection_path = collection_path.strip("/")
        unsubscribe = self._register(
            self._collection_watchers, collection_path, callback
        )
        callback(self.list(collection_path))
        return unsubscribe


class InMemoryDocumentStore(_LocalWatchers):
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        super().__init__()
        self.documents: dict[str, dict] = {}
        self._lock = threading.RLock()

    def get(self, path: str) -> Optional[dict]:
        with self._lock:
            doc = self.documents.get(path.strip("/"))
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, path: str, data: dict, merge: Merge = False) -> None:
        path = path.strip("/")
        split_path(path)
        data = resolve_server_timestamps(data, datetime.now(timezone.utc))
        with self._lock:
            self.documents[path] = merge_document(
                self.documents.get(path), data, merge
            )
        self._notify(path)

    def update(self, path: str, data: dict) -> None:
        path = path.strip("/")
        with self._lock:
            if path not in self.documents:
                raise DocumentNotFoundError(path)
            data = resolve_server_timestamps(data, datetime.now(timezone.utc))
            self.documents[path] = merge_document(
                self.documents[path], data, list(data.keys())
            )
        self._notify(path)

    def delete(self, path: str) -> None:
        path = path.strip("/")
        split_path(path)
        with self._lock:
            self.documents.pop(path, None)
        self._notify(path)

    def add(self, collection_path: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.set(f"{collection_path.strip('/')}/{doc_id}", data)
        return doc_id

    def list(
        self,
        collection_path: str,
        field: str | None = None,
        values: Iterable[Any] | None = None,
    ) -> dict[str, dict]:
        prefix = collection_path.strip("/") + "/"
        allowed = list(values) if values is not None else None
        results: dict[str, dict] = {}
        with self._lock:
            for path, doc in self.documents.items():
                if not path.startswith(prefix):
                    continue
                doc_id = path[len(prefix):]
                if "/" in doc_id:
                    continue
                if field is not None and doc.get(field) not in allowed:
                    continue
                results[doc_id] = copy.deepcopy(doc)
        return results

    def reset(self) -> None:
        """Clear all stored documents (useful in tests)."""
        with self._lock:
            self.documents.clear()

    def close(self) -> None:
        pass


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    path = Column(String, primary_key=True)
    collection = Column(String, nullable=False, index=True)
    data = Column(JSON, nullable=False)
    updated_at = Column(Float, nullable=False)


class SqlDocumentStore(_LocalWatchers):
    """
    SQLAlchemy-backed document store for self-hosted deployments. Accepts
    any SQLAlchemy URL (e.g., Postgres, or SQLite for tests).

    Watchers only see writes made through this instance.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise DocumentStoreError("database_url is required for SqlDocumentStore")
        super().__init__()
        engine_kwargs: dict[str, Any] = {
            "future": True,
            "pool_pre_ping": True,
            "json_serializer": lambda value: json.dumps(value, default=str),
        }
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection so timer threads see the same database.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def get(self, path: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(DocumentRow, path.strip("/"))
            return copy.deepcopy(row.data) if row else None

    def set(self, path: str, data: dict, merge: Merge = False) -> None:
        path = path.strip("/")
        collection_path, _ = split_path(path)
        data = resolve_server_timestamps(
            data, datetime.now(timezone.utc).isoformat()
        )
        with self.Session() as session:
            row = session.get(DocumentRow, path)
            if row:
                row.data = merge_document(row.data, data, merge)
                row.updated_at = time.time()
            else:
                session.add(
                    DocumentRow(
                        path=path,
                        collection=collection_path,
                        data=merge_document(None, data, merge),
                        updated_at=time.time(),
                    )
                )
            session.commit()
        self._notify(path)

    def update(self, path: str, data: dict) -> None:
        path = path.strip("/")
        data = resolve_server_timestamps(
            data, datetime.now(timezone.utc).isoformat()
        )
        with self.Session() as session:
            row = session.get(DocumentRow, path)
            if not row:
                raise DocumentNotFoundError(path)
            row.data = merge_document(row.data, data, list(data.keys()))
            row.updated_at = time.time()
            session.commit()
        self._notify(path)

    def delete(self, path: str) -> None:
        path = path.strip("/")
        split_path(path)
        with self.Session() as session:
            session.execute(delete(DocumentRow).where(DocumentRow.path == path))
            session.commit()
        self._notify(path)

    def add(self, collection_path: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.set(f"{collection_path.strip('/')}/{doc_id}", data)
        return doc_id

    def list(
        self,
        collection_path: str,
        field: str | None = None,
        values: Iterable[Any] | None = None,
    ) -> dict[str, dict]:
        collection_path = collection_path.strip("/")
        allowed = list(values) if values is not None else None
        with self.Session() as session:
            rows = session.execute(
                select(DocumentRow).where(DocumentRow.collection == collection_path)
            ).scalars()
            results: dict[str, dict] = {}
            for row in rows:
                if field is not None and row.data.get(field) not in allowed:
                    continue
                results[row.path.rsplit("/", 1)[-1]] = copy.deepcopy(row.data)
            return results

    def close(self) -> None:
        self.engine.dispose()


class FirestoreDocumentStore:
    """Firestore-backed store using the firebase_admin SDK."""

    def __init__(
        self,
        project_id: str,
        credentials_path: str | None = None,
        app_name: str = "questlog",
    ):
        if not project_id:
            raise DocumentStoreError("project_id is required for FirestoreDocumentStore")
        cred = (
            credentials.Certificate(credentials_path)
            if credentials_path
            else credentials.ApplicationDefault()
        )
        self._app = firebase_admin.initialize_app(
            cred, {"projectId": project_id}, name=app_name
        )
        self._client = firestore.client(app=self._app)

    def get(self, path: str) -> Optional[dict]:
        snapshot = self._client.document(path).get()
        return snapshot.to_dict() if snapshot.exists else None

    def set(self, path: str, data: dict, merge: Merge = False) -> None:
        self._client.document(path).set(data, merge=merge)

    def update(self, path: str, data: dict) -> None:
        self._client.document(path).update(data)

    def delete(self, path: str) -> None:
        self._client.document(path).delete()

    def add(self, collection_path: str, data: dict) -> str:
        _, doc_ref = self._client.collection(collection_path).add(data)
        return doc_ref.id

    def list(
        self,
        collection_path: str,
        field: str | None = None,
        values: Iterable[Any] | None = None,
    ) -> dict[str, dict]:
        query = self._client.collection(collection_path)
        if field is not None:
            query = query.where(filter=FieldFilter(field, "in", list(values or [])))
        return {snapshot.id: snapshot.to_dict() for snapshot in query.stream()}

    def watch_document(self, path: str, callback: DocumentCallback) -> Unsubscribe:
        def on_snapshot(snapshots, changes, read_time):
            snapshot = snapshots[0] if snapshots else None
            callback(snapshot.to_dict() if snapshot and snapshot.exists else None)

        watch = self._client.document(path).on_snapshot(on_snapshot)
        return watch.unsubscribe

    def watch_collection(
        self, collection_path: str, callback: CollectionCallback
    ) -> Unsubscribe:
        def on_snapshot(snapshots, changes, read_time):
            callback({snapshot.id: snapshot.to_dict() for snapshot in snapshots})

        watch = self._client.collection(collection_path).on_snapshot(on_snapshot)
        return watch.unsubscribe

    def close(self) -> None:
        firebase_admin.delete_app(self._app)
