"""
Document store abstraction with a SQLAlchemy implementation and an in-memory one.

Every record is a JSON document living in a named collection. Documents get an
`id`, `createdAt` and `updatedAt` on insert. Unique fields are enforced by the
store itself and surface as `DuplicateKeyError`.
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    delete,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from travel_backend.errors import DuplicateKeyError
from travel_backend.query import Query

USERS = "users"
PACKAGES = "packages"
TRIPS = "trips"
DESTINATIONS = "destinations"
DESTINATION_TRIPS = "destination_trips"
STORIES = "stories"
TESTIMONIALS = "testimonials"

# Absent or empty values are not indexed, so `username` behaves as a sparse index.
UNIQUE_FIELDS: Dict[str, tuple[str, ...]] = {
    USERS: ("email", "username"),
    PACKAGES: ("slug",),
    TRIPS: ("slug",),
    DESTINATIONS: ("slug",),
    DESTINATION_TRIPS: ("slug",),
    STORIES: ("slug",),
    TESTIMONIALS: (),
}


class DocumentStore(Protocol):
    """Interface for document persistence."""

    def insert(self, collection: str, doc: dict) -> dict:
        ...

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def find_one(self, collection: str, query: Query) -> Optional[dict]:
        ...

    def find(self, collection: str, query: Optional[Query] = None) -> list[dict]:
        ...

    def update(self, collection: str, doc_id: str, changes: dict) -> Optional[dict]:
        ...

    def delete(self, collection: str, doc_id: str) -> bool:
        ...

    def count_by(
        self, collection: str, field: str, values: Iterable[str]
    ) -> Dict[str, int]:
        ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _unique_keys(collection: str, doc: dict) -> list[tuple[str, str]]:
    keys = []
    for name in UNIQUE_FIELDS.get(collection, ()):
        value = doc.get(name)
        if value is None or value == "":
            continue
        keys.append((name, str(value)))
    return keys


def _stamp_new(doc: dict) -> dict:
    stored = copy.deepcopy(doc)
    stored["id"] = stored.get("id") or uuid.uuid4().hex
    now = _now_iso()
    stored.setdefault("createdAt", now)
    stored.setdefault("updatedAt", stored["createdAt"])
    return stored


def _count(docs: Iterable[dict], field: str, values: Iterable[str]) -> Dict[str, int]:
    wanted = set(values)
    counts: Dict[str, int] = {}
    for doc in docs:
        key = doc.get(field)
        if key in wanted:
            counts[key] = counts.get(key, 0) + 1
    return counts


class InMemoryDocumentStore:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}

    def _collection(self, name: str) -> Dict[str, dict]:
        return self.collections.setdefault(name, {})

    def _check_unique(
        self, collection: str, doc: dict, exclude_id: Optional[str] = None
    ) -> None:
        for name, value in _unique_keys(collection, doc):
            for other in self._collection(collection).values():
                if other["id"] == exclude_id:
                    continue
                if other.get(name) is not None and str(other.get(name)) == value:
                    raise DuplicateKeyError(collection, name, value)

    def insert(self, collection: str, doc: dict) -> dict:
        stored = _stamp_new(doc)
        self._check_unique(collection, stored)
        self._collection(collection)[stored["id"]] = stored
        return copy.deepcopy(stored)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc else None

    def find_one(self, collection: str, query: Query) -> Optional[dict]:
        for doc in self._collection(collection).values():
            if query.matches(doc):
                return copy.deepcopy(doc)
        return None

    def find(self, collection: str, query: Optional[Query] = None) -> list[dict]:
        docs = self._collection(collection).values()
        return [
            copy.deepcopy(doc) for doc in docs if query is None or query.matches(doc)
        ]

    def update(self, collection: str, doc_id: str, changes: dict) -> Optional[dict]:
        existing = self._collection(collection).get(doc_id)
        if existing is None:
            return None
        merged = {**existing, **copy.deepcopy(changes)}
        merged["id"] = doc_id
        merged["createdAt"] = existing.get("createdAt")
        merged["updatedAt"] = _now_iso()
        self._check_unique(collection, merged, exclude_id=doc_id)
        self._collection(collection)[doc_id] = merged
        return copy.deepcopy(merged)

    def delete(self, collection: str, doc_id: str) -> bool:
        return self._collection(collection).pop(doc_id, None) is not None

    def count_by(
        self, collection: str, field: str, values: Iterable[str]
    ) -> Dict[str, int]:
        return _count(self._collection(collection).values(), field, values)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.collections.clear()


class SqlDocumentStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDocumentStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _existing_key_owner(
        self,
        session: Session,
        collection: str,
        keys: list[tuple[str, str]],
        exclude_id: Optional[str] = None,
    ) -> Optional[tuple[str, str]]:
        for name, value in keys:
            stmt = select(UniqueKeyRow.document_id).where(
                UniqueKeyRow.collection == collection,
                UniqueKeyRow.field == name,
                UniqueKeyRow.value == value,
            )
            owner = session.execute(stmt).scalar_one_or_none()
            if owner is not None and owner != exclude_id:
                return name, value
        return None

    def _write_keys(
        self, session: Session, collection: str, doc_id: str, keys: list[tuple[str, str]]
    ) -> None:
        session.execute(
            delete(UniqueKeyRow).where(
                UniqueKeyRow.collection == collection,
                UniqueKeyRow.document_id == doc_id,
            )
        )
        for name, value in keys:
            session.add(
                UniqueKeyRow(
                    collection=collection, field=name, value=value, document_id=doc_id
                )
            )

    def _commit(
        self, session: Session, collection: str, keys: list[tuple[str, str]]
    ) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            name, value = keys[0] if keys else ("key", None)
            raise DuplicateKeyError(collection, name, value) from exc

    def insert(self, collection: str, doc: dict) -> dict:
        stored = _stamp_new(doc)
        keys = _unique_keys(collection, stored)
        with self.Session() as session:
            clash = self._existing_key_owner(session, collection, keys)
            if clash:
                raise DuplicateKeyError(collection, *clash)
            session.add(
                DocumentRow(
                    id=stored["id"],
                    collection=collection,
                    data=stored,
                    created_at=stored["createdAt"],
                    updated_at=stored["updatedAt"],
                )
            )
            self._write_keys(session, collection, stored["id"], keys)
            self._commit(session, collection, keys)
        return copy.deepcopy(stored)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(DocumentRow, doc_id)
            if row is None or row.collection != collection:
                return None
            return copy.deepcopy(row.data)

    def _rows_for(self, session: Session, collection: str, query: Optional[Query]):
        stmt = select(DocumentRow).where(DocumentRow.collection == collection)
        if query is not None:
            # Narrow through the unique-key table when filtering on a unique field.
            for name in UNIQUE_FIELDS.get(collection, ()):
                if name in query.equals and query.equals[name] is not None:
                    stmt = stmt.join(
                        UniqueKeyRow, UniqueKeyRow.document_id == DocumentRow.id
                    ).where(
                        UniqueKeyRow.field == name,
                        UniqueKeyRow.value == str(query.equals[name]),
                    )
                    break
        return session.execute(stmt).scalars().all()

    def find_one(self, collection: str, query: Query) -> Optional[dict]:
        with self.Session() as session:
            for row in self._rows_for(session, collection, query):
                if query.matches(row.data):
                    return copy.deepcopy(row.data)
        return None

    def find(self, collection: str, query: Optional[Query] = None) -> list[dict]:
        with self.Session() as session:
            rows = self._rows_for(session, collection, query)
            return [
                copy.deepcopy(row.data)
                for row in rows
                if query is None or query.matches(row.data)
            ]

    def update(self, collection: str, doc_id: str, changes: dict) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(DocumentRow, doc_id)
            if row is None or row.collection != collection:
                return None
            merged = {**row.data, **copy.deepcopy(changes)}
            merged["id"] = doc_id
            merged["createdAt"] = row.data.get("createdAt")
            merged["updatedAt"] = _now_iso()
            keys = _unique_keys(collection, merged)
            clash = self._existing_key_owner(session, collection, keys, exclude_id=doc_id)
            if clash:
                raise DuplicateKeyError(collection, *clash)
            row.data = merged
            row.updated_at = merged["updatedAt"]
            self._write_keys(session, collection, doc_id, keys)
            self._commit(session, collection, keys)
            return copy.deepcopy(merged)

    def delete(self, collection: str, doc_id: str) -> bool:
        with self.Session() as session:
            row = session.get(DocumentRow, doc_id)
            if row is None or row.collection != collection:
                return False
            self._write_keys(session, collection, doc_id, [])
            session.delete(row)
            session.commit()
            return True

    def count_by(
        self, collection: str, field: str, values: Iterable[str]
    ) -> Dict[str, int]:
        return _count(self.find(collection), field, values)


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    id = Column(String, primary_key=True)
    collection = Column(String, nullable=False, index=True)
    data = Column(JSON, nullable=False)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class UniqueKeyRow(Base):
    __tablename__ = "document_unique_keys"
    __table_args__ = (UniqueConstraint("collection", "field", "value"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String, nullable=False)
    field = Column(String, nullable=False)
    value = Column(String, nullable=False)
    document_id = Column(String, nullable=False, index=True)
