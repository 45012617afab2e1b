"""
Persistent store for queued mutations.

The engine depends only on PersistentStore. SqlAlchemyStore is the durable
implementation (SQLite by default); InMemoryStore serves hosts that do not
need durability, and tests.
"""
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..errors import StoreFailure
from .models import Base, QueuedMutation
from .records import MutationKind, MutationRecord

logger = logging.getLogger("queue.store")

UPDATABLE_FIELDS = {"synced"}


class PersistentStore(ABC):
    """Keyed, durable record store: insert, scan, update by id."""

    def init(self) -> None:
        """Prepare the underlying storage. Safe to call multiple times."""
        pass

    @abstractmethod
    def insert(self, record: MutationRecord) -> int:
        """
        Persist a new record.

        Returns:
            The store-assigned id

        Raises:
            StoreFailure: If the write failed
        """
        pass

    @abstractmethod
    def scan(
        self,
        kind: Optional[MutationKind] = None,
        synced: Optional[bool] = None,
    ) -> List[MutationRecord]:
        """Records matching the filters, oldest first."""
        pass

    @abstractmethod
    def update(self, record_id: int, fields: Dict[str, Any]) -> bool:
        """
        Update fields of one record.

        Returns:
            True if the record existed
        """
        pass


def _check_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {sorted(unknown)}")


class SqlAlchemyStore(PersistentStore):
    """
    SQLAlchemy-backed store.

    Each operation runs in its own session; SQLite serializes writers.
    """

    def __init__(self, database_url: str = "sqlite:///./offline_queue.db", echo: bool = False):
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.database_url = database_url
        self.engine = create_engine(database_url, connect_args=connect_args, echo=echo)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init(self) -> None:
        """Create tables (won't recreate existing tables)."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StoreFailure(f"Failed to initialize store: {e}") from e
        logger.info(f"Offline store initialized at: {self.database_url}")

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Session that commits on success, rolls back and wraps errors otherwise."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreFailure(str(e)) from e
        finally:
            session.close()

    @staticmethod
    def _to_record(row: QueuedMutation) -> MutationRecord:
        return MutationRecord(
            id=row.id,
            kind=MutationKind(row.kind),
            payload=row.payload,
            created_at=row.created_at,
            synced=row.synced,
        )

    def insert(self, record: MutationRecord) -> int:
        with self._session() as session:
            row = QueuedMutation(
                kind=record.kind.value,
                payload=record.payload,
                created_at=record.created_at,
                synced=record.synced,
            )
            session.add(row)
            session.flush()
            return row.id

    def scan(
        self,
        kind: Optional[MutationKind] = None,
        synced: Optional[bool] = None,
    ) -> List[MutationRecord]:
        with self._session() as session:
            query = session.query(QueuedMutation)
            if kind is not None:
                query = query.filter(QueuedMutation.kind == kind.value)
            if synced is not None:
                query = query.filter(QueuedMutation.synced == synced)
            rows = query.order_by(QueuedMutation.id).all()
            return [self._to_record(row) for row in rows]

    def update(self, record_id: int, fields: Dict[str, Any]) -> bool:
        _check_fields(fields)
        with self._session() as session:
            row = session.get(QueuedMutation, record_id)
            if row is None:
                return False
            for name, value in fields.items():
                setattr(row, name, value)
            return True


class InMemoryStore(PersistentStore):
    """Non-durable store keeping records in a dict."""

    def __init__(self):
        self._records: Dict[int, MutationRecord] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @staticmethod
    def _copy(record: MutationRecord) -> MutationRecord:
        return MutationRecord(
            id=record.id,
            kind=record.kind,
            payload=dict(record.payload),
            created_at=record.created_at,
            synced=record.synced,
        )

    def insert(self, record: MutationRecord) -> int:
        with self._lock:
            record_id = next(self._ids)
            stored = self._copy(record)
            stored.id = record_id
            if stored.created_at is None:
                stored.created_at = datetime.utcnow()
            self._records[record_id] = stored
            return record_id

    def scan(
        self,
        kind: Optional[MutationKind] = None,
        synced: Optional[bool] = None,
    ) -> List[MutationRecord]:
        with self._lock:
            return [
                self._copy(r) for _, r in sorted(self._records.items())
                if (kind is None or r.kind is kind) and (synced is None or r.synced == synced)
            ]

    def update(self, record_id: int, fields: Dict[str, Any]) -> bool:
        _check_fields(fields)
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return False
            for name, value in fields.items():
                setattr(record, name, value)
            return True
