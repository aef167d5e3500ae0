"""
Catalog store: the query/mutation capability behind journals, issues,
articles and submissions.

CatalogStore is the interface the workflow engine and the catalog service
talk to. InMemoryCatalog keeps records in process memory and can persist
them to a JSON file; the SQL-backed store lives in the web package.

Design principles:
- Records go in and come out as dataclasses; callers never hold store state
- Defensive copying on every read
- atomic() blocks are all-or-nothing
- Deterministic JSON output (sorted keys, atomic temp file + rename)
"""
import copy
import json
import logging
import os
import shutil
import tempfile
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence, Type

from .errors import BackendUnavailableError, NotFoundError, ValidationError
from .models import Article, Issue, Journal, Submission

logger = logging.getLogger(__name__)

JOURNALS = "journals"
ISSUES = "issues"
ARTICLES = "articles"
SUBMISSIONS = "submissions"

RECORD_TYPES: Dict[str, Type] = {
    JOURNALS: Journal,
    ISSUES: Issue,
    ARTICLES: Article,
    SUBMISSIONS: Submission,
}

# Singular names used in error messages
RECORD_KINDS = {
    JOURNALS: "journal",
    ISSUES: "issue",
    ARTICLES: "article",
    SUBMISSIONS: "submission",
}


def new_record_id() -> str:
    return uuid.uuid4().hex


def parse_order(order_by: Sequence[str]) -> List[tuple]:
    """Turn ("-year", "issue_number") into [("year", True), ("issue_number", False)]."""
    parsed = []
    for key in order_by:
        if key.startswith("-"):
            parsed.append((key[1:], True))
        else:
            parsed.append((key, False))
    return parsed


class CatalogStore(ABC):
    """Abstract base class for catalog persistence."""

    def record_type(self, collection: str) -> Type:
        try:
            return RECORD_TYPES[collection]
        except KeyError:
            raise ValidationError(f"Unknown collection '{collection}'")

    def check_fields(self, collection: str, names) -> None:
        allowed = set(self.record_type(collection).field_names())
        unknown = sorted(set(names) - allowed)
        if unknown:
            raise ValidationError(
                f"Unknown field(s) for {collection}: {', '.join(unknown)}"
            )

    @abstractmethod
    def get(self, collection: str, record_id: str) -> Optional[Any]:
        """Return the record with ``record_id`` or None."""
        pass

    @abstractmethod
    def list(self, collection: str, filters: Optional[Dict[str, Any]] = None,
             order_by: Sequence[str] = ()) -> List[Any]:
        """Return records matching every equality filter, in the requested order."""
        pass

    @abstractmethod
    def insert(self, collection: str, record: Any) -> Any:
        """Store a new record, assigning an id when it has none."""
        pass

    @abstractmethod
    def update(self, collection: str, record_id: str, changes: Dict[str, Any]) -> Any:
        """Apply ``changes`` to a stored record and return the updated record."""
        pass

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> bool:
        """Delete a record. Returns False when it did not exist."""
        pass

    @abstractmethod
    def atomic(self):
        """Context manager: every write inside the block persists, or none does."""
        pass

    def require(self, collection: str, record_id: str) -> Any:
        """Like get(), but raises NotFoundError instead of returning None."""
        record = self.get(collection, record_id) if record_id else None
        if record is None:
            raise NotFoundError(RECORD_KINDS.get(collection, collection), record_id)
        return record


def _sort_records(records: List[Any], order_by: Sequence[str]) -> List[Any]:
    # Stable sorts applied from the last key to the first; None sorts last
    # ascending and first descending, matching most SQL engines.
    for name, descending in reversed(parse_order(order_by)):
        present = [r for r in records if getattr(r, name) is not None]
        missing = [r for r in records if getattr(r, name) is None]
        present.sort(key=lambda r: getattr(r, name), reverse=descending)
        records = missing + present if descending else present + missing
    return records


class InMemoryCatalog(CatalogStore):
    """
    Dict-backed catalog store with optional JSON persistence.

    Thread-safety note:
        This class does NOT provide thread-safety guarantees. It is meant
        for tests, scripts and single-process use; the web application
        uses the SQL store.
    """

    STORAGE_VERSION = "1.0"

    def __init__(self, storage_path: Optional[str] = None):
        self._collections: Dict[str, Dict[str, Any]] = {name: {} for name in RECORD_TYPES}
        self._storage_path = storage_path
        self._atomic_depth = 0

    @property
    def storage_path(self) -> Optional[str]:
        return self._storage_path

    def _table(self, collection: str) -> Dict[str, Any]:
        self.record_type(collection)
        return self._collections[collection]

    def get(self, collection, record_id):
        record = self._table(collection).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def list(self, collection, filters=None, order_by=()):
        table = self._table(collection)
        filters = filters or {}
        self.check_fields(collection, filters.keys())
        self.check_fields(collection, [name for name, _ in parse_order(order_by)])

        records = [
            r for r in table.values()
            if all(getattr(r, k) == v for k, v in filters.items())
        ]
        return copy.deepcopy(_sort_records(records, order_by))

    def insert(self, collection, record):
        expected = self.record_type(collection)
        if not isinstance(record, expected):
            raise TypeError(f"Expected {expected.__name__}, got {type(record).__name__}")

        table = self._table(collection)
        if record.id is None:
            record = replace(record, id=new_record_id())
        elif record.id in table:
            raise ValidationError(f"{collection} record '{record.id}' already exists")

        table[record.id] = copy.deepcopy(record)
        self._autosave(undo=lambda: table.pop(record.id, None))
        return copy.deepcopy(record)

    def update(self, collection, record_id, changes):
        table = self._table(collection)
        self.check_fields(collection, changes.keys())
        if "id" in changes and changes["id"] != record_id:
            raise ValidationError("Record ids cannot be changed")
        if record_id not in table:
            raise NotFoundError(RECORD_KINDS[collection], record_id)

        previous = table[record_id]
        updated = replace(previous, **copy.deepcopy(changes))
        table[record_id] = updated
        self._autosave(undo=lambda: table.__setitem__(record_id, previous))
        return copy.deepcopy(updated)

    def delete(self, collection, record_id):
        table = self._table(collection)
        if record_id in table:
            removed = table.pop(record_id)
            self._autosave(undo=lambda: table.__setitem__(record_id, removed))
            return True
        return False

    @contextmanager
    def atomic(self) -> Iterator[None]:
        snapshot = copy.deepcopy(self._collections) if self._atomic_depth == 0 else None
        self._atomic_depth += 1
        try:
            yield
        except Exception:
            self._atomic_depth -= 1
            if snapshot is not None:
                self._collections = snapshot
                logger.warning("Catalog transaction rolled back")
            raise
        else:
            self._atomic_depth -= 1
            if snapshot is not None:
                try:
                    self._autosave()
                except BackendUnavailableError:
                    self._collections = snapshot
                    logger.warning("Catalog transaction rolled back: save failed")
                    raise

    def _autosave(self, undo=None) -> None:
        """Persist outside atomic blocks; on failure run ``undo`` so memory matches disk."""
        if not self._storage_path or self._atomic_depth != 0:
            return
        try:
            self.save()
        except BackendUnavailableError:
            if undo is not None:
                undo()
            raise

    def record_count(self, collection: str) -> int:
        return len(self._table(collection))

    def save(self) -> None:
        """
        Atomically save every collection to the JSON file.

        GUARANTEES:
        - Atomic: temp file + rename
        - Deterministic: sorted keys and record ids

        Raises:
            ValueError: If no storage path was configured
            BackendUnavailableError: If the file cannot be written
        """
        if not self._storage_path:
            raise ValueError("InMemoryCatalog has no storage_path")

        data = {
            "version": self.STORAGE_VERSION,
            "saved_at": datetime.now().isoformat(),
            "collections": {
                name: [table[rid].to_dict() for rid in sorted(table)]
                for name, table in self._collections.items()
            },
        }

        target_dir = os.path.dirname(os.path.abspath(self._storage_path)) or "."
        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(suffix=".json.tmp", dir=target_dir)
            with os.fdopen(fd, "w", encoding="utf-8") as tf:
                json.dump(data, tf, indent=2, ensure_ascii=False, sort_keys=True)
                tf.flush()
                os.fsync(tf.fileno())
            shutil.move(temp_path, self._storage_path)
        except Exception as e:
            try:
                if temp_path and os.path.exists(temp_path):
                    os.remove(temp_path)
            except OSError:
                pass
            if isinstance(e, OSError):
                logger.error(f"Could not save catalog to {self._storage_path}: {e}")
                raise BackendUnavailableError(f"Could not save catalog to '{self._storage_path}': {e}") from e
            raise

    def load(self) -> None:
        """
        Load every collection from the JSON file.

        A missing file leaves the catalog empty.

        Raises:
            ValueError: If the storage version is unsupported
            json.JSONDecodeError: If the file is malformed
        """
        if not self._storage_path or not os.path.exists(self._storage_path):
            return

        with open(self._storage_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        version = data.get("version", "0.0")
        if version != self.STORAGE_VERSION:
            raise ValueError(
                f"Unsupported storage version: {version}. "
                f"Expected: {self.STORAGE_VERSION}"
            )

        collections: Dict[str, Dict[str, Any]] = {name: {} for name in RECORD_TYPES}
        for name, rows in data.get("collections", {}).items():
            record_type = self.record_type(name)
            for row in rows:
                record = record_type.from_dict(row)
                collections[name][record.id] = record
        self._collections = collections

    def __repr__(self) -> str:
        counts = ", ".join(f"{name}={len(t)}" for name, t in self._collections.items())
        return f"InMemoryCatalog({counts}, storage={self._storage_path!r})"
