"""
Catalog store backed by the Flask-SQLAlchemy models.

Writes commit immediately unless they run inside atomic(); there the
outermost block commits once, and any exception rolls every write back.
"""
import logging
from contextlib import contextmanager
from enum import Enum

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from journal_press.catalog import (
    ARTICLES,
    ISSUES,
    JOURNALS,
    RECORD_KINDS,
    SUBMISSIONS,
    CatalogStore,
    new_record_id,
    parse_order,
)
from journal_press.errors import BackendUnavailableError, NotFoundError, ValidationError

from .database import ArticleRow, IssueRow, JournalRow, SubmissionRow, db, to_columns

logger = logging.getLogger(__name__)

ROW_TYPES = {
    JOURNALS: JournalRow,
    ISSUES: IssueRow,
    ARTICLES: ArticleRow,
    SUBMISSIONS: SubmissionRow,
}


def _column_value(value):
    return value.value if isinstance(value, Enum) else value


class SqlCatalogStore(CatalogStore):
    """CatalogStore over db.session. Needs an application context."""

    def __init__(self, database=db):
        self.db = database

    @property
    def session(self):
        return self.db.session

    @property
    def _atomic_depth(self):
        return self.session.info.get("atomic_depth", 0)

    @_atomic_depth.setter
    def _atomic_depth(self, value):
        self.session.info["atomic_depth"] = value

    def _row_type(self, collection):
        self.record_type(collection)
        return ROW_TYPES[collection]

    def _finish(self):
        """Flush inside atomic(); commit otherwise."""
        try:
            if self._atomic_depth:
                self.session.flush()
            else:
                self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"Integrity error: {e.orig}")
            raise ValidationError("The change conflicts with existing data.")
        except OperationalError as e:
            self.session.rollback()
            logger.error(f"Database unavailable: {e}")
            raise BackendUnavailableError("The database is unavailable. Please try again later.")

    @contextmanager
    def _reading(self):
        try:
            yield
        except OperationalError as e:
            self.session.rollback()
            logger.error(f"Database unavailable: {e}")
            raise BackendUnavailableError("The database is unavailable. Please try again later.")

    def get(self, collection, record_id):
        row_type = self._row_type(collection)
        with self._reading():
            row = self.session.get(row_type, record_id)
            return row.to_record() if row is not None else None

    def list(self, collection, filters=None, order_by=()):
        row_type = self._row_type(collection)
        filters = filters or {}
        self.check_fields(collection, filters.keys())
        self.check_fields(collection, [name for name, _ in parse_order(order_by)])

        query = row_type.query.filter_by(**{k: _column_value(v) for k, v in filters.items()})
        for name, descending in parse_order(order_by):
            column = getattr(row_type, name)
            query = query.order_by(column.desc().nulls_first() if descending else column.asc().nulls_last())
        with self._reading():
            return [row.to_record() for row in query.all()]

    def insert(self, collection, record):
        row_type = self._row_type(collection)
        expected = self.record_type(collection)
        if not isinstance(record, expected):
            raise TypeError(f"Expected {expected.__name__}, got {type(record).__name__}")

        values = {name: getattr(record, name) for name in expected.field_names()}
        values["id"] = values["id"] or new_record_id()
        row = row_type(**to_columns(values))
        self.session.add(row)
        self._finish()
        return row.to_record()

    def update(self, collection, record_id, changes):
        row_type = self._row_type(collection)
        self.check_fields(collection, changes.keys())
        if "id" in changes and changes["id"] != record_id:
            raise ValidationError("Record ids cannot be changed")

        with self._reading():
            row = self.session.get(row_type, record_id)
        if row is None:
            raise NotFoundError(RECORD_KINDS[collection], record_id)
        for name, value in to_columns(changes).items():
            setattr(row, name, value)
        self._finish()
        return row.to_record()

    def delete(self, collection, record_id):
        row_type = self._row_type(collection)
        with self._reading():
            row = self.session.get(row_type, record_id)
        if row is None:
            return False
        self.session.delete(row)
        self._finish()
        return True

    @contextmanager
    def atomic(self):
        self._atomic_depth += 1
        try:
            yield
        except Exception:
            self._atomic_depth -= 1
            if self._atomic_depth == 0:
                self.session.rollback()
                logger.warning("Catalog transaction rolled back")
            raise
        else:
            self._atomic_depth -= 1
            if self._atomic_depth == 0:
                self._finish()

    def ping(self):
        """Run a trivial query; raises BackendUnavailableError when the database is down."""
        try:
            self.session.execute(self.db.text("SELECT 1"))
        except SQLAlchemyError as e:
            self.session.rollback()
            raise BackendUnavailableError(f"Database check failed: {e}")
