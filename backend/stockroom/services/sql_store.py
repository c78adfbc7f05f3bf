# Overview: SQLAlchemy-backed document store; one batch is one database transaction.

"""
SQL Document Store

Maps document collections onto Flask-SQLAlchemy models. Each model exposes
to_document()/apply_document() (see models/base.py) so services never touch
ORM objects directly.

ATOMICITY: batch_write applies every op inside the session's transaction and
commits once. Any failure rolls the whole batch back.

GUARDED INCREMENT: increments run as a single relative UPDATE:
    UPDATE products SET stock = stock + :delta
    WHERE id = :id AND stock + :delta >= :floor
A zero rowcount means either the row is gone or the guard tripped; the batch
is rolled back in both cases. Concurrent sales therefore never read-modify-write
the stock column.
"""

from __future__ import annotations

from sqlalchemy import text, update
from sqlalchemy.exc import SQLAlchemyError

from ..models import Product, Supplier, Family, Sale, User
from ..time_utils import utcnow
from .concurrency import run_with_retry
from .document_store import (
    DocumentStore,
    StoreError,
    StoreUnavailableError,
    MissingDocumentError,
    GuardFailedError,
    OP_SET,
    OP_UPDATE,
    OP_INCREMENT,
    OP_DELETE,
    resolve_server_values,
)


COLLECTION_MODELS = {
    "products": Product,
    "suppliers": Supplier,
    "families": Family,
    "sales": Sale,
    "users": User,
}


class SqlDocumentStore(DocumentStore):
    def __init__(self, db, *, write_attempts: int = 3, backoff_base: float = 0.1):
        self._db = db
        self.write_attempts = write_attempts
        self.backoff_base = backoff_base

    @property
    def session(self):
        return self._db.session

    def _model(self, collection: str):
        try:
            return COLLECTION_MODELS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}")

    def _column(self, model, name: str):
        if name not in model.__table__.columns:
            raise ValueError(f"{model.__tablename__} has no queryable field {name!r}")
        return getattr(model, name)

    def query(
        self,
        collection: str,
        filters: dict | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        model = self._model(collection)
        # Always reload: documents are snapshots of committed state, not live rows
        q = self.session.query(model).populate_existing()

        # Equality filters only; None matches NULL
        for name, value in (filters or {}).items():
            column = self._column(model, name)
            q = q.filter(column.is_(None) if value is None else column == value)

        if order_by:
            column = self._column(model, order_by)
            q = q.order_by(column.desc() if descending else column.asc(), model.id.asc())
        else:
            q = q.order_by(model.id.asc())

        if limit is not None:
            q = q.limit(limit)

        try:
            rows = q.all()
            return [row.to_document() for row in rows]
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreUnavailableError(f"Query on {collection} failed") from exc

    def get_by_id(self, collection: str, doc_id: str) -> dict | None:
        model = self._model(collection)
        try:
            row = self.session.get(model, doc_id, populate_existing=True)
            return row.to_document() if row is not None else None
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreUnavailableError(f"Read of {collection}/{doc_id} failed") from exc

    def batch_write(self, ops) -> None:
        ops = list(ops)
        if not ops:
            return

        def _op():
            now = utcnow()
            for op in ops:
                self._apply(op, now)
                # Flush per op so statements hit the DB in batch order
                self.session.flush()
            self.session.commit()

        try:
            run_with_retry(
                _op,
                session=self.session,
                attempts=self.write_attempts,
                backoff_base=self.backoff_base,
            )
        except StoreError:
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreUnavailableError("Batch commit failed") from exc

    def _apply(self, op, now) -> None:
        model = self._model(op.collection)
        data = resolve_server_values(op.data, now)

        if op.kind == OP_SET:
            # Replace semantics: drop the old row, insert a fresh one
            existing = self.session.get(model, op.doc_id)
            if existing is not None:
                self.session.delete(existing)
                self.session.flush()
            row = model(id=op.doc_id)
            row.apply_document(data)
            self.session.add(row)
            return

        if op.kind == OP_UPDATE:
            row = self.session.get(model, op.doc_id)
            if row is None:
                raise MissingDocumentError(op.collection, op.doc_id)
            row.apply_document(data)
            return

        if op.kind == OP_INCREMENT:
            stmt = update(model).where(model.id == op.doc_id)
            values = {}
            for name, delta in data.items():
                column = self._column(model, name)
                values[column] = column + delta
                if op.floor is not None:
                    stmt = stmt.where(column + delta >= op.floor)
            stmt = stmt.values(values).execution_options(synchronize_session=False)

            result = self.session.execute(stmt)
            if result.rowcount == 0:
                exists = self.session.query(model.id).filter(model.id == op.doc_id).first()
                if exists is None:
                    raise MissingDocumentError(op.collection, op.doc_id)
                raise GuardFailedError(op.collection, op.doc_id, next(iter(data)))
            return

        if op.kind == OP_DELETE:
            row = self.session.get(model, op.doc_id)
            if row is not None:
                self.session.delete(row)
            return

        raise ValueError(f"Unsupported op kind: {op.kind}")

    def ping(self) -> None:
        try:
            self.session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreUnavailableError("Database unreachable") from exc
