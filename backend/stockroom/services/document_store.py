# Overview: Document store adapter contract shared by the SQL and in-memory implementations.

"""
Document Store Adapter

WHY: The pricing engine and the sale registrar only need a narrow set of
primitives from persistence. Keeping them behind this contract lets the
engines run against the SQL-backed store in production and against
MemoryDocumentStore in unit tests.

Primitives:
- query(collection, filters) with equality filters only
- get_by_id(collection, doc_id)
- batch_write(ops): all-or-nothing
- new_id(collection): pre-allocates an id for use inside a batch
- SERVER_TIMESTAMP: placeholder resolved by the store at commit time

Documents are plain dicts with an "id" key. Money fields are Decimal.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any


OP_SET = "set"
OP_UPDATE = "update"
OP_INCREMENT = "increment"
OP_DELETE = "delete"
OP_KINDS = (OP_SET, OP_UPDATE, OP_INCREMENT, OP_DELETE)


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class StoreError(Exception):
    """Base class for document store failures."""


class StoreUnavailableError(StoreError):
    """The store failed a read or the atomic commit; nothing was applied."""


class MissingDocumentError(StoreError):
    """An update/increment targeted a document that does not exist."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} does not exist")
        self.collection = collection
        self.doc_id = doc_id


class GuardFailedError(StoreError):
    """A guarded increment would have pushed a field below its floor."""

    def __init__(self, collection: str, doc_id: str, field_name: str):
        super().__init__(f"{collection}/{doc_id}: {field_name} would drop below its floor")
        self.collection = collection
        self.doc_id = doc_id
        self.field_name = field_name


@dataclass(frozen=True)
class WriteOp:
    """
    One staged mutation inside a batch.

    kind=set:       replace/create the document with data
    kind=update:    merge data into an existing document
    kind=increment: add data[field] deltas to numeric fields of an existing
                    document; with floor set, the whole batch is rejected if
                    any incremented field would end below floor
    kind=delete:    remove the document (no-op if missing)
    """
    kind: str
    collection: str
    doc_id: str
    data: dict = field(default_factory=dict)
    floor: Any = None

    def __post_init__(self):
        if self.kind not in OP_KINDS:
            raise ValueError(f"Unknown write op kind: {self.kind}")


def set_op(collection: str, doc_id: str, data: dict) -> WriteOp:
    return WriteOp(OP_SET, collection, doc_id, dict(data))


def update_op(collection: str, doc_id: str, data: dict) -> WriteOp:
    return WriteOp(OP_UPDATE, collection, doc_id, dict(data))


def increment_op(collection: str, doc_id: str, field_name: str, delta, *, floor=None) -> WriteOp:
    return WriteOp(OP_INCREMENT, collection, doc_id, {field_name: delta}, floor=floor)


def delete_op(collection: str, doc_id: str) -> WriteOp:
    return WriteOp(OP_DELETE, collection, doc_id)


def resolve_server_values(data: dict, now) -> dict:
    """Replace SERVER_TIMESTAMP placeholders with the commit time."""
    return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in data.items()}


class DocumentStore:
    """Contract implemented by SqlDocumentStore and MemoryDocumentStore."""

    def query(
        self,
        collection: str,
        filters: dict | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        raise NotImplementedError

    def get_by_id(self, collection: str, doc_id: str) -> dict | None:
        raise NotImplementedError

    def batch_write(self, ops: list[WriteOp]) -> None:
        raise NotImplementedError

    def new_id(self, collection: str) -> str:
        return uuid.uuid4().hex

    def ping(self) -> None:
        """Raise StoreUnavailableError if the backing store cannot be reached."""
        raise NotImplementedError
