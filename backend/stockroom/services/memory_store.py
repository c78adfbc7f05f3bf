# Overview: In-process document store with the same batch semantics as the SQL store.

"""
Memory Document Store

Used by unit tests and by DOCUMENT_STORE=memory for local experiments.
Nothing survives a restart.

ATOMICITY: batch_write applies ops to a staged deep copy and swaps it in only
when every op succeeded, so a failing op leaves the store untouched.

Fault injection: set fail_reads / fail_writes to make the next calls raise
StoreUnavailableError, the way a dropped database connection would.
"""

from __future__ import annotations

import copy
import threading

from ..time_utils import utcnow
from .document_store import (
    DocumentStore,
    StoreUnavailableError,
    MissingDocumentError,
    GuardFailedError,
    OP_SET,
    OP_UPDATE,
    OP_INCREMENT,
    OP_DELETE,
    resolve_server_values,
)


class MemoryDocumentStore(DocumentStore):
    def __init__(self):
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.Lock()
        self.fail_reads = False
        self.fail_writes = False
        self.commit_count = 0

    def _check_reads(self) -> None:
        if self.fail_reads:
            raise StoreUnavailableError("Memory store unavailable (reads)")

    def query(
        self,
        collection: str,
        filters: dict | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        self._check_reads()
        filters = filters or {}
        with self._lock:
            docs = [
                copy.deepcopy(doc)
                for doc in self._collections.get(collection, {}).values()
                if all(doc.get(k) == v for k, v in filters.items())
            ]

        docs.sort(key=lambda d: d["id"])
        if order_by:
            # Stable sort on top of the id ordering; None sorts first
            docs.sort(
                key=lambda d: (d.get(order_by) is not None, d.get(order_by)),
                reverse=descending,
            )
        if limit is not None:
            docs = docs[:limit]
        return docs

    def get_by_id(self, collection: str, doc_id: str) -> dict | None:
        self._check_reads()
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def batch_write(self, ops) -> None:
        ops = list(ops)
        if not ops:
            return
        if self.fail_writes:
            raise StoreUnavailableError("Memory store unavailable (writes)")

        with self._lock:
            staged = copy.deepcopy(self._collections)
            now = utcnow()
            for op in ops:
                self._apply(staged, op, now)
            self._collections = staged
            self.commit_count += 1

    def _apply(self, staged: dict, op, now) -> None:
        docs = staged.setdefault(op.collection, {})
        data = resolve_server_values(op.data, now)

        if op.kind == OP_SET:
            docs[op.doc_id] = {"id": op.doc_id, **copy.deepcopy(data)}
            return

        if op.kind == OP_UPDATE:
            doc = docs.get(op.doc_id)
            if doc is None:
                raise MissingDocumentError(op.collection, op.doc_id)
            doc.update(copy.deepcopy(data))
            return

        if op.kind == OP_INCREMENT:
            doc = docs.get(op.doc_id)
            if doc is None:
                raise MissingDocumentError(op.collection, op.doc_id)
            for name, delta in data.items():
                new_value = (doc.get(name) or 0) + delta
                if op.floor is not None and new_value < op.floor:
                    raise GuardFailedError(op.collection, op.doc_id, name)
                doc[name] = new_value
            return

        if op.kind == OP_DELETE:
            docs.pop(op.doc_id, None)
            return

        raise ValueError(f"Unsupported op kind: {op.kind}")

    def ping(self) -> None:
        self._check_reads()
