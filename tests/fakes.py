"""In-memory stand-in for the document store."""

import copy
import itertools
from datetime import datetime, timezone

from academy_admin.exceptions import DocumentStoreError


class MemoryDocumentStore:
    """Implements the ``DocumentStore`` interface over dicts.

    ``writes`` records every mutating call as ``(operation, collection, doc_id)``
    so tests can assert that dry runs leave the store alone.
    """

    def __init__(self, collections: dict[str, list[dict]] | None = None):
        self.collections: dict[str, dict[str, dict]] = {}
        self.writes: list[tuple[str, str, str]] = []
        self._ids = itertools.count(1)
        for name, docs in (collections or {}).items():
            self.collections[name] = {doc["id"]: copy.deepcopy(doc) for doc in docs}

    @property
    def server_timestamp(self):
        return datetime.now(timezone.utc)

    def docs(self, collection: str) -> dict[str, dict]:
        return self.collections.setdefault(collection, {})

    async def list_collection(self, collection, order_by=None, descending=False):
        docs = [copy.deepcopy(d) for d in self.docs(collection).values()]
        if order_by:
            docs.sort(key=lambda d: (d.get(order_by) is None, d.get(order_by) or 0), reverse=descending)
        return docs

    async def find(self, collection, field, value):
        return [copy.deepcopy(d) for d in self.docs(collection).values() if d.get(field) == value]

    async def get(self, collection, doc_id):
        doc = self.docs(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def add(self, collection, data):
        doc_id = f"{collection}-new-{next(self._ids)}"
        self.docs(collection)[doc_id] = {**copy.deepcopy(data), "id": doc_id}
        self.writes.append(("add", collection, doc_id))
        return doc_id

    async def set(self, collection, doc_id, data, merge=False):
        existing = self.docs(collection).get(doc_id, {}) if merge else {}
        self.docs(collection)[doc_id] = {**existing, **copy.deepcopy(data), "id": doc_id}
        self.writes.append(("set", collection, doc_id))

    async def update(self, collection, doc_id, data):
        if doc_id not in self.docs(collection):
            raise DocumentStoreError(f"{collection}/{doc_id} does not exist")
        self.docs(collection)[doc_id].update(copy.deepcopy(data))
        self.writes.append(("update", collection, doc_id))

    async def delete(self, collection, doc_id):
        self.docs(collection).pop(doc_id, None)
        self.writes.append(("delete", collection, doc_id))

    async def update_many(self, collection, updates):
        for doc_id, data in updates.items():
            await self.update(collection, doc_id, data)
        return len(updates)
