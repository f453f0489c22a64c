"""Async access to the Firestore document store.

Documents come back as plain dicts with their document ID under ``"id"``;
the key is stripped again before writing.
"""

import logging
from functools import lru_cache
from typing import Any

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account

from academy_admin.config import settings
from academy_admin.exceptions import DocumentStoreError

logger = logging.getLogger(__name__)

# Firestore rejects batches above this many writes
MAX_BATCH_SIZE = 500


def _snapshot_to_dict(snapshot) -> dict[str, Any]:
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


def _without_id(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k != "id"}


class DocumentStore:
    """Thin wrapper over ``firestore.AsyncClient``."""

    def __init__(self, client: firestore.AsyncClient):
        self._client = client

    @classmethod
    def from_settings(cls) -> "DocumentStore":
        """Build a client from ``FIRESTORE_*`` settings.

        Without a credentials file the client falls back to application
        default credentials (``GOOGLE_APPLICATION_CREDENTIALS``).
        """
        credentials = None
        if settings.firestore_credentials_file:
            credentials = service_account.Credentials.from_service_account_file(
                settings.firestore_credentials_file
            )
        client = firestore.AsyncClient(
            project=settings.firestore_project_id,
            credentials=credentials,
        )
        logger.info(f"Connected to document store project {client.project}")
        return cls(client)

    @property
    def server_timestamp(self):
        return firestore.SERVER_TIMESTAMP

    async def list_collection(
        self,
        collection: str,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Read a whole collection."""
        query = self._client.collection(collection)
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        try:
            return [_snapshot_to_dict(s) async for s in query.stream()]
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreError(f"Failed to read {collection}: {e}") from e

    async def find(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        """Documents whose ``field`` equals ``value``."""
        query = self._client.collection(collection).where(filter=FieldFilter(field, "==", value))
        try:
            return [_snapshot_to_dict(s) async for s in query.stream()]
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreError(f"Failed to query {collection}.{field}: {e}") from e

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:
            snapshot = await self._client.collection(collection).document(doc_id).get()
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreError(f"Failed to read {collection}/{doc_id}: {e}") from e
        if not snapshot.exists:
            return None
        return _snapshot_to_dict(snapshot)

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        """Create a document with a generated ID and return the ID."""
        try:
            _, ref = await self._client.collection(collection).add(_without_id(data))
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreError(f"Failed to add to {collection}: {e}") from e
        return ref.id

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        try:
            await self._client.collection(collection).document(doc_id).set(_without_id(data), merge=merge)
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreError(f"Failed to write {collection}/{doc_id}: {e}") from e

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        try:
            await self._client.collection(collection).document(doc_id).update(_without_id(data))
        except google_exceptions.NotFound as e:
            raise DocumentStoreError(f"{collection}/{doc_id} does not exist") from e
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreError(f"Failed to update {collection}/{doc_id}: {e}") from e

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            await self._client.collection(collection).document(doc_id).delete()
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreError(f"Failed to delete {collection}/{doc_id}: {e}") from e

    async def update_many(self, collection: str, updates: dict[str, dict[str, Any]]) -> int:
        """Apply ``{doc_id: fields}`` updates in committed batches."""
        items = list(updates.items())
        written = 0
        for start in range(0, len(items), MAX_BATCH_SIZE):
            batch = self._client.batch()
            chunk = items[start:start + MAX_BATCH_SIZE]
            for doc_id, data in chunk:
                batch.update(self._client.collection(collection).document(doc_id), _without_id(data))
            try:
                await batch.commit()
            except google_exceptions.GoogleAPICallError as e:
                raise DocumentStoreError(f"Batch update of {collection} failed after {written} writes: {e}") from e
            written += len(chunk)
            logger.debug(f"Committed {written}/{len(items)} updates to {collection}")
        return written


@lru_cache
def get_document_store() -> DocumentStore:
    """Get the process-wide document store client."""
    return DocumentStore.from_settings()
