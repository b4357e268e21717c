"""
Record Store Protocol - Backend-agnostic document store interface.

Documents are addressed by a collection path and a string id. Nested
collections use slash-separated paths (``users/{user_id}/subscription``).
"""

import asyncio
import copy
from typing import Any, Protocol

from structlog import get_logger

from gamebridge.models.domain import StoreDocument

logger = get_logger(__name__)

USERS_COLLECTION = "users"
PURCHASES_COLLECTION = "purchases"
SUBSCRIPTION_COLLECTION = "subscription"
SUBSCRIPTION_RECEIPT_ID = "receipt"


def subscription_collection(user_id: str) -> str:
    """Path of the per-user collection holding the active subscription receipt."""
    return f"{USERS_COLLECTION}/{user_id}/{SUBSCRIPTION_COLLECTION}"


class RecordStore(Protocol):
    """
    Record store protocol.

    Every method acts on exactly one document and is atomic for it.
    Implementations raise StoreError on failure.
    """

    async def get(self, collection: str, doc_id: str) -> StoreDocument:
        """
        Read one document.

        Returns:
            StoreDocument with exists=False when no document has that id
        """
        ...

    async def set(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        merge: bool = False,
    ) -> None:
        """
        Write one document.

        Args:
            merge: Keep existing fields not named in ``fields`` instead of
                replacing the whole document
        """
        ...

    async def create(self, collection: str, doc_id: str, fields: dict[str, Any]) -> bool:
        """
        Write one document only if no document has that id.

        Returns:
            True if the document was written, False if it already existed
        """
        ...


class InMemoryRecordStore:
    """Dict-backed record store for local runs and tests."""

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str], dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def get(self, collection: str, doc_id: str) -> StoreDocument:
        stored = self._documents.get((collection, doc_id))
        if stored is None:
            return StoreDocument(exists=False)
        return StoreDocument(exists=True, fields=copy.deepcopy(stored))

    async def set(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        merge: bool = False,
    ) -> None:
        async with self._lock:
            key = (collection, doc_id)
            if merge and key in self._documents:
                self._documents[key].update(copy.deepcopy(fields))
            else:
                self._documents[key] = copy.deepcopy(fields)

    async def create(self, collection: str, doc_id: str, fields: dict[str, Any]) -> bool:
        async with self._lock:
            key = (collection, doc_id)
            if key in self._documents:
                logger.info("record_store_create_conflict", collection=collection)
                return False
            self._documents[key] = copy.deepcopy(fields)
            return True

    def __len__(self) -> int:
        return len(self._documents)
