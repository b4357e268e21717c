"""
PostgreSQL Record Store - RecordStore over the documents table.

Each call runs in its own short transaction. Merge writes and
create-if-absent are single upsert statements, so they are atomic per
document without a read-modify-write round trip.
"""

import time
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from gamebridge.db.models import Document
from gamebridge.exceptions import StoreError
from gamebridge.models.domain import StoreDocument
from gamebridge.observability.metrics import metrics

logger = get_logger(__name__)


class SqlRecordStore:
    """Record store backed by PostgreSQL JSONB documents."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize the store.

        Args:
            session_factory: Factory producing async sessions bound to the database
        """
        self.session_factory = session_factory

    async def get(self, collection: str, doc_id: str) -> StoreDocument:
        start_time = time.time()
        stmt = select(Document.data).where(
            Document.collection == collection,
            Document.doc_id == doc_id,
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                data = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            self._record_failure("get", collection, start_time, exc)
            raise StoreError(str(exc), collection=collection) from exc

        metrics.record_store_operation("get", True, time.time() - start_time)
        if data is None:
            return StoreDocument(exists=False)
        return StoreDocument(exists=True, fields=dict(data))

    async def set(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        merge: bool = False,
    ) -> None:
        start_time = time.time()
        stmt = insert(Document).values(collection=collection, doc_id=doc_id, data=fields)
        if merge:
            # JSONB || keeps existing keys and overwrites the ones being written
            new_data = Document.data.op("||")(stmt.excluded.data)
        else:
            new_data = stmt.excluded.data
        stmt = stmt.on_conflict_do_update(
            index_elements=[Document.collection, Document.doc_id],
            set_={"data": new_data, "updated_at": func.now()},
        )

        try:
            async with self.session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            self._record_failure("set", collection, start_time, exc)
            raise StoreError(str(exc), collection=collection) from exc

        metrics.record_store_operation("set", True, time.time() - start_time)

    async def create(self, collection: str, doc_id: str, fields: dict[str, Any]) -> bool:
        start_time = time.time()
        stmt = (
            insert(Document)
            .values(collection=collection, doc_id=doc_id, data=fields)
            .on_conflict_do_nothing(index_elements=[Document.collection, Document.doc_id])
        )

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            self._record_failure("create", collection, start_time, exc)
            raise StoreError(str(exc), collection=collection) from exc

        metrics.record_store_operation("create", True, time.time() - start_time)
        created = result.rowcount == 1
        if not created:
            logger.info("record_store_create_conflict", collection=collection)
        return created

    def _record_failure(
        self, operation: str, collection: str, start_time: float, exc: Exception
    ) -> None:
        metrics.record_store_operation(operation, False, time.time() - start_time)
        metrics.record_error(type(exc).__name__, f"store_{operation}")
        logger.error(
            "record_store_operation_failed",
            operation=operation,
            collection=collection,
            error=str(exc),
        )
