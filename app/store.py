"""Document store facade over the SQLAlchemy session factory."""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, NamedTuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db_models import DocumentRecord
from .errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class DocumentRef(NamedTuple):
    """Address of a single document."""

    collection: str
    doc_id: str


class DocumentStore:
    """Collection/id keyed JSON documents with batch deletes.

    Every method opens its own session so each write is atomic on its own.
    ``delete_batch`` is the only multi-document operation and commits all of
    its deletions in one transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            record = await session.get(DocumentRecord, (collection, doc_id))
            if record is None:
                return None
            return copy.deepcopy(record.payload)

    async def put(
        self, collection: str, doc_id: str, document: dict[str, Any]
    ) -> dict[str, Any]:
        """Create or replace a document."""

        payload = copy.deepcopy(document)
        async with self._session_factory() as session:
            record = await session.get(DocumentRecord, (collection, doc_id))
            if record is None:
                session.add(
                    DocumentRecord(collection=collection, doc_id=doc_id, payload=payload)
                )
            else:
                record.payload = payload
                record.updated_at = datetime.now(timezone.utc)
            await session.commit()
        return copy.deepcopy(payload)

    async def create(
        self, collection: str, doc_id: str, document: dict[str, Any]
    ) -> dict[str, Any]:
        """Insert a new document, refusing to replace an existing one."""

        payload = copy.deepcopy(document)
        async with self._session_factory() as session:
            session.add(DocumentRecord(collection=collection, doc_id=doc_id, payload=payload))
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(f"{collection}/{doc_id} already exists") from exc
        return copy.deepcopy(payload)

    async def update(
        self, collection: str, doc_id: str, partial: dict[str, Any]
    ) -> dict[str, Any]:
        """Shallow-merge ``partial`` into an existing document."""

        async with self._session_factory() as session:
            record = await session.get(DocumentRecord, (collection, doc_id))
            if record is None:
                raise NotFoundError(f"{collection}/{doc_id} does not exist")
            # Assign a fresh dict so the JSON column is flagged as modified.
            merged = {**record.payload, **copy.deepcopy(partial)}
            record.payload = merged
            record.updated_at = datetime.now(timezone.utc)
            await session.commit()
        return copy.deepcopy(merged)

    async def delete(self, collection: str, doc_id: str) -> bool:
        return bool(await self.delete_batch([DocumentRef(collection, doc_id)]))

    async def delete_batch(self, refs: Iterable[DocumentRef]) -> int:
        """Delete every referenced document in a single transaction."""

        targets = list(dict.fromkeys(DocumentRef(*ref) for ref in refs))
        if not targets:
            return 0
        deleted = 0
        async with self._session_factory() as session:
            async with session.begin():
                for ref in targets:
                    result = await session.execute(
                        delete(DocumentRecord).where(
                            DocumentRecord.collection == ref.collection,
                            DocumentRecord.doc_id == ref.doc_id,
                        )
                    )
                    deleted += result.rowcount or 0
        logger.debug("Deleted %s of %s documents in batch", deleted, len(targets))
        return deleted

    async def list_collection(self, collection: str) -> list[dict[str, Any]]:
        async with self._session_factory() as session:
            result = await session.execute(self._collection_query(collection))
            return [copy.deepcopy(record.payload) for record in result.scalars().all()]

    async def query_by_field(
        self, collection: str, field: str, value: Any
    ) -> list[dict[str, Any]]:
        """Return documents in ``collection`` whose ``field`` equals ``value``."""

        query = self._collection_query(collection).where(
            self._field_matches(field, value)
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [copy.deepcopy(record.payload) for record in result.scalars().all()]

    @staticmethod
    def _field_matches(field: str, value: Any):
        element = DocumentRecord.payload[field]
        # bool is checked before int because it is an int subclass.
        if isinstance(value, str):
            return element.as_string() == value
        if isinstance(value, bool):
            return element.as_boolean() == value
        if isinstance(value, int):
            return element.as_integer() == value
        if isinstance(value, float):
            return element.as_float() == value
        raise TypeError(f"Unsupported query value type: {type(value).__name__}")

    @staticmethod
    def _collection_query(collection: str):
        return (
            select(DocumentRecord)
            .where(DocumentRecord.collection == collection)
            .order_by(DocumentRecord.created_at, DocumentRecord.doc_id)
        )
