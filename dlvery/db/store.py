"""
Collection store: CRUD over schemaless documents plus full-snapshot subscriptions.

Writes always go through a transaction. A single `create`/`update`/`delete`
call is its own transaction; multi-document operations (dispatch, return,
delivery confirmation) open one with `store.transaction()` so that either
every write lands or none does.

Subscribers get the complete matching document set, never deltas: once when
they subscribe and again after every committed transaction that touched the
collection.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Dict, List, Mapping, Optional, Set, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dlvery.core.exceptions import NotFoundError, StoreError

from .database import async_session_maker
from .document import Document, new_document_id

logger = logging.getLogger(__name__)

# ("createdAt", "desc") style ordering
OrderBy = Tuple[str, str]


def _matches(doc: Mapping, where: Optional[Mapping]) -> bool:
    if not where:
        return True
    return all(doc.get(k) == v for k, v in where.items())


def _sorted(docs: List[dict], order_by: Optional[OrderBy]) -> List[dict]:
    if not order_by:
        return docs
    field, direction = order_by
    # documents missing the field sort as empty strings
    return sorted(
        docs,
        key=lambda d: str(d.get(field) if d.get(field) is not None else ""),
        reverse=(direction or "asc").lower() == "desc",
    )


class StoreTransaction:
    """Reads and writes bound to one database transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.touched: Set[str] = set()

    async def _row(self, collection: str, doc_id: str) -> Optional[Document]:
        return await self.session.get(Document, (collection, doc_id))

    async def get(self, collection: str, doc_id: str) -> dict:
        row = await self._row(collection, doc_id)
        if row is None:
            raise NotFoundError(collection, doc_id)
        return row.to_dict()

    async def get_all(
        self,
        collection: str,
        where: Optional[Mapping] = None,
        order_by: Optional[OrderBy] = None,
    ) -> List[dict]:
        res = await self.session.execute(select(Document).where(Document.collection == collection))
        docs = [row.to_dict() for row in res.scalars().all()]
        return _sorted([d for d in docs if _matches(d, where)], order_by)

    async def create(self, collection: str, doc: Mapping) -> str:
        doc_id = new_document_id()
        data = {k: v for k, v in doc.items() if k != "id"}
        self.session.add(Document(collection=collection, id=doc_id, data=data))
        await self.session.flush()
        self.touched.add(collection)
        return doc_id

    async def update(self, collection: str, doc_id: str, partial: Mapping) -> None:
        row = await self._row(collection, doc_id)
        if row is None:
            raise NotFoundError(collection, doc_id)
        # reassign so the JSON column registers the change
        row.data = {**(row.data or {}), **{k: v for k, v in partial.items() if k != "id"}}
        await self.session.flush()
        self.touched.add(collection)

    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Deleting something already gone is a no-op and returns False."""
        row = await self._row(collection, doc_id)
        if row is None:
            logger.info("delete of missing %s/%s ignored", collection, doc_id)
            return False
        await self.session.delete(row)
        await self.session.flush()
        self.touched.add(collection)
        return True


class CollectionStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker
        self._subscribers: Dict[str, List[asyncio.Queue]] = {}

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreTransaction]:
        async with self._session_maker() as session:
            tx = StoreTransaction(session)
            try:
                yield tx
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.exception("store transaction failed, rolled back")
                raise StoreError(f"store write failed: {e}") from e
            except Exception:
                await session.rollback()
                raise
        self._notify(tx.touched)

    async def get(self, collection: str, doc_id: str) -> dict:
        async with self.transaction() as tx:
            return await tx.get(collection, doc_id)

    async def get_all(
        self,
        collection: str,
        where: Optional[Mapping] = None,
        order_by: Optional[OrderBy] = None,
    ) -> List[dict]:
        async with self.transaction() as tx:
            return await tx.get_all(collection, where=where, order_by=order_by)

    async def create(self, collection: str, doc: Mapping) -> str:
        async with self.transaction() as tx:
            return await tx.create(collection, doc)

    async def update(self, collection: str, doc_id: str, partial: Mapping) -> None:
        async with self.transaction() as tx:
            await tx.update(collection, doc_id, partial)

    async def delete(self, collection: str, doc_id: str) -> bool:
        async with self.transaction() as tx:
            return await tx.delete(collection, doc_id)

    def _notify(self, collections: Set[str]) -> None:
        for collection in collections:
            for queue in self._subscribers.get(collection, []):
                queue.put_nowait(collection)

    def subscriber_count(self, collection: str) -> int:
        return len(self._subscribers.get(collection, []))

    async def subscribe(
        self,
        collection: str,
        where: Optional[Mapping] = None,
        order_by: Optional[OrderBy] = None,
    ) -> AsyncGenerator[List[dict], None]:
        """Yield the full matching snapshot now and after every change to `collection`."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.setdefault(collection, []).append(queue)
        try:
            yield await self.get_all(collection, where=where, order_by=order_by)
            while True:
                await queue.get()
                # several commits may have landed meanwhile; one fresh read covers them all
                while not queue.empty():
                    queue.get_nowait()
                yield await self.get_all(collection, where=where, order_by=order_by)
        finally:
            self._subscribers[collection].remove(queue)


store = CollectionStore(async_session_maker)


def get_store() -> CollectionStore:
    return store
