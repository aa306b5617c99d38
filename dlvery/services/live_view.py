"""
In-memory views fed only by store subscriptions.

A view holds the latest full snapshot of a query. It is replaced wholesale
on every emission; command handlers write through the store and never touch
a view directly.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import AsyncIterator, Callable, List, Mapping, Optional, Tuple

from dlvery.db.store import CollectionStore, OrderBy
from dlvery.schemas.deliveries import normalize_delivery

from .prioritization import group_by_date

logger = logging.getLogger(__name__)


class LiveView:
    def __init__(
        self,
        store: CollectionStore,
        collection: str,
        normalize: Callable[[Mapping], dict],
        where: Optional[Mapping] = None,
        order_by: Optional[OrderBy] = None,
    ):
        self.store = store
        self.collection = collection
        self.normalize = normalize
        self.where = where
        self.order_by = order_by
        self.version = 0
        self._docs: Tuple[dict, ...] = ()

    @property
    def docs(self) -> Tuple[dict, ...]:
        return self._docs

    def apply(self, snapshot: List[Mapping]) -> None:
        self._docs = tuple(self.normalize(doc) for doc in snapshot)
        self.version += 1

    async def updates(self) -> AsyncIterator["LiveView"]:
        """Apply each emission from the store and yield the view after it."""
        subscription = self.store.subscribe(self.collection, where=self.where, order_by=self.order_by)
        try:
            async for snapshot in subscription:
                self.apply(snapshot)
                yield self
        finally:
            await subscription.aclose()


@dataclass(frozen=True)
class ConditionChange:
    delivery_id: str
    sku: str
    type: str
    perishable: bool
    damaged: bool


class AgentQueueView(LiveView):
    """An agent's deliveries, with condition changes noticed between snapshots."""

    def __init__(self, store: CollectionStore, agent: str):
        super().__init__(
            store,
            "deliveries",
            normalize_delivery,
            where={"agent": agent},
            order_by=("createdAt", "desc"),
        )
        self.agent = agent
        self.changes: List[ConditionChange] = []

    def apply(self, snapshot: List[Mapping]) -> None:
        previous = {d["id"]: d for d in self.docs}
        super().apply(snapshot)
        changes = []
        for delivery in self.docs:
            before = previous.get(delivery["id"])
            if before is None:
                continue
            if any(before[k] != delivery[k] for k in ("type", "perishable", "damaged")):
                changes.append(ConditionChange(
                    delivery_id=delivery["id"],
                    sku=delivery["sku"],
                    type=delivery["type"],
                    perishable=delivery["perishable"],
                    damaged=delivery["damaged"],
                ))
                logger.info("condition updated for %s (%s): %s", delivery["sku"], self.agent, delivery["type"])
        self.changes = changes

    def queue(self, today: Optional[date] = None) -> dict:
        today = today or date.today()
        return {"agent": self.agent, "as_of": today, **group_by_date(self.docs, today)}
