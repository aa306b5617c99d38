"""Ordering of a delivery agent's queue."""
from datetime import date
from itertools import groupby
from typing import Dict, Iterable, List, Mapping, Optional

from dlvery.core.conditions import priority_score
from dlvery.db.store import CollectionStore
from dlvery.schemas.common import as_date
from dlvery.schemas.deliveries import normalize_delivery

BUCKETS = ("past", "today", "upcoming")


def _delivery_date(delivery: Mapping) -> Optional[date]:
    # normalized deliveries use delivery_date, raw documents deliveryDate
    return as_date(delivery.get("delivery_date", delivery.get("deliveryDate")))


def group_by_date(deliveries: Iterable[Mapping], today: date) -> Dict[str, List[Mapping]]:
    """Split deliveries into past / today / upcoming and sort each bucket.

    Deliveries without a date count as today. Only the date part is compared.
    """
    groups: Dict[str, List[Mapping]] = {key: [] for key in BUCKETS}
    for delivery in deliveries:
        when = _delivery_date(delivery)
        if when is None or when == today:
            groups["today"].append(delivery)
        elif when < today:
            groups["past"].append(delivery)
        else:
            groups["upcoming"].append(delivery)
    return {key: sort_bucket(items) for key, items in groups.items()}


def sort_bucket(deliveries: List[Mapping]) -> List[Mapping]:
    """Perishable first, then damaged, then normal; earlier dates first within a level.

    Undated deliveries keep their place relative to the rest of their level;
    the dated ones are reordered among the positions they already occupy.
    """
    out: List[Mapping] = []
    ranked = sorted(deliveries, key=priority_score)
    for _, level in groupby(ranked, key=priority_score):
        level = list(level)
        dated_slots = [i for i, d in enumerate(level) if _delivery_date(d)]
        dated = sorted((level[i] for i in dated_slots), key=_delivery_date)
        for slot, delivery in zip(dated_slots, dated):
            level[slot] = delivery
        out.extend(level)
    return out


async def build_queue(store: CollectionStore, agent: str, today: Optional[date] = None) -> dict:
    """The agent's live deliveries, newest first from the store, then grouped and ranked."""
    today = today or date.today()
    docs = await store.get_all("deliveries", where={"agent": agent}, order_by=("createdAt", "desc"))
    return {"agent": agent, "as_of": today, **group_by_date(map(normalize_delivery, docs), today)}
