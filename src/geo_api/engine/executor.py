"""Bounded-concurrency fan-out of key lookups against the store."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from geo_api.engine.queries import (
    QueryPlan,
    StoreLayout,
    build_key_query,
    fetch_limit,
)
from geo_api.repositories.geo_items import GeoItemStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


@dataclass
class KeyResult:
    """Outcome of one key lookup: items on success, the exception otherwise."""

    key: str
    items: list[dict[str, Any]] = field(default_factory=list)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class QueryExecutor:
    """Issues one store query per planned key, ``batch_size`` at a time.

    Batches run one after another; the queries inside a batch run
    concurrently. A failing key is logged and left out of the result, it
    never fails the request.
    """

    def __init__(
        self,
        store: GeoItemStore,
        layout: StoreLayout,
        batch_size: int = DEFAULT_BATCH_SIZE,
        minimum_fetch_limit: int = 10,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.layout = layout
        self.batch_size = batch_size
        self.minimum_fetch_limit = minimum_fetch_limit

    async def execute(self, plan: QueryPlan, limit: int) -> list[dict[str, Any]]:
        """Run every key in the plan and concatenate the successful pages.

        The result is unordered and may contain duplicates.
        """
        per_key_limit = fetch_limit(limit, plan.tier, self.minimum_fetch_limit)
        results = await self.execute_keys(plan, per_key_limit)

        items: list[dict[str, Any]] = []
        failed = 0
        for result in results:
            if result.ok:
                items.extend(result.items)
            else:
                failed += 1

        if failed:
            logger.warning("%d of %d key queries failed", failed, len(results))
        logger.info(
            "Fetched %d items from %d keys (fetch limit %d)",
            len(items),
            len(plan.keys),
            per_key_limit,
        )
        return items

    async def execute_keys(self, plan: QueryPlan, per_key_limit: int) -> list[KeyResult]:
        """Run the plan batch by batch, returning one KeyResult per key."""
        results: list[KeyResult] = []
        for batch in _chunks(plan.keys, self.batch_size):
            results.extend(
                await asyncio.gather(
                    *(self._query_key(key, plan, per_key_limit) for key in batch)
                )
            )
        return results

    async def _query_key(self, key: str, plan: QueryPlan, per_key_limit: int) -> KeyResult:
        try:
            query = build_key_query(key, plan.tier, self.layout, per_key_limit)
            items = await self.store.query(query)
        except Exception as e:
            logger.error("Error querying prefix %s: %s", key, e)
            return KeyResult(key=key, error=e)

        logger.debug("Retrieved %d record(s) for prefix %s", len(items), key)
        return KeyResult(key=key, items=list(items))


def _chunks(keys: Sequence[str], size: int) -> list[Sequence[str]]:
    """Split keys into consecutive slices of at most ``size``."""
    return [keys[i : i + size] for i in range(0, len(keys), size)]
