"""Geo item repository - key lookups against the spatial data table."""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Any, Protocol

import boto3
import numpy as np
import pygeohash as pgh
from boto3.dynamodb.types import TypeDeserializer

from geo_api.engine.queries import KeyQuery, StoreLayout
from geo_api.engine.shards import random_shard_label

logger = logging.getLogger(__name__)


class GeoItemStore(Protocol):
    """Anything that can answer a single partition (+ sort prefix) lookup."""

    async def query(self, query: KeyQuery) -> list[dict[str, Any]]:
        """Return at most ``query.limit`` raw items, ordered by sort key."""
        ...

    def close(self) -> None:
        """Release any client resources."""
        ...


def build_item_keys(
    lat: float, lon: float, layout: StoreLayout, rng: np.random.Generator
) -> dict[str, str]:
    """Key attributes a record is written with."""
    full_hash = pgh.encode(lat, lon, precision=layout.sort_key_precision)
    shard = random_shard_label(layout.shard_count, rng)
    return {
        layout.partition_key: f"{shard}#{full_hash[: layout.partition_key_precision]}",
        layout.sort_key: full_hash,
        layout.index_partition_key: full_hash[: layout.secondary_index_precision],
        layout.index_sort_key: full_hash,
        "geoHash": full_hash,
    }


def _from_dynamo_number(value: Any) -> Any:
    """Replace the Decimals produced by TypeDeserializer with int/float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo_number(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo_number(v) for v in value]
    return value


class DynamoGeoItemStore:
    """DynamoDB-backed store.

    Uses the low-level boto3 client, which is safe to share between threads;
    each query runs on a dedicated thread pool sized for one fan-out batch.
    """

    def __init__(
        self,
        table_name: str,
        client: Any | None = None,
        region_name: str | None = None,
        endpoint_url: str | None = None,
        max_workers: int = 50,
    ) -> None:
        self.table_name = table_name
        self.client = client or boto3.client(
            "dynamodb", region_name=region_name, endpoint_url=endpoint_url
        )
        self._deserializer = TypeDeserializer()
        self._pool = ThreadPoolExecutor(max_workers=max_workers)

    def build_request(self, query: KeyQuery) -> dict[str, Any]:
        """Translate a KeyQuery into Query API parameters."""
        expression = "#pk = :pk"
        names = {"#pk": query.partition_key_name}
        values = {":pk": {"S": query.partition_key_value}}

        if query.sort_key_name is not None:
            expression += " AND begins_with(#sk, :sk)"
            names["#sk"] = query.sort_key_name
            values[":sk"] = {"S": query.sort_key_prefix or ""}

        request: dict[str, Any] = {
            "TableName": self.table_name,
            "KeyConditionExpression": expression,
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            "Limit": query.limit,
        }
        if query.index_name is not None:
            request["IndexName"] = query.index_name
        return request

    async def query(self, query: KeyQuery) -> list[dict[str, Any]]:
        request = self.build_request(query)
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            self._pool, functools.partial(self.client.query, **request)
        )
        items = [
            _from_dynamo_number(
                {k: self._deserializer.deserialize(v) for k, v in item.items()}
            )
            for item in response.get("Items", [])
        ]
        logger.debug(
            "Successfully retrieved %d record(s) from DynamoDB query", len(items)
        )
        return items

    def close(self) -> None:
        self._pool.shutdown(wait=False)


class InMemoryGeoItemStore:
    """List-backed store with the same lookup semantics as the DynamoDB table.

    Used for local development (``STORE_BACKEND=memory``) and tests. Every
    query received is recorded in ``queries``.
    """

    def __init__(
        self,
        layout: StoreLayout,
        rng: np.random.Generator | None = None,
        items: list[dict[str, Any]] | None = None,
    ) -> None:
        self.layout = layout
        self.rng = rng if rng is not None else np.random.default_rng()
        self.items: list[dict[str, Any]] = list(items or [])
        self.queries: list[KeyQuery] = []

    def put_item(self, lat: float, lon: float, type: str, **payload: Any) -> dict[str, Any]:
        """Store a record under its derived key attributes and return it."""
        record = {
            **build_item_keys(lat, lon, self.layout, self.rng),
            "lat": lat,
            "lon": lon,
            "type": type,
            **payload,
        }
        self.items.append(record)
        return record

    async def query(self, query: KeyQuery) -> list[dict[str, Any]]:
        self.queries.append(query)

        if query.index_name is None:
            sort_key = self.layout.sort_key
        elif query.index_name == self.layout.index_name:
            sort_key = self.layout.index_sort_key
        else:
            raise ValueError(f"Unknown index: {query.index_name}")

        matches = [
            item
            for item in self.items
            if item.get(query.partition_key_name) == query.partition_key_value
            and (
                query.sort_key_name is None
                or str(item.get(query.sort_key_name, "")).startswith(
                    query.sort_key_prefix or ""
                )
            )
        ]
        matches.sort(key=lambda item: str(item.get(sort_key, "")))
        return [dict(item) for item in matches[: query.limit]]

    def close(self) -> None:
        pass
