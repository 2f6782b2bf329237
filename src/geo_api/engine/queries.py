"""Query planning: from geohash cells to concrete store lookups.

The table stores every record under two key structures:

* primary key ``PK = "{shard}#{hash[:P]}"``, ``SK = hash[:sort precision]``
* secondary index ``GSI1PK = hash[:G]``, ``GSI1SK = hash[:sort precision]``

A cell of precision ``p`` is looked up as follows:

* ``p == P``: ``PK = key``
* ``P < p < G``: ``PK = "{shard}#{hash[:P]}" AND begins_with(SK, hash)``
* ``p == G``: ``GSI1PK = key``
* ``p > G``: ``GSI1PK = hash[:G] AND begins_with(GSI1SK, hash)``
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from geo_api.engine.precision import IndexStrategy, PrecisionTier
from geo_api.engine.shards import expand_shards, split_sharded_key
from geo_api.exceptions import ConfigurationError

MAX_HASH_PRECISION = 12


@dataclass(frozen=True)
class StoreLayout:
    """Key layout of the spatial data table."""

    partition_key_precision: int = 1
    secondary_index_precision: int = 4
    sort_key_precision: int = 8
    shard_count: int = 10
    index_name: str = "GSI1"
    partition_key: str = "PK"
    sort_key: str = "SK"
    index_partition_key: str = "GSI1PK"
    index_sort_key: str = "GSI1SK"


@dataclass(frozen=True)
class KeyQuery:
    """A single store request: one partition, optionally one sort-key prefix."""

    partition_key_name: str
    partition_key_value: str
    limit: int
    sort_key_name: str | None = None
    sort_key_prefix: str | None = None
    index_name: str | None = None


@dataclass(frozen=True)
class QueryPlan:
    """The lookup keys to issue for one request, and the tier they belong to."""

    tier: PrecisionTier
    keys: tuple[str, ...]


def validate_tiers(tiers: Sequence[PrecisionTier], layout: StoreLayout) -> None:
    """Check the precision table against itself and against the key layout.

    Raises ConfigurationError on the first violation found.
    """
    p = layout.partition_key_precision
    g = layout.secondary_index_precision

    if not 1 <= p < g:
        raise ConfigurationError(
            f"Partition key precision {p} must be below secondary index precision {g}"
        )
    if layout.shard_count < 1:
        raise ConfigurationError("Shard count must be at least 1")
    if not tiers:
        raise ConfigurationError("Precision table is empty")
    if tiers[-1].min_distance_meters != 0:
        raise ConfigurationError("The last precision tier must have a threshold of 0")

    for previous, current in zip(tiers, tiers[1:]):
        if current.min_distance_meters >= previous.min_distance_meters:
            raise ConfigurationError(
                "Precision tier thresholds must be strictly decreasing"
            )

    for tier in tiers:
        precision = tier.hash_precision
        if not 1 <= precision <= min(MAX_HASH_PRECISION, layout.sort_key_precision):
            raise ConfigurationError(f"Unsupported hash precision {precision}")
        if not 0 < tier.fetch_limit_multiplier <= 1:
            raise ConfigurationError(
                f"Fetch limit multiplier {tier.fetch_limit_multiplier} outside (0, 1]"
            )
        if tier.index_strategy is IndexStrategy.PRIMARY and not p <= precision < g:
            raise ConfigurationError(
                f"Primary index tiers need {p} <= precision < {g}, got {precision}"
            )
        if tier.index_strategy is IndexStrategy.SECONDARY and precision < g:
            raise ConfigurationError(
                f"Secondary index tiers need precision >= {g}, got {precision}"
            )


def fetch_limit(limit: int, tier: PrecisionTier, floor: int = 10) -> int:
    """Per-key item cap, scaled down for coarse tiers."""
    # Round away float noise first: 100 * 0.3 must give 30, not 31
    scaled = round(limit * tier.fetch_limit_multiplier, 9)
    return max(math.ceil(scaled), floor)


def plan_keys(
    hashes: Iterable[str], tier: PrecisionTier, layout: StoreLayout
) -> QueryPlan:
    """Turn covering cells into lookup keys, shard-qualified for the primary index."""
    ordered = sorted(set(hashes))
    if tier.index_strategy is IndexStrategy.PRIMARY:
        ordered = expand_shards(ordered, layout.shard_count)
    return QueryPlan(tier=tier, keys=tuple(ordered))


def build_key_query(
    key: str, tier: PrecisionTier, layout: StoreLayout, limit: int
) -> KeyQuery:
    """Build the store request for one planned key."""
    precision = tier.hash_precision
    p = layout.partition_key_precision
    g = layout.secondary_index_precision

    if precision == p:
        return KeyQuery(
            partition_key_name=layout.partition_key,
            partition_key_value=key,
            limit=limit,
        )

    if p < precision < g:
        label, geohash = split_sharded_key(key)
        return KeyQuery(
            partition_key_name=layout.partition_key,
            partition_key_value=f"{label}#{geohash[:p]}",
            sort_key_name=layout.sort_key,
            sort_key_prefix=geohash,
            limit=limit,
        )

    if precision == g:
        return KeyQuery(
            partition_key_name=layout.index_partition_key,
            partition_key_value=key,
            index_name=layout.index_name,
            limit=limit,
        )

    if precision > g:
        return KeyQuery(
            partition_key_name=layout.index_partition_key,
            partition_key_value=key[:g],
            sort_key_name=layout.index_sort_key,
            sort_key_prefix=key,
            index_name=layout.index_name,
            limit=limit,
        )

    raise ConfigurationError(
        f"Precision {precision} is below the partition key precision {p}"
    )
