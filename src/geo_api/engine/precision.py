"""Precision tier selection.

A query's spatial extent (the distance between its two defining points)
decides how coarse the geohash cells used to cover it should be, and which
key structure of the table can serve cells of that size:

* long distances use short hashes against the sharded primary key,
* short distances use longer hashes against the secondary index.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from geo_api.engine.geodesy import distance_meters
from geo_api.schemas.geo import Point

logger = logging.getLogger(__name__)


class IndexStrategy(str, Enum):
    """Which key structure of the table a tier queries."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class PrecisionTier:
    """One row of the precision table."""

    min_distance_meters: float
    index_strategy: IndexStrategy
    hash_precision: int
    fetch_limit_multiplier: float


# Ordered by descending distance threshold; the last threshold must be 0.
PRECISION_TIERS: tuple[PrecisionTier, ...] = (
    PrecisionTier(2_000_000, IndexStrategy.PRIMARY, 1, 0.5),
    PrecisionTier(500_000, IndexStrategy.PRIMARY, 2, 0.4),
    PrecisionTier(100_000, IndexStrategy.PRIMARY, 3, 0.3),
    PrecisionTier(10_000, IndexStrategy.SECONDARY, 4, 0.2),
    PrecisionTier(0, IndexStrategy.SECONDARY, 5, 0.1),
)


def select_tier(
    distance: float, tiers: Sequence[PrecisionTier] = PRECISION_TIERS
) -> PrecisionTier:
    """Pick the first tier whose threshold is at or below ``distance``.

    Falls back to the finest (last) tier, so selection never fails.
    """
    for tier in tiers:
        if distance >= tier.min_distance_meters:
            return tier
    return tiers[-1]


def select_precision(
    start: Point,
    end: Point,
    tiers: Sequence[PrecisionTier] = PRECISION_TIERS,
) -> tuple[PrecisionTier, float]:
    """Select a tier from the great-circle distance between two points.

    Returns the tier together with the measured distance in meters.
    """
    distance = distance_meters(start, end)
    tier = select_tier(distance, tiers)
    logger.info(
        "Selected precision %d (%s index) for distance %.0fm",
        tier.hash_precision,
        tier.index_strategy.value,
        distance,
    )
    return tier, distance
