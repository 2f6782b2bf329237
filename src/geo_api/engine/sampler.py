"""Spatially even down-sampling of oversized result sets.

Truncating, or drawing a plain random sample, lets dense clusters crowd out
sparse regions. Instead items are bucketed into an equal-interval grid over
their own extent, every occupied cell gets the same quota, and whatever the
quotas leave short is topped up at random from the items not yet chosen.
"""

import logging
import math
from collections.abc import Sequence
from typing import Protocol, TypeVar

import numpy as np

logger = logging.getLogger(__name__)


class Located(Protocol):
    lat: float
    lon: float


T = TypeVar("T", bound=Located)


class SpatialSampler:
    """Reduce a list of located items to exactly ``limit`` entries."""

    def __init__(self, rng: np.random.Generator | None = None) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()

    def sample(self, items: Sequence[T], limit: int) -> list[T]:
        """Return ``min(limit, len(items))`` items spread across space.

        Inputs that already fit are returned unchanged.
        """
        if limit < 0:
            raise ValueError("limit must be non-negative")
        if len(items) <= limit:
            return list(items)
        if limit == 0:
            return []

        groups = self.group(items, limit)
        per_group = max(1, limit // len(groups))

        selected: list[int] = []
        for group in groups:
            take = min(per_group, len(group))
            selected.extend(self.rng.choice(group, size=take, replace=False).tolist())

        if len(selected) > limit:
            # More occupied cells than the limit allows one item each
            selected = self.rng.choice(selected, size=limit, replace=False).tolist()
        elif len(selected) < limit:
            chosen = set(selected)
            pool = [i for i in range(len(items)) if i not in chosen]
            top_up = self.rng.choice(pool, size=limit - len(selected), replace=False)
            selected.extend(top_up.tolist())

        logger.debug(
            "Sampled %d of %d items across %d cells (%d per cell)",
            len(selected),
            len(items),
            len(groups),
            per_group,
        )
        return [items[i] for i in selected]

    def group(self, items: Sequence[T], limit: int) -> list[list[int]]:
        """Bucket item indices into a grid of about ``limit`` cells.

        Only occupied cells are returned, in order of first appearance.
        """
        side = max(1, math.ceil(math.sqrt(limit)))
        lats = np.array([item.lat for item in items], dtype=float)
        lons = np.array([item.lon for item in items], dtype=float)

        rows = _grid_index(lats, side)
        cols = _grid_index(lons, side)
        cells = rows * side + cols

        buckets: dict[int, list[int]] = {}
        for index, cell in enumerate(cells.tolist()):
            buckets.setdefault(cell, []).append(index)
        return list(buckets.values())


def _grid_index(values: np.ndarray, side: int) -> np.ndarray:
    """Equal-interval bucket of each value over the values' own range."""
    low = values.min()
    span = values.max() - low
    if span <= 0:
        return np.zeros(len(values), dtype=int)
    index = np.floor((values - low) / span * side).astype(int)
    return np.clip(index, 0, side - 1)
