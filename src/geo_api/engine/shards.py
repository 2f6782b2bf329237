"""Shard labels for the primary partition key.

Records are written under ``"{label}#{geohash prefix}"`` with a label picked at
random, spreading a popular prefix over several partitions. Reading a prefix
therefore means reading it under every label.
"""

from collections.abc import Iterable

import numpy as np


def shard_labels(shard_count: int) -> list[str]:
    """Labels ``S1`` .. ``S{shard_count}``."""
    return [f"S{i}" for i in range(1, shard_count + 1)]


def expand_shards(prefixes: Iterable[str], shard_count: int) -> list[str]:
    """Qualify every prefix with every shard label.

    ``k`` distinct prefixes produce exactly ``k * shard_count`` distinct keys.
    """
    labels = shard_labels(shard_count)
    return [f"{label}#{prefix}" for prefix in prefixes for label in labels]


def random_shard_label(shard_count: int, rng: np.random.Generator) -> str:
    """Write-side label choice."""
    return f"S{int(rng.integers(1, shard_count + 1))}"


def split_sharded_key(key: str) -> tuple[str, str]:
    """Split ``"S3#gcp"`` into ``("S3", "gcp")``."""
    label, sep, prefix = key.partition("#")
    if not sep:
        raise ValueError(f"Not a shard-qualified key: {key!r}")
    return label, prefix
