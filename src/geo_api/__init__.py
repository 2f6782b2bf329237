"""Geohash-indexed point of interest queries over a sharded key-value store."""

__version__ = "0.1.0"
