"""Geohash query planning and fan-out engine."""
