"""Custom exceptions for the geo-api service."""


class GeoQueryError(Exception):
    """Base exception for all geo-api errors."""
    pass


class InvalidQueryError(GeoQueryError):
    """Raised when required spatial parameters are missing or malformed."""
    pass


class ConfigurationError(GeoQueryError):
    """Raised when the precision table or store key layout is inconsistent."""
    pass
