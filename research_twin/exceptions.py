from __future__ import annotations


class ConfigurationError(Exception):
    """Raised for invalid or missing configuration."""


class IngestionError(Exception):
    """Raised when an ingestion request cannot be processed."""


class StoreWriteError(Exception):
    """Raised when a namespace snapshot could not be persisted."""
