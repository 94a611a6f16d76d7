"""Utility helpers."""
from .hashing import (
    BATCH_SIZE,
    SCHEMAS,
    normalize_schema,
    normalize_identifier,
    hash_identifier,
    hash_normalized,
    chunked,
)

__all__ = [
    "BATCH_SIZE",
    "SCHEMAS",
    "normalize_schema",
    "normalize_identifier",
    "hash_identifier",
    "hash_normalized",
    "chunked",
]
