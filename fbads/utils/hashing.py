"""Identifier normalization, hashing and batching for audience uploads."""
from __future__ import annotations

import hashlib
import re
from typing import Iterator, List, Sequence, TypeVar

T = TypeVar("T")

BATCH_SIZE = 10000
SCHEMAS = ("EMAIL", "PHONE")
_NON_DIGIT = re.compile(r"\D+")


def normalize_schema(schema: str) -> str:
    """Return the upper-cased schema name or raise ValueError if unsupported.

    Only raw identifier schemas are accepted; values are always hashed here,
    so a pre-hashed ``*_SHA256`` schema is rejected.
    """
    if not isinstance(schema, str):
        raise ValueError(f"unsupported schema: {schema!r}")
    cleaned = schema.strip().upper()
    if cleaned not in SCHEMAS:
        raise ValueError(f"unsupported schema: {schema!r}")
    return cleaned


def normalize_identifier(value: str, schema: str) -> str:
    """Normalize a raw e-mail address or phone number before hashing.

    EMAIL: trimmed and lower-cased.
    PHONE: digits only, so ``+1 (555) 010-9999`` becomes ``15550109999``.
    """
    text = str(value).strip()
    if normalize_schema(schema) == "EMAIL":
        return text.lower()
    return _NON_DIGIT.sub("", text)


def hash_identifier(value: str, schema: str) -> str:
    return hash_normalized(normalize_identifier(value, schema))


def hash_normalized(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def chunked(items: Sequence[T], size: int = BATCH_SIZE) -> Iterator[List[T]]:
    """Yield consecutive slices of at most ``size`` items, preserving order."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


__all__ = [
    "BATCH_SIZE",
    "SCHEMAS",
    "normalize_schema",
    "normalize_identifier",
    "hash_identifier",
    "hash_normalized",
    "chunked",
]
