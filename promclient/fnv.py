"""Inline FNV-1a 64-bit hashing of strings and single bytes."""

from __future__ import annotations

OFFSET64 = 14695981039346656037
PRIME64 = 1099511628211
_MASK64 = (1 << 64) - 1


def hash_new() -> int:
    """Return the initial FNV-1a 64-bit hash value."""
    return OFFSET64


def hash_add(h: int, s: str | bytes) -> int:
    """Add the bytes of a string (UTF-8, raw bytes kept) to a hash value."""
    data = s.encode("utf-8", "surrogateescape") if isinstance(s, str) else bytes(s)
    for byte in data:
        h = ((h ^ byte) * PRIME64) & _MASK64
    return h


def hash_add_byte(h: int, b: int) -> int:
    """Add one byte to a hash value."""
    if not 0 <= b <= 0xFF:
        raise ValueError(f"byte value out of range: {b}")
    return ((h ^ b) * PRIME64) & _MASK64