"""
Hash helpers shared by key derivation, generators and value synthesis.

Both functions reproduce the integer semantics of the reference benchmark so
that hashed keys and deterministic field values are identical to the ones it
produces for the same record index.
"""

from __future__ import annotations

_FNV_OFFSET_BASIS_64 = 0xCBF29CE484222325
_FNV_PRIME_64 = 0x100000001B3
_MASK_64 = (1 << 64) - 1
_SIGN_64 = 1 << 63
_MASK_32 = (1 << 32) - 1
_SIGN_32 = 1 << 31


def fnv1a_64(value: int) -> int:
    """Compute the FNV-1a 64-bit hash of the 8 little-endian bytes of *value*."""
    h = _FNV_OFFSET_BASIS_64
    value &= _MASK_64
    for _ in range(8):
        h ^= value & 0xFF
        h = (h * _FNV_PRIME_64) & _MASK_64
        value >>= 8
    return h


def fnv_hash64(value: int) -> int:
    """
    Non-negative FNV hash as the reference benchmark computes it.

    The 64-bit result is read as a signed long and its absolute value taken.
    """
    h = fnv1a_64(value)
    if h & _SIGN_64:
        h -= 1 << 64
    return abs(h)


def java_string_hash(text: str) -> int:
    """Return the signed 32-bit ``String.hashCode`` of *text*."""
    h = 0
    for ch in text:
        h = (31 * h + ord(ch)) & _MASK_32
    if h & _SIGN_32:
        h -= 1 << 32
    return h


__all__ = ["fnv1a_64", "fnv_hash64", "java_string_hash"]
