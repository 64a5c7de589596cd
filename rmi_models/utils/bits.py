"""
===============================================================================
BIT HELPERS
===============================================================================
Unsigned 64-bit key arithmetic shared by the radix models and the bucketed
corrector. Python ints are unbounded, so every left shift is masked back to
64 bits to behave like a machine word. The array forms operate on uint64
NumPy arrays and agree with the scalar forms element by element.
===============================================================================
"""

import numpy as np

MASK64 = (1 << 64) - 1


def as_uint(key) -> int:
    """Key as an unsigned 64-bit integer."""
    return int(key) & MASK64


def num_bits(value: int) -> int:
    """Number of bits needed to represent ``value`` (0 for 0)."""
    return int(value).bit_length()


def common_prefix_size(keys: np.ndarray) -> int:
    """Count of leading bits shared by every key (64 if all keys are equal)."""
    keys = np.asarray(keys, dtype=np.uint64)
    if keys.size == 0:
        return 0
    any_ones = int(np.bitwise_or.reduce(keys))
    all_ones = int(np.bitwise_and.reduce(keys))
    # bits that are set in some key but not in all of them
    differing = any_ones & ~all_ones & MASK64
    return 64 - differing.bit_length()


def extract_bits(key, prefix: int, bits: int) -> int:
    """Drop ``prefix`` leading bits and keep the next ``bits`` bits."""
    if bits == 0 or prefix >= 64:
        return 0
    return ((as_uint(key) << prefix) & MASK64) >> (64 - bits)


def top_bits(key, prefix: int) -> int:
    """The leading ``prefix`` bits of the key."""
    if prefix == 0:
        return 0
    return as_uint(key) >> (64 - prefix)


def extract_bits_array(keys: np.ndarray, prefix: int, bits: int) -> np.ndarray:
    keys = np.asarray(keys, dtype=np.uint64)
    if bits == 0 or prefix >= 64:
        return np.zeros(keys.shape, dtype=np.uint64)
    shifted = np.left_shift(keys, np.uint64(prefix))
    return np.right_shift(shifted, np.uint64(64 - bits))


def top_bits_array(keys: np.ndarray, prefix: int) -> np.ndarray:
    keys = np.asarray(keys, dtype=np.uint64)
    if prefix == 0:
        return np.zeros(keys.shape, dtype=np.uint64)
    return np.right_shift(keys, np.uint64(64 - prefix))
