# bindec/bits.py
# Bit-range helpers: inclusive masks and field extraction for packed integer values
from __future__ import annotations


def check_bit(pos: int) -> int:
    if pos < 0:
        raise ValueError(f"bit position must be non-negative, got {pos}")
    return pos


def check_range(start_bit: int, end_bit: int) -> None:
    """
    Validate an inclusive bit range at construction time.
    Positions are not checked against any integer width; Python ints are unbounded.
    """
    check_bit(start_bit)
    check_bit(end_bit)
    if start_bit > end_bit:
        raise ValueError(f"start bit {start_bit} is above end bit {end_bit}")


def range_mask(start_bit: int, end_bit: int) -> int:
    """All bits from start_bit through end_bit (inclusive) set, all others clear."""
    return ((1 << (end_bit + 1)) - 1) ^ ((1 << start_bit) - 1)


def bit_mask(pos: int) -> int:
    return 1 << pos


def extract(value: int, mask: int, start_bit: int) -> int:
    return (value & mask) >> start_bit
