"""Bit-by-bit CRC calculation without reflection or final XOR."""

from __future__ import annotations

from collections.abc import Iterable


def crc_update(poly: int, crc: int, byte: int, width: int = 8) -> int:
    """Feed one byte into a CRC register of the given width in bits.

    ``poly`` is the generator polynomial without its topmost bit.
    """
    if not 0 <= byte <= 0xFF:
        raise ValueError(f"byte {byte} out of range")
    if width < 1:
        raise ValueError(f"invalid CRC width {width}")
    msb_mask = 1 << (width - 1)
    register_mask = (1 << width) - 1
    for shift in range(7, -1, -1):
        bit = bool(crc & msb_mask) ^ bool((byte >> shift) & 1)
        crc = (crc << 1) & register_mask
        if bit:
            crc ^= poly
    return crc


def crc_generate(
    poly: int, initial_crc: int, data: Iterable[int], width: int = 8
) -> int:
    """Compute the CRC of ``data`` starting from ``initial_crc``."""
    crc = initial_crc
    for byte in data:
        crc = crc_update(poly, crc, byte, width)
    return crc