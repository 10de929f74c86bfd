"""Small unsigned floating point formats that convert losslessly to float."""

from __future__ import annotations

import math
from dataclasses import dataclass

# Parameters of the IEEE 754 single precision format every minifloat
# must fit into without losing precision or range.
IEEE754_EXPONENT_BIAS = 127
IEEE754_SIGNIFICAND_BITS = 23
IEEE754_EXPONENT_BITS = 8


@dataclass(frozen=True)
class Minifloat:
    """An unsigned minifloat: exponent bits above significand bits, no sign.

    Exponent value 0 marks a denormal number. Every exponent value, including
    all ones, encodes a finite number.
    """

    raw: int
    exponent_bits: int
    significand_bits: int
    exponent_bias: int

    def __post_init__(self) -> None:
        if self.exponent_bits < 1:
            raise ValueError("a minifloat needs at least one exponent bit")
        if self.significand_bits < 1:
            raise ValueError("a minifloat needs at least one significand bit")

        extra_significand_bits = IEEE754_SIGNIFICAND_BITS - self.significand_bits
        from_max_exp = (1 << self.exponent_bits) - 1 - self.exponent_bias
        to_max_exp = (1 << IEEE754_EXPONENT_BITS) - 1 - IEEE754_EXPONENT_BIAS
        from_min_exp = 1 - self.exponent_bias
        to_min_exp = 1 - IEEE754_EXPONENT_BIAS

        if extra_significand_bits < 0:
            raise ValueError(
                "too many significand bits for lossless conversion to float"
            )
        if from_max_exp > to_max_exp:
            raise ValueError(
                "biggest exponent too high for lossless conversion to float"
            )
        if from_min_exp < to_min_exp - extra_significand_bits:
            raise ValueError(
                "smallest exponent too low for lossless conversion to float"
            )

        width = self.exponent_bits + self.significand_bits
        if not 0 <= self.raw < (1 << width):
            raise ValueError(f"raw value {self.raw} does not fit in {width} bits")

    def raw_significand(self) -> int:
        """The stored significand bits, without the implicit leading one."""
        return self.raw & ((1 << self.significand_bits) - 1)

    def raw_exponent(self) -> int:
        """The stored, biased exponent bits."""
        return (self.raw >> self.significand_bits) & ((1 << self.exponent_bits) - 1)

    def exponent(self) -> int:
        """The unbiased exponent; denormal numbers use the minimal exponent."""
        stored = self.raw_exponent()
        return (1 if stored == 0 else stored) - self.exponent_bias

    def __float__(self) -> float:
        significand = self.raw_significand()
        if self.raw_exponent() != 0:
            significand |= 1 << self.significand_bits
        return math.ldexp(significand, self.exponent() - self.significand_bits)