import math
import struct

import pytest
from hypothesis import given
from hypothesis import strategies as st

from scoutkit.minifloat import Minifloat


@pytest.mark.parametrize("bias", [0, 127, 126, 20, 129, 128])
def test_reference_values_after_undoing_bias(bias):
    assert math.ldexp(float(Minifloat(0x27, 4, 4, bias)), bias) == 5.75
    assert math.ldexp(float(Minifloat(0x07, 4, 4, bias)), bias) == 0.875
    assert math.ldexp(float(Minifloat(0x00, 4, 4, bias)), bias) == 0.0


def test_raw_fields():
    value = Minifloat(0x27, 4, 4, 0)
    assert value.raw_exponent() == 2
    assert value.raw_significand() == 7
    assert value.exponent() == 2


def test_denormal_uses_minimal_exponent():
    value = Minifloat(0x07, 4, 4, 6)
    assert value.raw_exponent() == 0
    assert value.exponent() == 1 - 6


@pytest.mark.parametrize("bias", [-4, 0, 6, 127, 146])
def test_values_increase_with_raw(bias):
    values = [float(Minifloat(raw, 4, 4, bias)) for raw in range(256)]
    assert all(a < b for a, b in zip(values, values[1:]))


@given(raw=st.integers(0, 255), bias=st.integers(-100, 146))
def test_bias_only_scales_value(raw, bias):
    base = float(Minifloat(raw, 4, 4, 0))
    assert float(Minifloat(raw, 4, 4, bias)) == math.ldexp(base, -bias)


@given(
    raw=st.integers(0, 255),
    bias=st.sampled_from([-4, 6, 127, 129, 146]),
)
def test_conversion_is_exact_in_single_precision(raw, bias):
    value = float(Minifloat(raw, 4, 4, bias))
    assert struct.unpack("<f", struct.pack("<f", value))[0] == value


def test_too_many_significand_bits():
    with pytest.raises(ValueError):
        Minifloat(0, 4, 24, 0)


def test_exponent_range_too_high():
    with pytest.raises(ValueError):
        Minifloat(0, 8, 4, -1)


def test_exponent_range_too_low():
    with pytest.raises(ValueError):
        Minifloat(0, 4, 4, 200)


@pytest.mark.parametrize("raw", [-1, 256])
def test_raw_out_of_range(raw):
    with pytest.raises(ValueError):
        Minifloat(raw, 4, 4, 0)