from functools import reduce

import pytest
from hypothesis import given
from hypothesis import strategies as st

from scoutkit.crc import crc_generate, crc_update

CHECK_INPUT = b"123456789"


def test_crc8_check_value():
    assert crc_generate(0x07, 0, CHECK_INPUT, 8) == 0xF4


def test_crc16_check_value():
    assert crc_generate(0x1021, 0, CHECK_INPUT, 16) == 0x31C3


def test_empty_data_returns_initial():
    assert crc_generate(0x2F, 0x5A, b"", 8) == 0x5A


def test_invalid_byte_rejected():
    with pytest.raises(ValueError):
        crc_update(0x2F, 0, 256, 8)


def test_invalid_width_rejected():
    with pytest.raises(ValueError):
        crc_update(0x2F, 0, 1, 0)


@given(st.binary(max_size=32))
def test_crc8_residue_is_zero(data):
    crc = crc_generate(0x2F, 0, data, 8)
    assert crc_generate(0x2F, 0, data + bytes([crc]), 8) == 0


@given(st.binary(max_size=32))
def test_crc16_residue_is_zero(data):
    crc = crc_generate(0xA7D3, 0, data, 16)
    assert crc_generate(0xA7D3, 0, data + crc.to_bytes(2, "big"), 16) == 0


@given(st.binary(max_size=32))
def test_generate_is_fold_of_update(data):
    folded = reduce(lambda crc, b: crc_update(0xA7D3, crc, b, 16), data, 0)
    assert crc_generate(0xA7D3, 0, data, 16) == folded


@given(st.binary(max_size=16), st.integers(0, 0xFFFF))
def test_result_fits_width(data, initial):
    assert 0 <= crc_generate(0xA7D3, initial, data, 16) <= 0xFFFF