import pytest
from hypothesis import given, strategies as st

from scoutkit.pins import (
    NUM_PHYSICAL_PINS,
    DescriptorType,
    LogicalPin,
    MajorMinor,
    PhysicalPin,
    UniqueId,
    extract_major_minor,
)


@given(st.binary(min_size=8, max_size=8))
def test_unique_id_round_trip(data):
    assert UniqueId.from_bytes(data).to_bytes() == data


def test_unique_id_fields_are_big_endian():
    data = bytes([0x01, 0x00, 0x01, 0x11, 0x00, 0x00, 0x2A, 0x5C])
    uid = UniqueId.from_bytes(data)
    assert uid.protocol_version == 0x01
    assert uid.model == 0x0001
    assert uid.revision == 0x11
    assert uid.serial == 0x00002A
    assert uid.checksum == 0x5C


@pytest.mark.parametrize("length", [0, 7, 9])
def test_unique_id_wrong_length(length):
    with pytest.raises(ValueError):
        UniqueId.from_bytes(bytes(length))


def test_unique_id_field_out_of_range():
    with pytest.raises(ValueError):
        UniqueId(1, 0x10000, 0, 0, 0)


@given(st.integers(min_value=0, max_value=255))
def test_extract_major_minor_recombines(revision):
    mm = extract_major_minor(revision)
    assert (mm.major << 4) | mm.minor == revision


def test_extract_major_minor_value():
    assert extract_major_minor(0x11) == MajorMinor(0x1, 0x1)


def test_extract_major_minor_rejects_large():
    with pytest.raises(ValueError):
        extract_major_minor(0x100)


def test_descriptor_type_values():
    assert DescriptorType(0x06) is DescriptorType.I2C_SLAVE
    assert DescriptorType.EMPTY == 0xFF


def test_logical_none_has_empty_mask():
    pin = LogicalPin(LogicalPin.NONE)
    assert pin.mask() == 0
    assert not pin.within(~0)


@given(st.integers(min_value=0, max_value=31))
def test_logical_mask_single_bit(value):
    pin = LogicalPin(value)
    assert bin(pin.mask()).count("1") == 1
    assert pin.within(pin.mask())
    assert not pin.within(~pin.mask() & 0xFFFFFFFF)


@pytest.mark.parametrize(
    "physical, name",
    [(0, "NC"), (2, "BKPK"), (8, "RX0"), (20, "RX1"), (32, "A7")],
)
def test_physical_names(physical, name):
    assert PhysicalPin(physical).name() == name


@pytest.mark.parametrize(
    "physical, logical",
    [(8, 0), (9, 1), (10, 2), (16, 8), (20, 13), (21, 14)],
)
def test_physical_to_logical(physical, logical):
    assert PhysicalPin(physical).logical() == LogicalPin(logical)


def test_power_pins_have_no_logical():
    assert PhysicalPin(18).name() == "GND"
    assert PhysicalPin(18).logical().mask() == 0


def test_physical_masks_are_distinct_bits():
    masks = [PhysicalPin(i).mask() for i in range(1, NUM_PHYSICAL_PINS)]
    assert all(bin(m).count("1") == 1 for m in masks)
    assert len(set(masks)) == NUM_PHYSICAL_PINS - 1
    assert PhysicalPin(0).mask() == 0


def test_connected_logical_pins_are_distinct():
    logicals = [
        PhysicalPin(i).logical()
        for i in range(NUM_PHYSICAL_PINS)
        if PhysicalPin(i).logical().value != LogicalPin.NONE
    ]
    assert len(set(logicals)) == len(logicals)


def test_unknown_physical_pin():
    with pytest.raises(ValueError):
        PhysicalPin(NUM_PHYSICAL_PINS).name()
    with pytest.raises(ValueError):
        PhysicalPin(63).logical()