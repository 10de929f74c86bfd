import pytest
from hypothesis import given
from hypothesis import strategies as st

from scoutkit.crc import crc_generate
from scoutkit.eeprom import (
    EEPROM_CRC_POLY,
    HEADER_LENGTH,
    Eeprom,
    EepromError,
    eeprom_checksum,
    extract_string,
    is_readonly,
    parse_header,
    parse_string,
    read_eeprom,
    string_length,
    unique_id_checksum,
    write_eeprom,
)
from scoutkit.pbbp import UNIQUE_ID_CRC_POLY

UID = bytes([1, 0, 1, 0x11, 0, 0, 42, 0])


def encode(name):
    data = bytearray(name.encode("latin-1"))
    data[-1] |= 0x80
    return bytes(data)


def build(name="env", body=b"", version=1, total=64, firmware=3):
    content = bytearray([version, total, 0]) + UID + bytes([firmware])
    content += encode(name) + body
    content[2] = len(content) + 2
    return bytes(content) + eeprom_checksum(content).to_bytes(2, "big")


class FakeBus:
    def __init__(self, memory):
        self.memory = bytes(memory)
        self.writes = []

    def read_eeprom(self, slave_addr, eeprom_addr, length):
        return self.memory[eeprom_addr : eeprom_addr + length]

    def write_eeprom(self, slave_addr, eeprom_addr, data):
        self.writes.append((slave_addr, eeprom_addr, bytes(data)))


def test_parse_header_fields():
    raw = build(name="env", body=b"\x01", total=64, firmware=3)
    header = parse_header(Eeprom(raw))
    assert header.layout_version == 1
    assert header.total_eeprom_size == 64
    assert header.used_eeprom_size == len(raw)
    assert header.firmware_version == 3
    assert header.backpack_name == "env"
    assert header.descriptor_offset == HEADER_LENGTH + 3


def test_string_helpers():
    eep = Eeprom(build(name="wifi"))
    assert string_length(eep, HEADER_LENGTH) == 4
    assert extract_string(eep, HEADER_LENGTH, 4) == "wifi"
    assert parse_string(eep, HEADER_LENGTH) == "wifi"


def test_unterminated_string_is_error():
    raw = bytes([1, 32, 17]) + UID + b"\x00" + b"abc" + b"\x00\x00"
    with pytest.raises(EepromError):
        string_length(Eeprom(raw), HEADER_LENGTH)


def test_string_past_end_is_error():
    with pytest.raises(EepromError):
        string_length(Eeprom(build()), 100)


@pytest.mark.parametrize("version", [0, 2])
def test_unsupported_version(version):
    with pytest.raises(EepromError):
        parse_header(Eeprom(build(version=version)))


def test_too_short_for_header():
    with pytest.raises(EepromError):
        parse_header(Eeprom(bytes([1, 10, 10, 0, 0, 0, 0, 0, 0, 0])))


def test_too_short_for_checksum():
    with pytest.raises(EepromError):
        parse_header(Eeprom(b"\x01\x02"))


def test_oversized_image_rejected():
    with pytest.raises(ValueError):
        Eeprom(bytes(256))


@given(st.text(alphabet=st.characters(min_codepoint=0x20, max_codepoint=0x7E), min_size=1, max_size=20))
def test_name_round_trip(name):
    assert parse_header(Eeprom(build(name=name))).backpack_name == name


@given(st.binary(min_size=7, max_size=7))
def test_unique_id_checksum_completes_id(body):
    full = body + bytes([unique_id_checksum(body)])
    assert crc_generate(UNIQUE_ID_CRC_POLY, 0, full, 8) == 0


@given(st.binary(max_size=40))
def test_eeprom_checksum_residue(data):
    full = data + eeprom_checksum(data).to_bytes(2, "big")
    assert crc_generate(EEPROM_CRC_POLY, 0, full, 16) == 0


def test_unique_id_checksum_needs_seven_bytes():
    with pytest.raises(ValueError):
        unique_id_checksum(b"\x01\x02")


@pytest.mark.parametrize("offset,expected", [(2, False), (3, True), (10, True), (11, False)])
def test_is_readonly(offset, expected):
    assert is_readonly(offset) is expected


def test_read_eeprom_round_trip():
    raw = build(name="env", body=b"\xff\xff")
    bus = FakeBus(raw + b"\xff" * 10)
    assert read_eeprom(bus, 2) == Eeprom(raw)


def test_read_eeprom_bad_checksum():
    raw = bytearray(build())
    raw[-1] ^= 0xFF
    with pytest.raises(EepromError):
        read_eeprom(FakeBus(raw), 2)


def test_read_eeprom_bad_version():
    with pytest.raises(EepromError):
        read_eeprom(FakeBus(build(version=3)), 2)


def test_write_eeprom_sends_image():
    raw = build()
    bus = FakeBus(b"")
    write_eeprom(bus, 4, Eeprom(raw))
    assert bus.writes == [(4, 0, raw)]