"""Backpack EEPROM image: header, strings, checksums and transfer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .crc import crc_generate
from .pbbp import UNIQUE_ID_CRC_POLY
from .pins import UNIQUE_ID_LENGTH

EEPROM_CRC_POLY = 0xA7D3
MAX_EEPROM_SIZE = 0xFF
SUPPORTED_LAYOUT_VERSION = 1

PIN_MASK = 0x3F
CHECKSUM_SIZE = 2
LAYOUT_VERSION_OFFSET = 0
TOTAL_SIZE_OFFSET = 1
USED_SIZE_OFFSET = 2
UNIQUE_ID_OFFSET = 3
FIRMWARE_VERSION_OFFSET = 0x0B
HEADER_LENGTH = 0x0C


class EepromError(ValueError):
    """EEPROM contents are malformed or could not be retrieved."""


class _EepromBus(Protocol):
    def read_eeprom(self, slave_addr: int, eeprom_addr: int, length: int) -> bytes: ...

    def write_eeprom(self, slave_addr: int, eeprom_addr: int, data: bytes) -> None: ...


class Eeprom:
    """The used part of a backpack EEPROM, checksum included."""

    def __init__(self, raw: bytes) -> None:
        data = bytearray(raw)
        if len(data) > MAX_EEPROM_SIZE:
            raise ValueError(f"EEPROM image of {len(data)} bytes is too large")
        self.raw = data

    @property
    def size(self) -> int:
        return len(self.raw)

    def __len__(self) -> int:
        return len(self.raw)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Eeprom):
            return NotImplemented
        return self.raw == other.raw

    def __repr__(self) -> str:
        return f"Eeprom({bytes(self.raw)!r})"


@dataclass(frozen=True)
class Header:
    """Parsed EEPROM header."""

    layout_version: int
    total_eeprom_size: int
    used_eeprom_size: int
    firmware_version: int
    descriptor_offset: int
    backpack_name: str


def string_length(eep: Eeprom, offset: int) -> int:
    """Length of the string at ``offset``; its last byte has the MSB set."""
    if offset + CHECKSUM_SIZE + 1 > eep.size:
        raise EepromError(f"EEPROM too short for string at offset {offset}")
    last = eep.size - CHECKSUM_SIZE
    for index in range(offset, last + 1):
        if eep.raw[index] & 0x80:
            return index - offset + 1
    raise EepromError(f"end of EEPROM before end of string at offset {offset}")


def extract_string(eep: Eeprom, offset: int, length: int) -> str:
    """Decode a string of known length, stripping the end marker bit."""
    if length < 1:
        raise ValueError("string length must be at least 1")
    chunk = bytes(eep.raw[offset : offset + length])
    if len(chunk) != length:
        raise EepromError(f"string at offset {offset} runs past the EEPROM")
    return (chunk[:-1] + bytes([chunk[-1] & 0x7F])).decode("latin-1")


def parse_string(eep: Eeprom, offset: int) -> str:
    """Find and decode the string at ``offset``."""
    return extract_string(eep, offset, string_length(eep, offset))


def _parse_minimal_header(eep: Eeprom) -> tuple[int, int]:
    if eep.size <= CHECKSUM_SIZE:
        raise EepromError("EEPROM too short for checksum")
    length = eep.size - CHECKSUM_SIZE
    version = eep.raw[LAYOUT_VERSION_OFFSET]
    if version == 0 or version > SUPPORTED_LAYOUT_VERSION:
        raise EepromError(f"invalid or unsupported layout version {version}")
    # At least the header plus a one-character name.
    if length < HEADER_LENGTH + 1:
        raise EepromError("EEPROM too short for header")
    return version, string_length(eep, HEADER_LENGTH)


def parse_header(eep: Eeprom) -> Header:
    """Parse the header up to the first descriptor."""
    version, name_length = _parse_minimal_header(eep)
    return Header(
        layout_version=version,
        total_eeprom_size=eep.raw[TOTAL_SIZE_OFFSET],
        used_eeprom_size=eep.raw[USED_SIZE_OFFSET],
        firmware_version=eep.raw[FIRMWARE_VERSION_OFFSET],
        descriptor_offset=HEADER_LENGTH + name_length,
        backpack_name=extract_string(eep, HEADER_LENGTH, name_length),
    )


def unique_id_checksum(data: bytes) -> int:
    """Checksum over the first seven bytes of a unique id."""
    body = bytes(data)[: UNIQUE_ID_LENGTH - 1]
    if len(body) != UNIQUE_ID_LENGTH - 1:
        raise ValueError(f"need at least {UNIQUE_ID_LENGTH - 1} bytes")
    return crc_generate(UNIQUE_ID_CRC_POLY, 0, body, 8)


def eeprom_checksum(data: bytes) -> int:
    """16-bit checksum over EEPROM contents, excluding the checksum itself."""
    return crc_generate(EEPROM_CRC_POLY, 0, data, 16)


def is_readonly(offset: int) -> bool:
    """Whether the byte at ``offset`` belongs to the read-only unique id."""
    return UNIQUE_ID_OFFSET <= offset < UNIQUE_ID_OFFSET + UNIQUE_ID_LENGTH


def read_eeprom(pbbp: _EepromBus, addr: int) -> Eeprom:
    """Fetch and verify the used part of a slave's EEPROM."""
    head = pbbp.read_eeprom(addr, 0, 3)
    version = head[LAYOUT_VERSION_OFFSET]
    if version == 0 or version > SUPPORTED_LAYOUT_VERSION:
        raise EepromError(f"unsupported EEPROM version: {version}")
    used_size = head[USED_SIZE_OFFSET]
    if used_size <= CHECKSUM_SIZE:
        raise EepromError(f"EEPROM used size {used_size} is too small")
    raw = bytes(pbbp.read_eeprom(addr, 0, used_size))
    calculated = eeprom_checksum(raw[:-CHECKSUM_SIZE])
    stored = int.from_bytes(raw[-CHECKSUM_SIZE:], "big")
    if calculated != stored:
        raise EepromError("EEPROM checksum incorrect")
    return Eeprom(raw)


def write_eeprom(pbbp: _EepromBus, addr: int, eep: Eeprom) -> None:
    """Write a whole EEPROM image to a slave."""
    pbbp.write_eeprom(addr, 0, bytes(eep.raw))