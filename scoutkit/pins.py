"""Backpack identity values and the pin numbering of the scout board."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, NamedTuple

UNIQUE_ID_LENGTH = 8
NUM_PHYSICAL_PINS = 33

# Logical (Arduino) numbers of the board's named pins.
SS = 15
MOSI = 16
MISO = 17
SCK = 18
SCL = 19
SDA = 20
BACKPACK_BUS = 11
A0, A1, A2, A3, A4, A5, A6, A7 = range(24, 32)


class DescriptorType(IntEnum):
    """Type byte that starts every descriptor in a backpack EEPROM."""

    RESERVED = 0x00
    GROUP = 0x01
    POWER_USAGE = 0x02
    DATA = 0x03
    IOPIN = 0x04
    UART = 0x05
    I2C_SLAVE = 0x06
    SPI_SLAVE = 0x07
    EMPTY = 0xFF


def _check_range(name: str, value: int, bits: int) -> None:
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} {value} does not fit in {bits} bits")


@dataclass(frozen=True)
class UniqueId:
    """The 8-byte unique id of a backpack, stored big-endian on the wire."""

    protocol_version: int
    model: int
    revision: int
    serial: int
    checksum: int

    def __post_init__(self) -> None:
        _check_range("protocol_version", self.protocol_version, 8)
        _check_range("model", self.model, 16)
        _check_range("revision", self.revision, 8)
        _check_range("serial", self.serial, 24)
        _check_range("checksum", self.checksum, 8)

    @classmethod
    def from_bytes(cls, data: bytes) -> UniqueId:
        """Decode a unique id from its raw bytes."""
        data = bytes(data)
        if len(data) != UNIQUE_ID_LENGTH:
            raise ValueError(
                f"unique id must be {UNIQUE_ID_LENGTH} bytes, got {len(data)}"
            )
        return cls(
            protocol_version=data[0],
            model=int.from_bytes(data[1:3], "big"),
            revision=data[3],
            serial=int.from_bytes(data[4:7], "big"),
            checksum=data[7],
        )

    def to_bytes(self) -> bytes:
        """Encode this unique id into its raw bytes."""
        return (
            bytes([self.protocol_version])
            + self.model.to_bytes(2, "big")
            + bytes([self.revision])
            + self.serial.to_bytes(3, "big")
            + bytes([self.checksum])
        )


@dataclass(frozen=True)
class MajorMinor:
    """A hardware revision split into its major and minor nibbles."""

    major: int
    minor: int

    def __post_init__(self) -> None:
        _check_range("major", self.major, 4)
        _check_range("minor", self.minor, 4)


def extract_major_minor(revision: int) -> MajorMinor:
    """Split a revision byte into major (high nibble) and minor (low nibble)."""
    _check_range("revision", revision, 8)
    return MajorMinor(revision >> 4, revision & 0xF)


@dataclass(frozen=True)
class LogicalPin:
    """An Arduino pin number, or NONE for pins without one."""

    value: int

    NONE: ClassVar[int] = 0xFF

    def __index__(self) -> int:
        return self.value

    def __int__(self) -> int:
        return self.value

    def mask(self) -> int:
        """Bit mask for this pin, 0 when it is NONE."""
        if self.value == self.NONE:
            return 0
        return 1 << self.value

    def within(self, mask: int) -> bool:
        """Whether this pin is set in the given mask."""
        return bool(mask & self.mask())


class PhysicalPinInfo(NamedTuple):
    logical_pin: int
    name: str


_NONE = LogicalPin.NONE

PHYSICAL_PIN_INFO: tuple[PhysicalPinInfo, ...] = (
    PhysicalPinInfo(_NONE, "NC"),
    PhysicalPinInfo(_NONE, "VUSB"),
    PhysicalPinInfo(BACKPACK_BUS, "BKPK"),
    PhysicalPinInfo(_NONE, "RST"),
    PhysicalPinInfo(SCK, "SCK"),
    PhysicalPinInfo(MISO, "MISO"),
    PhysicalPinInfo(MOSI, "MOSI"),
    PhysicalPinInfo(SS, "SS"),
    PhysicalPinInfo(0, "RX0"),
    PhysicalPinInfo(1, "TX0"),
    PhysicalPinInfo(2, "D2"),
    PhysicalPinInfo(3, "D3"),
    PhysicalPinInfo(4, "D4"),
    PhysicalPinInfo(5, "D5"),
    PhysicalPinInfo(6, "D6"),
    PhysicalPinInfo(7, "D7"),
    PhysicalPinInfo(8, "D8"),
    PhysicalPinInfo(_NONE, "3V3"),
    PhysicalPinInfo(_NONE, "GND"),
    PhysicalPinInfo(_NONE, "VBAT"),
    PhysicalPinInfo(13, "RX1"),
    PhysicalPinInfo(14, "TX1"),
    PhysicalPinInfo(SCL, "SCL"),
    PhysicalPinInfo(SDA, "SDA"),
    PhysicalPinInfo(_NONE, "REF"),
    PhysicalPinInfo(A0, "A0"),
    PhysicalPinInfo(A1, "A1"),
    PhysicalPinInfo(A2, "A2"),
    PhysicalPinInfo(A3, "A3"),
    PhysicalPinInfo(A4, "A4"),
    PhysicalPinInfo(A5, "A5"),
    PhysicalPinInfo(A6, "A6"),
    PhysicalPinInfo(A7, "A7"),
)


@dataclass(frozen=True)
class PhysicalPin:
    """A backpack header pin number; 0 means "not connected"."""

    value: int

    def __index__(self) -> int:
        return self.value

    def __int__(self) -> int:
        return self.value

    def _info(self) -> PhysicalPinInfo:
        if not 0 <= self.value < NUM_PHYSICAL_PINS:
            raise ValueError(f"unknown physical pin {self.value}")
        return PHYSICAL_PIN_INFO[self.value]

    def name(self) -> str:
        """Label of this pin on the header."""
        return self._info().name

    def logical(self) -> LogicalPin:
        """The logical pin wired to this physical pin."""
        return LogicalPin(self._info().logical_pin)

    def mask(self) -> int:
        """Bit mask for this pin, 0 for the "not connected" pin."""
        if self.value == 0:
            return 0
        return 1 << (self.value - 1)