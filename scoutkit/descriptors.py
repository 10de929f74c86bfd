"""Descriptors stored in a backpack EEPROM after its header."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Union

from .eeprom import (
    CHECKSUM_SIZE,
    PIN_MASK,
    USED_SIZE_OFFSET,
    Eeprom,
    EepromError,
    Header,
    eeprom_checksum,
    extract_string,
    is_readonly,
    parse_header,
    string_length,
)
from .minifloat import Minifloat
from .pins import DescriptorType, PhysicalPin

I2C_SPEEDS = (100, 400, 1000, 3400)  # kbit/s
UART_SPEEDS = (0, 300, 600, 1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200)

_NAME_FLAG = 0x80


def spi_speed(raw: int) -> Minifloat:
    """SPI speed in MHz, as stored in an SPI slave descriptor."""
    return Minifloat(raw, 4, 4, 6)


def power_usage(raw: int) -> Minifloat:
    """Power usage in microampere, as stored in a power usage descriptor."""
    return Minifloat(raw, 4, 4, -4)


@dataclass(frozen=True)
class GroupDescriptor:
    name: str


@dataclass(frozen=True)
class PowerUsageDescriptor:
    power_pin: PhysicalPin
    minimum: Minifloat
    typical: Minifloat
    maximum: Minifloat


@dataclass(frozen=True)
class DataDescriptor:
    data: bytes
    name: str

    @property
    def length(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class IoPinDescriptor:
    pin: PhysicalPin
    name: str


@dataclass(frozen=True)
class UartDescriptor:
    tx_pin: PhysicalPin
    rx_pin: PhysicalPin
    speed: int
    name: str


@dataclass(frozen=True)
class I2cSlaveDescriptor:
    addr: int
    speed: int
    name: str


@dataclass(frozen=True)
class SpiSlaveDescriptor:
    ss_pin: PhysicalPin
    speed: Minifloat
    name: str


Descriptor = Union[
    GroupDescriptor,
    PowerUsageDescriptor,
    DataDescriptor,
    IoPinDescriptor,
    UartDescriptor,
    I2cSlaveDescriptor,
    SpiSlaveDescriptor,
]


@dataclass(eq=False)
class DescriptorInfo:
    """Where a descriptor lives and, once parsed, what it says."""

    type: DescriptorType
    offset: int
    group: Optional[DescriptorInfo] = None
    parsed: Optional[Descriptor] = None


class _TypeInfo(NamedTuple):
    descriptor_length: int
    supports_name: bool
    default_name: str = ""


_TYPE_INFO: dict[DescriptorType, _TypeInfo] = {
    DescriptorType.GROUP: _TypeInfo(1, True),
    DescriptorType.POWER_USAGE: _TypeInfo(5, False),
    # Excluding the data bytes and the name.
    DescriptorType.DATA: _TypeInfo(2, True, "data"),
    DescriptorType.IOPIN: _TypeInfo(2, True),
    DescriptorType.UART: _TypeInfo(4, True, "uart"),
    DescriptorType.I2C_SLAVE: _TypeInfo(3, True, "i2c"),
    DescriptorType.SPI_SLAVE: _TypeInfo(3, True, "spi"),
}


class _MinimalDescriptor(NamedTuple):
    type: DescriptorType
    descriptor_length: int
    name_length: int


def _parse_minimal_descriptor(eep: Eeprom, offset: int) -> _MinimalDescriptor:
    if offset + CHECKSUM_SIZE + 1 > eep.size:
        raise EepromError(f"EEPROM too short for descriptor type at offset {offset}")
    raw = eep.raw
    available = eep.size - offset - CHECKSUM_SIZE

    try:
        dtype = DescriptorType(raw[offset])
    except ValueError:
        dtype = None
    tinfo = _TYPE_INFO.get(dtype) if dtype is not None else None
    if dtype is None or tinfo is None:
        raise EepromError(f"invalid or unknown descriptor type at offset {offset}")

    length = tinfo.descriptor_length
    has_name = tinfo.supports_name
    if available < length:
        raise EepromError(f"EEPROM too short for descriptor at offset {offset}")

    if dtype is DescriptorType.DATA:
        length += raw[offset + 1]
        if available < length:
            raise EepromError(
                f"EEPROM too short for data descriptor at offset {offset}"
            )
        has_name = bool(raw[offset + 1] & _NAME_FLAG)
    elif dtype in (DescriptorType.I2C_SLAVE, DescriptorType.SPI_SLAVE):
        has_name = bool(raw[offset + 1] & _NAME_FLAG)
    elif dtype is DescriptorType.UART:
        has_name = bool(raw[offset + 3] & _NAME_FLAG)

    name_length = string_length(eep, offset + length) if has_name else 0
    return _MinimalDescriptor(dtype, length, name_length)


def parse_descriptor_list(
    eep: Eeprom, header: Optional[Header] = None
) -> list[DescriptorInfo]:
    """Locate all descriptors without parsing their contents.

    Uses ``header`` to find the first descriptor when given, otherwise
    parses the header itself. Empty (0xff) bytes are skipped.
    """
    offset = header.descriptor_offset if header else parse_header(eep).descriptor_offset
    end = eep.size - CHECKSUM_SIZE
    infos: list[DescriptorInfo] = []
    group: Optional[DescriptorInfo] = None
    while offset < end:
        if eep.raw[offset] == DescriptorType.EMPTY:
            offset += 1
            continue
        minimal = _parse_minimal_descriptor(eep, offset)
        info = DescriptorInfo(type=minimal.type, offset=offset)
        if minimal.type is DescriptorType.GROUP:
            group = info
        else:
            info.group = group
        infos.append(info)
        offset += minimal.descriptor_length + minimal.name_length
    return infos


def parse_descriptor(eep: Eeprom, info: DescriptorInfo) -> Descriptor:
    """Parse one descriptor, store it in ``info.parsed`` and return it."""
    minimal = _parse_minimal_descriptor(eep, info.offset)
    tinfo = _TYPE_INFO[minimal.type]
    buf = bytes(eep.raw[info.offset : info.offset + minimal.descriptor_length])

    name = ""
    if tinfo.supports_name:
        if minimal.name_length:
            name = extract_string(
                eep, info.offset + minimal.descriptor_length, minimal.name_length
            )
        else:
            name = tinfo.default_name

    dtype = minimal.type
    parsed: Descriptor
    if dtype is DescriptorType.SPI_SLAVE:
        parsed = SpiSlaveDescriptor(
            ss_pin=PhysicalPin(buf[1] & PIN_MASK), speed=spi_speed(buf[2]), name=name
        )
    elif dtype is DescriptorType.UART:
        index = buf[3] & 0x0F
        if index >= len(UART_SPEEDS):
            raise EepromError(f"invalid UART speed in descriptor at offset {info.offset}")
        parsed = UartDescriptor(
            tx_pin=PhysicalPin(buf[1] & PIN_MASK),
            rx_pin=PhysicalPin(buf[2] & PIN_MASK),
            speed=UART_SPEEDS[index],
            name=name,
        )
    elif dtype is DescriptorType.IOPIN:
        parsed = IoPinDescriptor(pin=PhysicalPin(buf[1] & PIN_MASK), name=name)
    elif dtype is DescriptorType.GROUP:
        parsed = GroupDescriptor(name=name)
    elif dtype is DescriptorType.POWER_USAGE:
        parsed = PowerUsageDescriptor(
            power_pin=PhysicalPin(buf[1] & PIN_MASK),
            minimum=power_usage(buf[2]),
            typical=power_usage(buf[3]),
            maximum=power_usage(buf[4]),
        )
    elif dtype is DescriptorType.I2C_SLAVE:
        parsed = I2cSlaveDescriptor(
            addr=buf[1] & 0x7F, speed=I2C_SPEEDS[buf[2] & 0x03], name=name
        )
    else:
        length = buf[1]
        parsed = DataDescriptor(data=buf[2 : 2 + length], name=name)

    info.parsed = parsed
    return parsed


def update_eeprom(eep: Optional[Eeprom], offset: int, data: bytes) -> Eeprom:
    """Return a copy of ``eep`` with ``data`` written at ``offset``.

    Read-only bytes are left alone. The image grows when writing past its
    end and shrinks when trailing descriptors are overwritten with 0xff;
    the used size in the header and the checksum are recalculated. Without
    an existing image, ``offset`` must be 0.
    """
    data = bytes(data)
    if offset < 0:
        raise ValueError(f"negative offset {offset}")
    if eep is None and offset != 0:
        raise EepromError("cannot create an EEPROM image with a non-zero offset")
    if eep is not None and offset > eep.size:
        raise EepromError("cannot update EEPROM starting past its end")

    raw = bytearray(eep.raw) if eep is not None else bytearray()
    needed = offset + len(data) + CHECKSUM_SIZE
    if needed > len(raw):
        raw.extend(bytes(needed - len(raw)))

    for position, value in enumerate(data, start=offset):
        if not is_readonly(position):
            raw[position] = value

    try:
        candidate = Eeprom(raw)
        infos = parse_descriptor_list(candidate)
    except ValueError as exc:
        raise EepromError(f"could not parse updated EEPROM: {exc}") from exc
    if not infos:
        raise EepromError("updated EEPROM holds no descriptors")

    last = infos[-1].offset
    minimal = _parse_minimal_descriptor(candidate, last)
    used_size = last + minimal.descriptor_length + minimal.name_length + CHECKSUM_SIZE

    del raw[used_size:]
    raw[USED_SIZE_OFFSET] = used_size
    checksum = eeprom_checksum(bytes(raw[:-CHECKSUM_SIZE]))
    raw[-CHECKSUM_SIZE:] = checksum.to_bytes(CHECKSUM_SIZE, "big")
    return Eeprom(raw)