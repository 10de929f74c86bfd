"""Bookkeeping of the backpacks found on the backpack bus."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Protocol, Union

from .descriptors import (
    DescriptorInfo,
    IoPinDescriptor,
    PowerUsageDescriptor,
    SpiSlaveDescriptor,
    UartDescriptor,
    parse_descriptor,
    parse_descriptor_list,
)
from .eeprom import Eeprom, Header, parse_header, read_eeprom
from .pins import MISO, MOSI, SCK, SCL, SDA, DescriptorType, LogicalPin, UniqueId


class _Bus(Protocol):
    def enumerate(self) -> list[UniqueId]: ...

    def read_eeprom(self, slave_addr: int, eeprom_addr: int, length: int) -> bytes: ...

    def write_eeprom(self, slave_addr: int, eeprom_addr: int, data: bytes) -> None: ...


class Backpack(ABC):
    """Driver for one kind of backpack."""

    @abstractmethod
    def setup(self, info: BackpackInfo) -> bool:
        """Prepare the backpack described by ``info``; True on success."""

    @abstractmethod
    def loop(self) -> None:
        """Do periodic work."""


class BackpackInfo:
    """A detected backpack with lazily fetched and cached EEPROM data."""

    def __init__(self, unique_id: UniqueId, address: int, bus: _Bus) -> None:
        self.id = unique_id
        self.address = address
        self._bus = bus
        self.eep: Optional[Eeprom] = None
        self.header: Optional[Header] = None
        self.descriptors: Optional[list[DescriptorInfo]] = None
        self.used_pins: Optional[int] = None

    def __repr__(self) -> str:
        return f"BackpackInfo(id={self.id!r}, address={self.address})"

    def get_eeprom(self) -> Eeprom:
        """The backpack's EEPROM, read from the bus on first use."""
        if self.eep is None:
            self.eep = read_eeprom(self._bus, self.address)
        return self.eep

    def free_eeprom(self) -> None:
        self.eep = None

    def get_header(self) -> Header:
        """The parsed EEPROM header."""
        if self.header is None:
            self.header = parse_header(self.get_eeprom())
        return self.header

    def free_header(self) -> None:
        self.header = None

    def get_all_descriptors(self) -> list[DescriptorInfo]:
        """All descriptors, each with its ``parsed`` member filled."""
        if self.descriptors is not None:
            return self.descriptors
        eep = self.get_eeprom()
        infos = parse_descriptor_list(eep, self.header)
        for info in infos:
            parse_descriptor(eep, info)
        self.descriptors = infos
        return infos

    def free_all_descriptors(self) -> None:
        if self.descriptors is not None:
            for info in self.descriptors:
                info.parsed = None
            self.descriptors = None

    def get_used_pins(self) -> int:
        """Bit mask of the logical pins this backpack uses."""
        if self.used_pins is not None:
            return self.used_pins
        used = 0
        for info in self.get_all_descriptors():
            parsed = info.parsed
            if info.type is DescriptorType.POWER_USAGE:
                assert isinstance(parsed, PowerUsageDescriptor)
                used |= parsed.power_pin.logical().mask()
            elif info.type is DescriptorType.IOPIN:
                assert isinstance(parsed, IoPinDescriptor)
                used |= parsed.pin.logical().mask()
            elif info.type is DescriptorType.UART:
                assert isinstance(parsed, UartDescriptor)
                used |= parsed.tx_pin.logical().mask()
                used |= parsed.rx_pin.logical().mask()
            elif info.type is DescriptorType.I2C_SLAVE:
                used |= LogicalPin(SCL).mask() | LogicalPin(SDA).mask()
            elif info.type is DescriptorType.SPI_SLAVE:
                assert isinstance(parsed, SpiSlaveDescriptor)
                used |= parsed.ss_pin.logical().mask()
                used |= LogicalPin(MISO).mask()
                used |= LogicalPin(MOSI).mask()
                used |= LogicalPin(SCK).mask()
        self.used_pins = used
        return used


class Backpacks:
    """All backpacks found on one bus."""

    def __init__(self, pbbp: _Bus) -> None:
        self._pbbp = pbbp
        self.backpacks: list[BackpackInfo] = []
        self.used_pins = 0

    @property
    def num_backpacks(self) -> int:
        return len(self.backpacks)

    def detect(self) -> list[BackpackInfo]:
        """Enumerate the bus and rebuild the list of backpacks."""
        self.free_backpacks(True)
        for unique_id in self._pbbp.enumerate():
            self.add_backpack(unique_id)
        self.update_used_pins()
        return list(self.backpacks)

    def add_backpack(self, unique_id: Union[UniqueId, bytes]) -> BackpackInfo:
        """Append a backpack; its bus address is its position in the list."""
        if not isinstance(unique_id, UniqueId):
            unique_id = UniqueId.from_bytes(unique_id)
        info = BackpackInfo(unique_id, len(self.backpacks), self._pbbp)
        self.backpacks.append(info)
        return info

    def free_backpacks(self, clear_list: bool) -> None:
        """Drop cached data; with ``clear_list`` also forget the backpacks."""
        for info in self.backpacks:
            info.free_header()
            info.free_eeprom()
            info.free_all_descriptors()
        if clear_list:
            self.backpacks = []
            self.used_pins = 0

    def is_model_present(self, model_id: int) -> bool:
        return any(info.id.model == model_id for info in self.backpacks)

    def update_used_pins(self) -> int:
        used = 0
        for info in self.backpacks:
            used |= info.get_used_pins()
        self.used_pins = used
        return used

    def on_toggle_vcc(self, on: bool) -> None:
        """Re-detect when backpack power returns, forget everything when it goes."""
        if on:
            self.detect()
        else:
            self.free_backpacks(True)