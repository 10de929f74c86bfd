"""Master side of the single-wire backpack bus protocol."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import IntEnum

from .crc import crc_generate
from .pins import UNIQUE_ID_LENGTH, UniqueId

UNIQUE_ID_CRC_POLY = 0x2F

# Broadcast addresses sent over the wire.
BC_CMD_ENUMERATE = 0xFE
BC_FIRST = BC_CMD_ENUMERATE
ADDRESS_RESERVED = 0xFF

# Error codes a slave may send after a nack.
ERR_OK = 0
ERR_OTHER = 1
ERR_PROTOCOL = 2
ERR_PARITY = 3
ERR_UNKNOWN_COMMAND = 4
ERR_WRITE_EEPROM_INVALID_ADDRESS = 0xFF
ERR_WRITE_EEPROM_READ_ONLY = 0xFE
ERR_WRITE_EEPROM_FAILED = 0xFD
ERR_READ_EEPROM_INVALID_ADDRESS = 0xFF


class ErrorCode(IntEnum):
    """Reasons a bus transaction can fail."""

    OK = 0
    STALL_TIMEOUT = 1
    TIMEOUT = 2
    NACK = 3
    NACK_NO_SLAVE_CODE = 4
    NO_ACK_OR_NACK = 5
    ACK_AND_NACK = 6
    PARITY_ERROR = 7
    BIT_TOO_LATE = 8
    CRC_ERROR = 9
    TOO_MANY_SLAVES = 10


class Command(IntEnum):
    """Commands sent to an addressed slave."""

    RESERVED = 0x00
    READ_EEPROM = 0x01
    WRITE_EEPROM = 0x02


class BusError(Exception):
    """A bus transaction failed."""

    def __init__(self, code: ErrorCode, slave_error: int | None = None) -> None:
        self.code = ErrorCode(code)
        self.slave_error = slave_error
        super().__init__(self.code, slave_error)

    def __str__(self) -> str:
        text = self.code.name
        if self.code is ErrorCode.NACK and self.slave_error is not None:
            text += f", slave error code: 0x{self.slave_error:X}"
        return text


class PinDriver(ABC):
    """Access to the open-drain bus pin and a microsecond clock."""

    @abstractmethod
    def read(self) -> bool:
        """Return True when the line is high."""

    @abstractmethod
    def drive_low(self) -> None:
        """Actively pull the line low."""

    @abstractmethod
    def release(self) -> None:
        """Stop driving the line, letting it float high."""

    @abstractmethod
    def micros(self) -> int:
        """Current time in microseconds."""

    @abstractmethod
    def delay_micros(self, us: int) -> None:
        """Wait for the given number of microseconds."""


class Pbbp:
    """Bus master that bit-bangs the protocol over a PinDriver."""

    RESET_TIME = 2500
    START_TIME = 125
    VALUE_TIME = 650
    SAMPLE_TIME = 350
    IDLE_TIME = 50
    NEXT_BIT_TIME = 700
    MAX_NEXT_BIT_TIME = 1100
    MAX_STALL_BITS = 20
    MAX_SLAVES = 127
    FREE_BUS_POLLS = 255

    def __init__(self, driver: PinDriver) -> None:
        self.driver = driver
        self.max_slaves = self.MAX_SLAVES
        self._bit_start: int | None = None
        self._bit_end = 0
        driver.release()

    def enumerate(self) -> list[UniqueId]:
        """Collect the unique ids of all slaves on the bus."""
        try:
            self.send_reset()
            self.send_byte(BC_CMD_ENUMERATE)
        except BusError as exc:
            if exc.code is ErrorCode.NO_ACK_OR_NACK:
                return []
            raise

        ids: list[UniqueId] = []
        while len(ids) < self.max_slaves:
            raw = bytearray()
            for position in range(UNIQUE_ID_LENGTH):
                try:
                    raw.append(self.receive_byte())
                except BusError as exc:
                    if position == 0 and exc.code is ErrorCode.NO_ACK_OR_NACK:
                        return ids
                    raise
            if crc_generate(UNIQUE_ID_CRC_POLY, 0, raw, 8) != 0:
                raise BusError(ErrorCode.CRC_ERROR)
            ids.append(UniqueId.from_bytes(raw))

        try:
            self.receive_byte()
        except BusError as exc:
            if exc.code is ErrorCode.NO_ACK_OR_NACK:
                return ids
            raise
        raise BusError(ErrorCode.TOO_MANY_SLAVES)

    def send_reset(self) -> None:
        """Send a reset pulse to all slaves."""
        driver = self.driver
        self._wait_for_free_bus()
        start = driver.micros()
        driver.drive_low()
        while driver.micros() - start < self.RESET_TIME:
            pass
        driver.release()
        self._wait_for_free_bus()
        driver.delay_micros(self.IDLE_TIME)
        # The next bit neither waits nor checks for lateness.
        self._bit_start = None

    def send_byte(self, value: int) -> None:
        """Send one byte with parity and wait for the slave's ack."""
        if not 0 <= value <= 0xFF:
            raise ValueError(f"byte {value} out of range")
        parity = False
        for shift in range(7, -1, -1):
            bit = bool((value >> shift) & 1)
            parity ^= bit
            self._send_bit(bit)
        self._send_bit(not parity)
        self._receive_ready()
        self._receive_ack()

    def send_bytes(self, data: Iterable[int]) -> None:
        """Send several bytes in order."""
        for value in data:
            self.send_byte(value)

    def receive_byte(self) -> int:
        """Receive one byte from the addressed slave."""
        value = 0
        parity = False
        for shift in range(7, -1, -1):
            if self._receive_bit():
                value |= 1 << shift
                parity = not parity
        if self._receive_bit() == parity:
            raise BusError(ErrorCode.PARITY_ERROR)
        self._receive_ready()
        self._receive_ack()
        return value

    def receive_bytes(self, length: int) -> bytes:
        """Receive ``length`` bytes."""
        return bytes(self.receive_byte() for _ in range(length))

    def send_command(self, slave_addr: int, command: int) -> None:
        """Reset the bus, address a slave and send it a command."""
        self.send_reset()
        self.send_byte(slave_addr)
        self.send_byte(command)

    def read_eeprom(self, slave_addr: int, eeprom_addr: int, length: int) -> bytes:
        """Read ``length`` bytes of a slave's EEPROM."""
        self.send_command(slave_addr, Command.READ_EEPROM)
        self.send_byte(eeprom_addr)
        return self.receive_bytes(length)

    def write_eeprom(self, slave_addr: int, eeprom_addr: int, data: Iterable[int]) -> None:
        """Write bytes into a slave's EEPROM."""
        self.send_command(slave_addr, Command.WRITE_EEPROM)
        self.send_byte(eeprom_addr)
        self.send_bytes(data)

    def _wait_for_free_bus(self) -> None:
        for _ in range(self.FREE_BUS_POLLS):
            if self.driver.read():
                return
        raise BusError(ErrorCode.TIMEOUT)

    def _elapsed(self) -> int:
        assert self._bit_start is not None
        return self.driver.micros() - self._bit_start

    def _wait_until(self, offset: int) -> None:
        while self._elapsed() < offset:
            pass

    def _wait_for_next_bit_start(self) -> None:
        driver = self.driver
        if self._bit_start is not None:
            while driver.micros() - self._bit_end < self.IDLE_TIME:
                pass
            self._wait_until(self.NEXT_BIT_TIME)
            if self._elapsed() > self.MAX_NEXT_BIT_TIME:
                raise BusError(ErrorCode.BIT_TOO_LATE)
        self._bit_start = driver.micros()

    def _send_bit(self, value: bool) -> None:
        self._wait_for_next_bit_start()
        self._wait_for_free_bus()
        driver = self.driver
        driver.drive_low()
        self._wait_until(self.START_TIME)
        if value:
            driver.release()
        self._wait_until(self.VALUE_TIME)
        driver.release()
        self._bit_end = driver.micros()

    def _receive_bit(self) -> bool:
        self._wait_for_next_bit_start()
        self._wait_for_free_bus()
        driver = self.driver
        driver.drive_low()
        self._wait_until(self.START_TIME)
        driver.release()
        self._wait_until(self.SAMPLE_TIME)
        value = bool(driver.read())
        self._wait_until(self.VALUE_TIME)
        # A slow slave may still hold the line; wait for it, but not forever.
        self._wait_for_free_bus()
        self._bit_end = driver.micros()
        return value

    def _receive_ready(self) -> None:
        for _ in range(self.MAX_STALL_BITS):
            if self._receive_bit():
                return
        raise BusError(ErrorCode.STALL_TIMEOUT)

    def _receive_ack(self) -> None:
        first = self._receive_bit()
        second = self._receive_bit()
        # Ack is 01, nack is 10; a dominant 0 makes 00 mean both were sent.
        if not first and not second:
            raise BusError(ErrorCode.ACK_AND_NACK)
        if not second:
            try:
                slave_error = self.receive_byte()
            except BusError:
                raise BusError(ErrorCode.NACK_NO_SLAVE_CODE) from None
            raise BusError(ErrorCode.NACK, slave_error)
        if first:
            raise BusError(ErrorCode.NO_ACK_OR_NACK)