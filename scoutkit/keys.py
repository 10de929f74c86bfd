"""Table mapping report keys to small integer indices."""

from __future__ import annotations

import json
from typing import Optional

KEY_MAX = 64

BUNDLED_KEYS: tuple[str, ...] = (
    "OVERFLOW", "pinoccio", "scout", "lead", "version", "family", "serial",
    "hardware", "build", "mesh", "scoutid", "troopid", "routes", "rate",
    "power", "digital", "mode", "state", "analog", "backpacks", "list",
    "wifi", "connected", "hq", "temp", "current", "high", "low", "uptime",
    "millis", "free", "random", "battery", "voltage", "charging", "vcc",
    "led", "torch", "daisy", "dave", "reset", "sketch", "revision", "custom",
    "name", "memory", "used", "large", "sleep", "channel", "f", "c",
    "offset", "total",
)


class KeyTable:
    """A fixed-size table of interned key strings.

    Index 0 always holds "OVERFLOW" and is what ``map`` returns when the
    table is full. Keys mapped with a non-zero ``at`` time are temporary
    and are dropped by the next ``loop`` call.
    """

    def __init__(self) -> None:
        self._keys: list[Optional[str]] = [None] * KEY_MAX
        self._temporary = [False] * KEY_MAX
        self._last = 0
        self.map("OVERFLOW", 0)
        for key in BUNDLED_KEYS:
            self.map(key, 0)

    def map(self, key: str, at: int = 0) -> int:
        """Return the index of ``key``, adding it if needed; 0 when full."""
        index = 0
        for index, existing in enumerate(self._keys):
            if existing is None:
                break
            if existing == key:
                if not at:
                    # A permanent mapping always makes the key sticky.
                    self._temporary[index] = False
                return index
        else:
            return 0

        self._keys[index] = key
        if at:
            self._last = at
            self._temporary[index] = True
        return index

    def get(self, index: int) -> Optional[str]:
        """The key at ``index``, or None for an empty or invalid slot."""
        if not 0 <= index < KEY_MAX:
            return None
        return self._keys[index]

    def free(self, index: int) -> None:
        """Remove the key at ``index``; slot 0 and invalid indices are ignored."""
        if not 1 <= index < KEY_MAX:
            return
        self._keys[index] = None
        self._temporary[index] = False

    def load(self, array: Optional[str], at: int = 0) -> list[int]:
        """Map every entry of a JSON array and return their indices in order."""
        if not array:
            return []
        values = json.loads(array)
        if not isinstance(values, list):
            raise ValueError("expected a JSON array of keys")
        return [
            self.map(value if isinstance(value, str) else json.dumps(value), at)
            for value in values
        ]

    def loop(self, now: int) -> bool:
        """Drop all temporary keys; True when there was anything to expire."""
        if not self._last:
            return False
        for index, temporary in enumerate(self._temporary):
            if temporary:
                self.free(index)
        self._last = 0
        return True