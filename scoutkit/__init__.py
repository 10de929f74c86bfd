"""Backpack bus protocol, backpack EEPROM parsing, pin tables and key table for scout boards."""

__version__ = "0.1.0"