# scoutkit

Tools for scout boards and their backpacks, in plain Python with no dependencies:

- **Backpack bus** (`scoutkit.pbbp`): the master side of the single-wire bus protocol,
  bit by bit, on top of a `PinDriver` that you supply for your own hardware or simulation.
  `Pbbp` offers `enumerate`, `send_reset`, `send_byte`/`send_bytes`,
  `receive_byte`/`receive_bytes`, `send_command`, `read_eeprom` and `write_eeprom`.
  Failures raise `BusError`, which carries an `ErrorCode` and, after a NACK, the slave's
  own error code.
- **Backpack EEPROM** (`scoutkit.eeprom`): the `Eeprom` image, `parse_header`, string
  helpers (`string_length`, `extract_string`, `parse_string`), `eeprom_checksum`,
  `unique_id_checksum`, `is_readonly`, and `read_eeprom`/`write_eeprom` to move a whole
  image over the bus. Malformed contents raise `EepromError`.
- **Descriptors** (`scoutkit.descriptors`): `parse_descriptor_list` locates the
  descriptors after the header, `parse_descriptor` turns one into a dataclass
  (`GroupDescriptor`, `PowerUsageDescriptor`, `DataDescriptor`, `IoPinDescriptor`,
  `UartDescriptor`, `I2cSlaveDescriptor`, `SpiSlaveDescriptor`), and `update_eeprom`
  returns an edited copy of an image with its used size and checksum recalculated and the
  read-only unique id left untouched.
- **Pins** (`scoutkit.pins`): `UniqueId`, `DescriptorType`, `PhysicalPin` and
  `LogicalPin` with their bit masks, and `extract_major_minor` for revision bytes.
- **Backpacks** (`scoutkit.backpacks`): `Backpacks` enumerates a bus and keeps a
  `BackpackInfo` per backpack, which fetches and caches its EEPROM, header, parsed
  descriptors and the mask of logical pins it uses. `Backpack` is the abstract base for
  a backpack driver.
- **CRC** (`scoutkit.crc`): `crc_update` and `crc_generate`, bit by bit, for any width.
- **Minifloats** (`scoutkit.minifloat`): small unsigned floating point formats that
  convert to `float` exactly.
- **Key table** (`scoutkit.keys`): `KeyTable`, a fixed table of 64 key strings preloaded
  with the standard report keys, with temporary keys that expire on the next `loop`.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

Checking an EEPROM image and listing its descriptors:

```python
from scoutkit.eeprom import Eeprom, parse_header
from scoutkit.descriptors import parse_descriptor_list, parse_descriptor

eep = Eeprom(raw_bytes)
header = parse_header(eep)
print(header.backpack_name, header.firmware_version)

for info in parse_descriptor_list(eep, header):
    print(info.type, parse_descriptor(eep, info))
```

Enumerating backpacks, given a `PinDriver` implementation for your pin:

```python
from scoutkit.pbbp import Pbbp
from scoutkit.backpacks import Backpacks

backpacks = Backpacks(Pbbp(driver))
for info in backpacks.detect():
    print(info.address, info.id.model, info.get_header().backpack_name)
print(bin(backpacks.used_pins))
```

Decoding a minifloat:

```python
from scoutkit.minifloat import Minifloat

print(float(Minifloat(0x27, 4, 4, 0)))  # 5.75
```

Looking up keys:

```python
from scoutkit.keys import KeyTable

keys = KeyTable()
index = keys.map("wifi", 0)
assert keys.get(index) == "wifi"
```

## What it does not do

- It does not touch hardware itself: the bus runs only through a `PinDriver` you
  implement, and no ready-made driver for any board is included.
- It has no drivers for environmental sensors (temperature, humidity, pressure, light)
  and no registry of loadable board modules.
- It has no command-line tool; it is a library only.