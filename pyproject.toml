[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "scoutkit"
version = "0.1.0"
description = "Backpack bus protocol, backpack EEPROM parsing, pin tables and key table for scout boards"
requires-python = ">=3.10"
dependencies = []
keywords = ["embedded", "backpack-bus", "eeprom", "crc", "minifloat", "pins"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["scoutkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
