[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "serial_autobaud"
version = "3.2.0"
description = "Automatic baud rate and parameter detection for serial ports using pluggable negotiation strategies."
requires-python = ">=3.10"
keywords = ["serial", "baud", "autobaud", "uart", "negotiation", "pyserial"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Terminals :: Serial",
]
dependencies = [
    "pyserial",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["serial_autobaud"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
