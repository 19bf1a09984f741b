"""Strategy that picks baud rates from known USB vendor profiles."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import serial

from .strategy import (
    NegotiatedParams,
    NegotiationHints,
    NegotiationStrategy,
    StrategyError,
)

log = logging.getLogger(__name__)

_PROBE = b"\r\n"
_DEFAULT_CONFIDENCE = 0.9
_COMMON_CONFIDENCE = 0.7


@dataclass(frozen=True)
class ManufacturerProfile:
    """Default communication parameters for a USB vendor."""

    vid: int
    name: str
    default_baud: int
    common_bauds: tuple[int, ...]


MANUFACTURER_PROFILES: tuple[ManufacturerProfile, ...] = (
    ManufacturerProfile(0x0403, "FTDI", 115200, (9600, 19200, 38400, 57600, 115200, 230400, 460800, 921600)),
    ManufacturerProfile(0x10C4, "Silicon Labs CP210x", 9600, (9600, 19200, 38400, 57600, 115200)),
    ManufacturerProfile(0x1A86, "WCH CH340/CH341", 9600, (9600, 19200, 57600, 115200)),
    ManufacturerProfile(0x2341, "Arduino", 9600, (9600, 57600, 115200)),
    ManufacturerProfile(0x239A, "Adafruit", 115200, (9600, 115200)),
    ManufacturerProfile(0x2E8A, "Raspberry Pi Pico", 115200, (9600, 115200)),
    ManufacturerProfile(0x067B, "Prolific PL2303", 9600, (9600, 19200, 38400, 57600, 115200)),
    ManufacturerProfile(0x0483, "STMicroelectronics", 115200, (9600, 38400, 115200)),
)


def _open_port(port_name: str, baud_rate: int, timeout: float) -> serial.Serial:
    return serial.Serial(
        port=port_name,
        baudrate=baud_rate,
        bytesize=serial.EIGHTBITS,
        parity=serial.PARITY_NONE,
        stopbits=serial.STOPBITS_ONE,
        xonxoff=False,
        rtscts=False,
        timeout=timeout,
        write_timeout=timeout,
    )


class ManufacturerStrategy(NegotiationStrategy):
    """Use the vendor ID to try that vendor's usual baud rates."""

    name = "manufacturer"
    priority = 80

    @staticmethod
    def get_profile(vid: int) -> ManufacturerProfile | None:
        """The profile for a vendor ID, or None if unknown."""
        return next((p for p in MANUFACTURER_PROFILES if p.vid == vid), None)

    @staticmethod
    def all_profiles() -> tuple[ManufacturerProfile, ...]:
        """Every known manufacturer profile."""
        return MANUFACTURER_PROFILES

    async def _try_baud_rate(self, port_name: str, baud_rate: int, timeout: float) -> bool:
        log.debug("Trying baud rate %d on %s", baud_rate, port_name)
        try:
            port = await asyncio.to_thread(_open_port, port_name, baud_rate, timeout)
        except (serial.SerialException, OSError, ValueError) as exc:
            log.debug("Failed to open at %d baud: %s", baud_rate, exc)
            return False
        with port:
            try:
                await asyncio.to_thread(port.write, _PROBE)
            except (serial.SerialException, OSError) as exc:
                log.warning("Port opened but write failed: %s", exc)
                return False
        log.debug("Opened port at %d baud", baud_rate)
        return True

    async def negotiate(self, port_name: str, hints: NegotiationHints) -> NegotiatedParams:
        if hints.vid is None:
            raise StrategyError(self.name, "No VID provided in hints")
        profile = self.get_profile(hints.vid)
        if profile is None:
            raise StrategyError(self.name, f"Unknown VID: 0x{hints.vid:04X}")

        log.debug("Using manufacturer profile: %s (VID: 0x%04X)", profile.name, profile.vid)
        timeout = hints.timeout().total_seconds()

        if await self._try_baud_rate(port_name, profile.default_baud, timeout):
            return NegotiatedParams(profile.default_baud, self.name).with_confidence(_DEFAULT_CONFIDENCE)

        for baud_rate in profile.common_bauds:
            if baud_rate == profile.default_baud:
                continue
            if await self._try_baud_rate(port_name, baud_rate, timeout):
                return NegotiatedParams(baud_rate, self.name).with_confidence(_COMMON_CONFIDENCE)

        raise StrategyError(self.name, f"None of the common baud rates for {profile.name} worked")