"""Strategy that tries common baud rates one after another."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import serial

from .strategy import (
    NegotiatedParams,
    NegotiationHints,
    NegotiationStrategy,
    StrategyError,
)

log = logging.getLogger(__name__)

STANDARD_BAUD_RATES: tuple[int, ...] = (
    9600,
    115200,
    19200,
    38400,
    57600,
    230400,
    460800,
    921600,
    4800,
    2400,
    1200,
)

_PROBE = b"\r\n"
_SETTLE_SECONDS = 0.05
_RESPONSE_TIMEOUT_SECONDS = 0.1
_RESPONSE_SIZE = 256
_HIGH_CONFIDENCE = 0.8


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


class StandardBaudsStrategy(NegotiationStrategy):
    """Open the port at each standard rate until one works."""

    name = "standard_bauds"
    priority = 30

    def __init__(
        self,
        custom_rates: Iterable[int] | None = None,
        verify_with_probe: bool = False,
    ) -> None:
        self.custom_rates = list(custom_rates) if custom_rates is not None else None
        self.verify_with_probe = verify_with_probe

    @classmethod
    def with_custom_rates(cls, rates: Iterable[int]) -> StandardBaudsStrategy:
        """Strategy that tries the given rates instead of the standard set."""
        return cls(custom_rates=rates)

    def with_probe_verification(self) -> StandardBaudsStrategy:
        """Copy of this strategy that sends a probe and waits for a reply."""
        return type(self)(custom_rates=self.custom_rates, verify_with_probe=True)

    def baud_rates_for(self, hints: NegotiationHints) -> list[int]:
        """Rates to try: suggestions first, then custom or standard rates."""
        rates = list(hints.suggested_baud_rates)
        if hints.restrict_to_suggested and rates:
            return rates
        fallback = self.custom_rates if self.custom_rates is not None else STANDARD_BAUD_RATES
        for rate in fallback:
            if rate not in rates:
                rates.append(rate)
        return rates

    async def _try_baud_rate(self, port_name: str, baud_rate: int, timeout: float) -> float | None:
        log.debug("Probing %s at %d baud", port_name, baud_rate)
        try:
            port = await asyncio.to_thread(_open_port, port_name, baud_rate, timeout)
        except (serial.SerialException, OSError, ValueError) as exc:
            log.debug("Failed to open at %d baud: %s", baud_rate, exc)
            return None

        with port:
            if not self.verify_with_probe:
                log.debug("Port opened at %d baud (no verification)", baud_rate)
                return 0.3
            try:
                await asyncio.to_thread(port.write, _PROBE)
            except (serial.SerialException, OSError) as exc:
                log.warning("Write failed at %d baud: %s", baud_rate, exc)
                return None
            await asyncio.sleep(_SETTLE_SECONDS)
            port.timeout = _RESPONSE_TIMEOUT_SECONDS
            try:
                response = await asyncio.to_thread(port.read, _RESPONSE_SIZE)
            except (serial.SerialException, OSError) as exc:
                log.warning("Read error at %d baud: %s", baud_rate, exc)
                return None

        if response:
            log.debug("Got %d bytes at %d baud", len(response), baud_rate)
            return 0.6
        log.debug("No response within timeout at %d baud", baud_rate)
        return 0.3

    async def negotiate(self, port_name: str, hints: NegotiationHints) -> NegotiatedParams:
        rates = self.baud_rates_for(hints)
        timeout = hints.timeout().total_seconds()
        log.debug("Trying %d baud rates for port %s", len(rates), port_name)

        best: tuple[int, float] | None = None
        for baud_rate in rates:
            confidence = await self._try_baud_rate(port_name, baud_rate, timeout)
            if confidence is None:
                continue
            if best is None or confidence > best[1]:
                best = (baud_rate, confidence)
            if confidence >= _HIGH_CONFIDENCE:
                break

        if best is None:
            raise StrategyError(self.name, "No baud rate worked")
        baud_rate, confidence = best
        return NegotiatedParams(baud_rate, self.name).with_confidence(confidence)