"""Strategy that sends probe commands and looks for known replies."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import serial

from .strategy import (
    NegotiatedParams,
    NegotiationHints,
    NegotiationStrategy,
    StrategyError,
)

log = logging.getLogger(__name__)

AT_COMMAND_BAUD_RATES: tuple[int, ...] = (9600, 115200, 19200, 38400, 57600, 4800, 2400)

_SETTLE_SECONDS = 0.05
_RESPONSE_SIZE = 1024
_MATCH_CONFIDENCE = 0.95
_MISMATCH_CONFIDENCE = 0.4
_STOP_CONFIDENCE = 0.9


@dataclass
class ProbeSequence:
    """A command to send and the replies that count as success."""

    command: bytes
    expected_responses: list[bytes] = field(default_factory=list)
    description: str = ""

    def matches(self, response: bytes) -> bool:
        """True if any expected pattern occurs anywhere in the response."""
        return any(expected in response for expected in self.expected_responses)


class CommonProbes:
    """Probe sequences for common kinds of device."""

    @staticmethod
    def at_command() -> ProbeSequence:
        """AT command probe for modems, GPS modules and the like."""
        return ProbeSequence(b"AT\r\n", [b"OK", b"ok", b"AT"], "AT command")

    @staticmethod
    def newline_echo() -> ProbeSequence:
        """Send a newline and expect an echo or a prompt."""
        return ProbeSequence(b"\r\n", [b"\r\n", b">", b"$", b"#"], "Newline echo")

    @staticmethod
    def hayes_modem() -> ProbeSequence:
        """Hayes command set identification probe."""
        return ProbeSequence(b"ATI\r\n", [b"OK", b"Modem", b"Hayes"], "Hayes modem")

    @staticmethod
    def nmea_gps() -> ProbeSequence:
        """Look for NMEA sentences from a GPS receiver."""
        return ProbeSequence(b"\r\n", [b"$GP", b"$GN", b"$GL"], "NMEA GPS")


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


def _read_response(port: serial.Serial, size: int) -> bytes:
    """Wait for the first byte, then take whatever else is already buffered."""
    first = port.read(1)
    if not first:
        return b""
    pending = min(port.in_waiting, size - 1)
    return first + port.read(pending) if pending > 0 else first


class EchoProbeStrategy(NegotiationStrategy):
    """Send probes at each baud rate and score the replies."""

    name = "echo_probe"
    priority = 60

    def __init__(
        self,
        probe_sequences: Iterable[ProbeSequence] | None = None,
        baud_rates: Iterable[int] | None = None,
    ) -> None:
        self.probe_sequences = (
            list(probe_sequences)
            if probe_sequences is not None
            else [CommonProbes.at_command(), CommonProbes.newline_echo()]
        )
        self.baud_rates = list(baud_rates) if baud_rates is not None else list(AT_COMMAND_BAUD_RATES)

    @classmethod
    def with_probes(cls, probe_sequences: Iterable[ProbeSequence]) -> EchoProbeStrategy:
        """Strategy that uses only the given probes."""
        return cls(probe_sequences=probe_sequences)

    def with_baud_rates(self, baud_rates: Iterable[int]) -> EchoProbeStrategy:
        """Copy of this strategy that tests the given baud rates."""
        return type(self)(self.probe_sequences, baud_rates)

    def add_probe(self, probe: ProbeSequence) -> EchoProbeStrategy:
        """Copy of this strategy with one more probe."""
        return type(self)([*self.probe_sequences, probe], self.baud_rates)

    async def _try_probe(
        self, port_name: str, baud_rate: int, probe: ProbeSequence, timeout: float
    ) -> float | None:
        log.debug("Trying %s probe at %d baud on %s", probe.description, baud_rate, port_name)
        try:
            port = await asyncio.to_thread(_open_port, port_name, baud_rate, timeout)
        except (serial.SerialException, OSError, ValueError) as exc:
            log.debug("Failed to open at %d baud: %s", baud_rate, exc)
            return None

        with port:
            try:
                await asyncio.to_thread(port.write, probe.command)
            except (serial.SerialException, OSError) as exc:
                log.warning("Failed to send probe at %d baud: %s", baud_rate, exc)
                return None
            await asyncio.sleep(_SETTLE_SECONDS)
            try:
                response = await asyncio.to_thread(_read_response, port, _RESPONSE_SIZE)
            except (serial.SerialException, OSError) as exc:
                log.warning("Read error at %d baud: %s", baud_rate, exc)
                return None

        if not response:
            log.debug("No response to probe at %d baud", baud_rate)
            return None
        log.debug("Got %d bytes: %r", len(response), response)
        if probe.matches(response):
            log.debug("Probe '%s' matched at %d baud", probe.description, baud_rate)
            return _MATCH_CONFIDENCE
        log.debug("Response did not match probe '%s'", probe.description)
        return _MISMATCH_CONFIDENCE

    async def negotiate(self, port_name: str, hints: NegotiationHints) -> NegotiatedParams:
        timeout = hints.timeout().total_seconds()
        baud_rates: Sequence[int] = hints.suggested_baud_rates or self.baud_rates
        log.debug(
            "Echo probe testing %d baud rates with %d probes",
            len(baud_rates),
            len(self.probe_sequences),
        )

        best: tuple[int, float, str] | None = None
        for baud_rate in baud_rates:
            for probe in self.probe_sequences:
                confidence = await self._try_probe(port_name, baud_rate, probe, timeout)
                if confidence is None:
                    continue
                if best is None or confidence > best[1]:
                    best = (baud_rate, confidence, probe.description)
                if confidence >= _STOP_CONFIDENCE:
                    return NegotiatedParams(baud_rate, self.name).with_confidence(confidence)

        if best is None:
            raise StrategyError(self.name, "No probe received valid response")
        baud_rate, confidence, description = best
        log.debug("Best result: %d baud (probe: %s, confidence: %s)", baud_rate, description, confidence)
        return NegotiatedParams(baud_rate, self.name).with_confidence(confidence)