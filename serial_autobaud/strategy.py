"""Core types shared by every negotiation strategy."""

from __future__ import annotations

import abc
import dataclasses
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

DEFAULT_TIMEOUT_MS = 500


class DataBits(Enum):
    """Number of data bits per character."""

    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8


class Parity(Enum):
    """Parity checking mode."""

    NONE = "none"
    ODD = "odd"
    EVEN = "even"


class StopBits(Enum):
    """Number of stop bits."""

    ONE = 1
    TWO = 2


class FlowControl(Enum):
    """Flow control mode."""

    NONE = "none"
    HARDWARE = "hardware"
    SOFTWARE = "software"


class NegotiationError(Exception):
    """Base class for failures during port negotiation."""


class PortNotFoundError(NegotiationError):
    """The requested port does not exist on this system."""

    def __init__(self, port_name: str) -> None:
        super().__init__(f"Port not found: {port_name}")
        self.port_name = port_name


class AllStrategiesFailedError(NegotiationError):
    """No strategy managed to establish communication."""

    def __init__(self) -> None:
        super().__init__("All strategies failed")


class NegotiationTimeoutError(NegotiationError):
    """Negotiation ran out of time."""

    def __init__(self) -> None:
        super().__init__("Timeout during negotiation")


class SerialPortError(NegotiationError):
    """A port-level error occurred."""

    def __init__(self, detail: object) -> None:
        super().__init__(f"Port error: {detail}")
        self.detail = detail


class InvalidConfigError(NegotiationError):
    """An invalid configuration was detected or provided."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Invalid configuration: {detail}")
        self.detail = detail


class StrategyError(NegotiationError):
    """A specific strategy failed."""

    def __init__(self, strategy: str, message: str) -> None:
        super().__init__(f"Strategy error ({strategy}): {message}")
        self.strategy = strategy
        self.message = message


@dataclass
class NegotiationHints:
    """Optional context that guides negotiation."""

    vid: int | None = None
    pid: int | None = None
    manufacturer: str | None = None
    suggested_baud_rates: list[int] = field(default_factory=list)
    timeout_ms: int = 0
    restrict_to_suggested: bool = False

    @classmethod
    def with_vid(cls, vid: int) -> NegotiationHints:
        """Hints holding only a vendor ID."""
        return cls(vid=vid)

    @classmethod
    def with_vid_pid(cls, vid: int, pid: int) -> NegotiationHints:
        """Hints holding a vendor and product ID."""
        return cls(vid=vid, pid=pid)

    @classmethod
    def with_baud_rates(cls, rates: list[int]) -> NegotiationHints:
        """Hints holding suggested baud rates."""
        return cls(suggested_baud_rates=list(rates))

    def with_timeout_ms(self, timeout_ms: int) -> NegotiationHints:
        """Return a copy with the given per-attempt timeout."""
        return dataclasses.replace(self, timeout_ms=timeout_ms)

    def timeout(self) -> timedelta:
        """The per-attempt timeout, 500 ms when unset."""
        ms = self.timeout_ms if self.timeout_ms > 0 else DEFAULT_TIMEOUT_MS
        return timedelta(milliseconds=ms)


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


@dataclass
class NegotiatedParams:
    """Serial parameters found by a strategy."""

    baud_rate: int
    strategy_used: str
    data_bits: DataBits = DataBits.EIGHT
    parity: Parity = Parity.NONE
    stop_bits: StopBits = StopBits.ONE
    flow_control: FlowControl = FlowControl.NONE
    confidence: float = 1.0

    def __post_init__(self) -> None:
        self.confidence = _clamp(self.confidence)

    @classmethod
    def with_medium_confidence(cls, baud_rate: int, strategy_used: str) -> NegotiatedParams:
        """Parameters at confidence 0.5."""
        return cls(baud_rate, strategy_used, confidence=0.5)

    def with_confidence(self, confidence: float) -> NegotiatedParams:
        """Return a copy with the confidence clamped to [0, 1]."""
        return dataclasses.replace(self, confidence=_clamp(confidence))

    def with_params(
        self,
        data_bits: DataBits,
        parity: Parity,
        stop_bits: StopBits,
        flow_control: FlowControl,
    ) -> NegotiatedParams:
        """Return a copy with custom framing and flow control."""
        return dataclasses.replace(
            self,
            data_bits=data_bits,
            parity=parity,
            stop_bits=stop_bits,
            flow_control=flow_control,
        )


class NegotiationStrategy(abc.ABC):
    """A method of discovering a port's parameters.

    Strategies with a higher priority are tried first.
    """

    name: str = "strategy"
    priority: int = 50

    @abc.abstractmethod
    async def negotiate(self, port_name: str, hints: NegotiationHints) -> NegotiatedParams:
        """Find parameters for the port or raise NegotiationError."""