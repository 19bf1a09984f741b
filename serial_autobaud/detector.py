"""Run negotiation strategies in priority order to find port parameters."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from .echo_probe import EchoProbeStrategy
from .manufacturer import ManufacturerProfile, ManufacturerStrategy
from .standard_bauds import StandardBaudsStrategy
from .strategy import (
    AllStrategiesFailedError,
    NegotiatedParams,
    NegotiationError,
    NegotiationHints,
    NegotiationStrategy,
)

__all__ = [
    "AutoNegotiator",
    "NegotiatedParams",
    "NegotiationError",
    "NegotiationHints",
    "NegotiationStrategy",
]

log = logging.getLogger(__name__)


def _by_priority(strategies: Iterable[NegotiationStrategy]) -> list[NegotiationStrategy]:
    return sorted(strategies, key=lambda s: s.priority, reverse=True)


class AutoNegotiator:
    """Tries a set of strategies, highest priority first, until one succeeds."""

    def __init__(self, strategies: Iterable[NegotiationStrategy] | None = None) -> None:
        if strategies is None:
            strategies = (ManufacturerStrategy(), EchoProbeStrategy(), StandardBaudsStrategy())
        self._strategies = _by_priority(strategies)

    @classmethod
    def with_strategies(cls, strategies: Iterable[NegotiationStrategy]) -> AutoNegotiator:
        """Negotiator using exactly the given strategies."""
        return cls(list(strategies))

    def add_strategy(self, strategy: NegotiationStrategy) -> AutoNegotiator:
        """Register another strategy and return this negotiator."""
        self._strategies = _by_priority([*self._strategies, strategy])
        return self

    def strategies(self) -> tuple[NegotiationStrategy, ...]:
        """The registered strategies in the order they are tried."""
        return tuple(self._strategies)

    async def detect(
        self, port_name: str, hints: NegotiationHints | None = None
    ) -> NegotiatedParams:
        """Return the result of the first strategy that succeeds.

        Raises AllStrategiesFailedError if none does.
        """
        hints = hints if hints is not None else NegotiationHints()
        log.info(
            "Starting auto-negotiation for port %s with %d strategies",
            port_name,
            len(self._strategies),
        )
        for strategy in self._strategies:
            log.debug("Trying strategy '%s' (priority %d)", strategy.name, strategy.priority)
            try:
                params = await strategy.negotiate(port_name, hints)
            except NegotiationError as exc:
                log.debug("Strategy '%s' failed: %s", strategy.name, exc)
                continue
            log.info(
                "Strategy '%s' succeeded: %d baud (confidence: %s)",
                params.strategy_used,
                params.baud_rate,
                params.confidence,
            )
            return params

        log.warning("All %d strategies failed for port %s", len(self._strategies), port_name)
        raise AllStrategiesFailedError()

    async def detect_with_preference(
        self,
        port_name: str,
        hints: NegotiationHints | None,
        preferred_strategy: str,
    ) -> NegotiatedParams:
        """Try the named strategy first, then fall back to priority order."""
        hints = hints if hints is not None else NegotiationHints()
        log.info(
            "Auto-negotiation for %s with preference for '%s'", port_name, preferred_strategy
        )
        preferred = next((s for s in self._strategies if s.name == preferred_strategy), None)
        if preferred is None:
            log.warning("Preferred strategy '%s' not found", preferred_strategy)
        else:
            log.debug("Trying preferred strategy '%s'", preferred_strategy)
            try:
                params = await preferred.negotiate(port_name, hints)
            except NegotiationError:
                log.debug("Preferred strategy '%s' failed, trying others", preferred_strategy)
            else:
                log.info(
                    "Preferred strategy '%s' succeeded: %d baud",
                    preferred_strategy,
                    params.baud_rate,
                )
                return params
        return await self.detect(port_name, hints)

    @staticmethod
    def get_manufacturer_profile(vid: int) -> ManufacturerProfile | None:
        """The manufacturer profile for a vendor ID, or None."""
        return ManufacturerStrategy.get_profile(vid)

    @staticmethod
    def all_manufacturer_profiles() -> tuple[ManufacturerProfile, ...]:
        """Every known manufacturer profile."""
        return ManufacturerStrategy.all_profiles()

    async def detect_multiple(
        self, ports: Iterable[tuple[str, NegotiationHints | None]]
    ) -> list[tuple[str, NegotiatedParams | NegotiationError]]:
        """Detect several ports concurrently.

        Each entry pairs the port name with its parameters or the error raised.
        """

        async def one(
            port_name: str, hints: NegotiationHints | None
        ) -> tuple[str, NegotiatedParams | NegotiationError]:
            try:
                return port_name, await self.detect(port_name, hints)
            except NegotiationError as exc:
                return port_name, exc

        return list(await asyncio.gather(*(one(name, hints) for name, hints in ports)))