import pytest

from serial_autobaud.detector import AutoNegotiator
from serial_autobaud.echo_probe import EchoProbeStrategy
from serial_autobaud.standard_bauds import StandardBaudsStrategy
from serial_autobaud.strategy import (
    AllStrategiesFailedError,
    NegotiatedParams,
    NegotiationHints,
    NegotiationStrategy,
    StrategyError,
)


class FakeStrategy(NegotiationStrategy):
    def __init__(self, name, priority, baud_rate=None, calls=None):
        self.name = name
        self.priority = priority
        self.baud_rate = baud_rate
        self.calls = calls if calls is not None else []

    async def negotiate(self, port_name, hints):
        self.calls.append((self.name, port_name, hints))
        if self.baud_rate is None:
            raise StrategyError(self.name, "fake failure")
        return NegotiatedParams(self.baud_rate, self.name)


def test_new_negotiator():
    assert len(AutoNegotiator().strategies()) == 3


def test_strategies_sorted_by_priority():
    strategies = AutoNegotiator().strategies()
    priorities = [s.priority for s in strategies]
    assert priorities == sorted(priorities, reverse=True)
    assert [s.name for s in strategies] == ["manufacturer", "echo_probe", "standard_bauds"]


def test_add_strategy():
    negotiator = AutoNegotiator().add_strategy(EchoProbeStrategy())
    assert len(negotiator.strategies()) == 4


def test_add_strategy_keeps_priority_order():
    negotiator = AutoNegotiator().add_strategy(FakeStrategy("top", 99))
    assert negotiator.strategies()[0].name == "top"


def test_get_manufacturer_profile():
    profile = AutoNegotiator.get_manufacturer_profile(0x0403)
    assert profile is not None
    assert profile.name == "FTDI"


def test_get_manufacturer_profile_unknown():
    assert AutoNegotiator.get_manufacturer_profile(0xFFFF) is None


def test_all_manufacturer_profiles():
    profiles = AutoNegotiator.all_manufacturer_profiles()
    assert len(profiles) > 0
    names = {p.name for p in profiles}
    assert "FTDI" in names
    assert "Arduino" in names


def test_with_strategies():
    negotiator = AutoNegotiator.with_strategies([StandardBaudsStrategy()])
    assert len(negotiator.strategies()) == 1
    assert negotiator.strategies()[0].name == "standard_bauds"


@pytest.mark.asyncio
async def test_detect_uses_first_success_in_priority_order():
    calls = []
    negotiator = AutoNegotiator.with_strategies(
        [
            FakeStrategy("low", 10, 9600, calls),
            FakeStrategy("high", 90, None, calls),
            FakeStrategy("mid", 50, 115200, calls),
        ]
    )
    params = await negotiator.detect("port0")
    assert params.baud_rate == 115200
    assert params.strategy_used == "mid"
    assert [c[0] for c in calls] == ["high", "mid"]


@pytest.mark.asyncio
async def test_detect_passes_hints():
    calls = []
    hints = NegotiationHints.with_vid(0x2341)
    negotiator = AutoNegotiator.with_strategies([FakeStrategy("only", 50, 9600, calls)])
    await negotiator.detect("port0", hints)
    assert calls[0][2].vid == 0x2341


@pytest.mark.asyncio
async def test_detect_all_fail():
    negotiator = AutoNegotiator.with_strategies(
        [FakeStrategy("a", 50), FakeStrategy("b", 40)]
    )
    with pytest.raises(AllStrategiesFailedError):
        await negotiator.detect("port0")


@pytest.mark.asyncio
async def test_detect_no_strategies():
    with pytest.raises(AllStrategiesFailedError):
        await AutoNegotiator.with_strategies([]).detect("port0")


@pytest.mark.asyncio
async def test_detect_default_strategies_on_missing_port():
    negotiator = AutoNegotiator()
    with pytest.raises(AllStrategiesFailedError):
        await negotiator.detect("/nonexistent/serial/port-zz", NegotiationHints.with_baud_rates([9600]))


@pytest.mark.asyncio
async def test_detect_with_preference_tries_preferred_first():
    calls = []
    negotiator = AutoNegotiator.with_strategies(
        [FakeStrategy("high", 90, 9600, calls), FakeStrategy("low", 10, 57600, calls)]
    )
    params = await negotiator.detect_with_preference("port0", None, "low")
    assert params.baud_rate == 57600
    assert [c[0] for c in calls] == ["low"]


@pytest.mark.asyncio
async def test_detect_with_preference_falls_back_when_preferred_fails():
    calls = []
    negotiator = AutoNegotiator.with_strategies(
        [FakeStrategy("high", 90, 9600, calls), FakeStrategy("low", 10, None, calls)]
    )
    params = await negotiator.detect_with_preference("port0", None, "low")
    assert params.strategy_used == "high"
    assert [c[0] for c in calls] == ["low", "high"]


@pytest.mark.asyncio
async def test_detect_with_preference_unknown_name():
    calls = []
    negotiator = AutoNegotiator.with_strategies([FakeStrategy("high", 90, 19200, calls)])
    params = await negotiator.detect_with_preference("port0", None, "missing")
    assert params.baud_rate == 19200
    assert [c[0] for c in calls] == ["high"]


@pytest.mark.asyncio
async def test_detect_with_preference_all_fail():
    negotiator = AutoNegotiator.with_strategies([FakeStrategy("a", 50)])
    with pytest.raises(AllStrategiesFailedError):
        await negotiator.detect_with_preference("port0", None, "a")


class PortSpecificStrategy(NegotiationStrategy):
    name = "port_specific"
    priority = 50

    async def negotiate(self, port_name, hints):
        if port_name == "good":
            return NegotiatedParams(38400, self.name)
        raise StrategyError(self.name, "bad port")


@pytest.mark.asyncio
async def test_detect_multiple():
    negotiator = AutoNegotiator.with_strategies([PortSpecificStrategy()])
    results = await negotiator.detect_multiple([("good", None), ("bad", NegotiationHints())])
    assert [name for name, _ in results] == ["good", "bad"]
    assert results[0][1].baud_rate == 38400
    assert isinstance(results[1][1], AllStrategiesFailedError)