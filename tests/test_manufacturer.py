from unittest import mock

import pytest
import serial

from serial_autobaud.manufacturer import ManufacturerStrategy
from serial_autobaud.strategy import NegotiationHints, StrategyError


def make_fake_serial(working_bauds, attempts, writes):
    class FakeSerial:
        def __init__(self, port=None, baudrate=9600, timeout=None, **kwargs):
            attempts.append(baudrate)
            if baudrate not in working_bauds:
                raise serial.SerialException(f"cannot open at {baudrate}")
            self.baudrate = baudrate

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def close(self):
            pass

        def write(self, data):
            writes.append((self.baudrate, data))
            return len(data)

    return FakeSerial


def test_get_profile_ftdi():
    profile = ManufacturerStrategy.get_profile(0x0403)
    assert profile.name == "FTDI"
    assert profile.default_baud == 115200
    assert 9600 in profile.common_bauds
    assert 115200 in profile.common_bauds


def test_get_profile_arduino():
    profile = ManufacturerStrategy.get_profile(0x2341)
    assert profile.name == "Arduino"
    assert profile.default_baud == 9600


def test_get_profile_unknown():
    assert ManufacturerStrategy.get_profile(0xFFFF) is None


def test_all_profiles():
    profiles = ManufacturerStrategy.all_profiles()
    assert len(profiles) == 8
    assert any(p.name == "FTDI" for p in profiles)
    assert any(p.name == "Arduino" for p in profiles)


def test_strategy_priority():
    strategy = ManufacturerStrategy()
    assert strategy.priority == 80
    assert strategy.name == "manufacturer"


@pytest.mark.asyncio
async def test_negotiate_requires_vid():
    with pytest.raises(StrategyError) as info:
        await ManufacturerStrategy().negotiate("fake", NegotiationHints())
    assert info.value.message == "No VID provided in hints"


@pytest.mark.asyncio
async def test_negotiate_unknown_vid():
    with pytest.raises(StrategyError) as info:
        await ManufacturerStrategy().negotiate("fake", NegotiationHints.with_vid(0xFFFF))
    assert info.value.message == "Unknown VID: 0xFFFF"


@pytest.mark.asyncio
async def test_negotiate_default_baud():
    attempts, writes = [], []
    fake = make_fake_serial({115200}, attempts, writes)
    with mock.patch("serial.Serial", fake):
        params = await ManufacturerStrategy().negotiate("fake", NegotiationHints.with_vid(0x0403))
    assert params.baud_rate == 115200
    assert params.confidence == pytest.approx(0.9)
    assert params.strategy_used == "manufacturer"
    assert writes == [(115200, b"\r\n")]


@pytest.mark.asyncio
async def test_negotiate_falls_back_to_common_baud():
    attempts, writes = [], []
    fake = make_fake_serial({19200}, attempts, writes)
    with mock.patch("serial.Serial", fake):
        params = await ManufacturerStrategy().negotiate("fake", NegotiationHints.with_vid(0x0403))
    assert params.baud_rate == 19200
    assert params.confidence == pytest.approx(0.7)
    assert attempts == [115200, 9600, 19200]


@pytest.mark.asyncio
async def test_negotiate_no_baud_works():
    attempts, writes = [], []
    fake = make_fake_serial(set(), attempts, writes)
    with mock.patch("serial.Serial", fake):
        with pytest.raises(StrategyError) as info:
            await ManufacturerStrategy().negotiate("fake", NegotiationHints.with_vid(0x2341))
    assert info.value.message == "None of the common baud rates for Arduino worked"
    assert attempts == [9600, 57600, 115200]