# serial_autobaud

Detect the baud rate and line settings of a serial device without knowing
them in advance. Several negotiation strategies are tried in priority order,
highest first, and the first one that succeeds wins. Ports are opened with
pyserial; all detection calls are `async`.

## Install

```
pip install serial_autobaud
```

For running the test suite:

```
pip install "serial_autobaud[test]"
```

## Modules

- `serial_autobaud.strategy`: shared types: `NegotiationHints`,
  `NegotiatedParams`, the `DataBits`, `Parity`, `StopBits` and `FlowControl`
  enums, the `NegotiationStrategy` base class and the errors
  (`NegotiationError` and its subclasses `PortNotFoundError`,
  `AllStrategiesFailedError`, `NegotiationTimeoutError`, `SerialPortError`,
  `InvalidConfigError`, `StrategyError`).
- `serial_autobaud.manufacturer`: `ManufacturerStrategy`,
  `ManufacturerProfile` and the `MANUFACTURER_PROFILES` table.
- `serial_autobaud.echo_probe`: `EchoProbeStrategy`, `ProbeSequence` and
  `CommonProbes`.
- `serial_autobaud.standard_bauds`: `StandardBaudsStrategy` and
  `STANDARD_BAUD_RATES`.
- `serial_autobaud.detector`: `AutoNegotiator`, which runs the strategies.

## Strategies

| Strategy                | Name             | Priority | How it works                                                     |
|-------------------------|------------------|----------|------------------------------------------------------------------|
| `ManufacturerStrategy`  | `manufacturer`   | 80       | Looks up the USB vendor ID in a table of known chips and boards. |
| `EchoProbeStrategy`     | `echo_probe`     | 60       | Sends probes such as `AT\r\n` and looks for an expected reply.   |
| `StandardBaudsStrategy` | `standard_bauds` | 30       | Tries common baud rates one after another.                       |

Every attempt opens the port with 8 data bits, no parity, one stop bit and no
flow control. Each result is a `NegotiatedParams` holding the baud rate, data
bits, parity, stop bits, flow control, the name of the strategy that found it
(`strategy_used`), and a `confidence` clamped to 0.0–1.0.

- `ManufacturerStrategy` needs `hints.vid`; it raises `StrategyError` when the
  VID is missing or unknown. It opens the port at the profile's default baud
  rate and writes `\r\n`; success gives confidence 0.9. Otherwise it tries the
  profile's other common rates, and the first that works gives 0.7.
- `EchoProbeStrategy` tries each probe at each baud rate (the hints'
  `suggested_baud_rates` if given, otherwise its own list). An expected reply
  gives 0.95 and ends the search at once; any other reply scores 0.4, and the
  best score found is returned.
- `StandardBaudsStrategy` tries the suggested rates first, then its custom
  rates or `STANDARD_BAUD_RATES`, skipping duplicates. If
  `restrict_to_suggested` is set and rates were suggested, only those are
  tried. Opening the port alone scores 0.3. With `with_probe_verification()`
  it writes `\r\n` and scores 0.6 if anything comes back, 0.3 if nothing does.

## Usage

```python
import asyncio

from serial_autobaud.detector import AutoNegotiator
from serial_autobaud.strategy import NegotiationHints


async def main():
    negotiator = AutoNegotiator()
    hints = NegotiationHints.with_vid(0x0403).with_timeout_ms(300)
    params = await negotiator.detect("/dev/ttyUSB0", hints)
    print(params.baud_rate, params.strategy_used, params.confidence)


asyncio.run(main())
```

When every strategy fails, `detect` raises
`serial_autobaud.strategy.AllStrategiesFailedError`.

To try one strategy first, by name, and fall back to the usual order if it
fails:

```python
params = await negotiator.detect_with_preference("/dev/ttyUSB0", None, "echo_probe")
```

To detect several ports at the same time:

```python
results = await negotiator.detect_multiple([
    ("/dev/ttyUSB0", None),
    ("/dev/ttyACM0", NegotiationHints.with_baud_rates([115200])),
])
for port_name, outcome in results:
    print(port_name, outcome)
```

In each pair, `outcome` is either a `NegotiatedParams` or the
`NegotiationError` raised for that port.

## Hints

`NegotiationHints` guides detection:

- `vid`, `pid`: the USB vendor and product IDs
  (`NegotiationHints.with_vid`, `NegotiationHints.with_vid_pid`).
- `manufacturer`: the manufacturer name.
- `suggested_baud_rates`: baud rates to try first
  (`NegotiationHints.with_baud_rates`).
- `restrict_to_suggested`: with `StandardBaudsStrategy`, try only the
  suggested rates.
- `timeout_ms`: the time allowed for each attempt (`with_timeout_ms`
  returns a copy). `timeout()` gives it as a `timedelta`, 500 ms when unset.

## Custom strategies

Subclass `NegotiationStrategy`, set the class attributes `name` and
`priority` (default 50), and implement
`async def negotiate(self, port_name, hints)`, returning `NegotiatedParams`
or raising a `NegotiationError`. Pass your strategies to
`AutoNegotiator.with_strategies([...])`, or register one with
`negotiator.add_strategy(...)`, which returns the negotiator. `strategies()`
lists them in the order they are tried.

`EchoProbeStrategy` can be given its own probes:

```python
from serial_autobaud.echo_probe import EchoProbeStrategy, ProbeSequence

probe = ProbeSequence(b"PING\r\n", [b"PONG"], "Ping")
strategy = EchoProbeStrategy.with_probes([probe]).with_baud_rates([9600, 115200])
```

`CommonProbes` offers `at_command()`, `newline_echo()`, `hayes_modem()` and
`nmea_gps()`; `add_probe(...)` returns a copy with one more probe.

## Manufacturer profiles

```python
from serial_autobaud.detector import AutoNegotiator

profile = AutoNegotiator.get_manufacturer_profile(0x2341)
print(profile.name, profile.default_baud)  # Arduino 9600

for p in AutoNegotiator.all_manufacturer_profiles():
    print(f"0x{p.vid:04X}", p.name, p.common_bauds)
```

## What this package does not do

It is a library only: there is no command-line tool and no server. It does
not list the serial ports on the system or read their USB vendor IDs for
you; pass the port name and any hints yourself. It does not keep a port open
after detection; open it with the returned parameters in your own code.