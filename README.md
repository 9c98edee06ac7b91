# bluelily

This package holds the logic of a small flight computer. None of it needs the
board. You can drive it from tests, from simulations, or from a host program
that connects real hardware through objects you pass in. It depends only on
the standard library.

## Modules

- `bluelily.config`: protocol constants, `ActuatorType`, `PayloadType`,
  `CommMethod`, the `Actuator` dataclass and `default_actuators()`.
- `bluelily.protocol`: chYAPpy v1.2 frames. Each frame is the start byte
  `0x7D`, a length, the sensor type, the sensor id, a 16-bit sequence number,
  the payload type, the payload and a CRC-8 (polynomial `0x31`). The module
  provides `crc8`, `encode_payload`, `decode_payload`, `encode_frame`,
  `decode_frame`, the `Frame` dataclass and a streaming `FrameDecoder`.
  `decode_frame` raises `FrameError` for a malformed frame and `CrcError`, a
  subclass of `FrameError`, for a bad checksum.
- `bluelily.configurator`: `parse_setting` splits `KEY=VALUE`; it allows keys
  of up to 15 characters and values of up to 31 characters, and raises
  `ConfigFormatError` on bad input. `Configurator` stores up to ten settings.
  Its `handle_command` returns `"ACK"`, `"NACK - Settings full"` or
  `"NACK - Invalid format"`, and passes the same response to an optional
  responder callable.
- `bluelily.communication`: the link classes.
  - `ChyappyLink` sends framed data over a byte transport. It has a stream mode
    for RS485 and a packet mode for LoRa, and it can take a transmit-enable
    callback.
  - `LineLink` carries one command per CR- or LF-terminated line
    (Bluetooth-style).
  - `CanLink` sends and receives up to 8 bytes of raw command text per message.
  - `CommunicationHub` polls the links you register and sends a response back
    over the link for a given method.
- `bluelily.actuation`: `Actuation` drives relays and PWM outputs through a pin
  driver (`MemoryPinDriver` by default). It runs a schedule of `ScheduleEvent`s
  that fire by time, by Z acceleration or by temperature. `default_schedule()`
  gives the built-in schedule. `toggle` raises `UnknownActuatorError` for an
  unknown id.
- `bluelily.sensors`: `SensorSuite` wraps thermocouple, IMU and ADC callables
  and applies fallbacks. A missing or faulty thermocouple reads `-1.0`, a
  missing IMU gives a zero `ImuReading`, and an invalid ADC channel reads `0`.
  `adc_to_voltage` converts a raw ADS1115 count to volts.
- `bluelily.logger`: `FlightLogger` writes lines to an SD log file through a
  ring buffer in 512-byte sectors, and to an in-memory flash area. Its methods:
  - `log` raises `LoggerFullError` when a destination is full.
  - `preview` returns the first 20 file lines and the first 256 flash bytes.
  - `sync_flash_to_sd` appends the flash contents to the file.

  `FlightLogger` also works as a context manager.
- `bluelily.ros2bridge`: `Ros2Bridge` writes CR LF-terminated lines of the form
  `TYPE,timestamp_ms,seq,data...` for `IMU`, `TEMP`, `ADC`, `STATE` and
  `HEARTBEAT` messages. It answers `CMD,...` input lines with `ACK,...`.
- `bluelily.hid`: `Hid` is the potentiometer-and-two-button menu state
  machine. It supports previews, a screensaver, and enable flags
  (`HardwareFlags`) that can be saved to and loaded from a `NAME=0|1` settings
  file. It also provides the helpers `map_range` and `status_icons`.
- `bluelily.flight_controller`: `FlightController` runs the IDLE → ARMED →
  ASCENT → APOGEE → DESCENT → LANDED state machine. On each step it integrates
  Z acceleration, logs a CSV line, sends telemetry, runs the actuation
  scheduler and updates the HID. On landing it turns the recovery relay off,
  syncs the logger, closes it and stores a preview.

## Install

```
pip install .
pip install ".[test]"   # to run the tests
```

## Examples

Framing:

```python
from bluelily.config import PayloadType
from bluelily.protocol import decode_frame, encode_frame

raw = encode_frame(ord("C"), 1, 42, PayloadType.STRING, b"RATE=100")
frame = decode_frame(raw)
assert frame.seq_num == 42 and frame.value == "RATE=100"
```

Configuration:

```python
from bluelily.config import CommMethod, PayloadType
from bluelily.configurator import Configurator, parse_setting

assert parse_setting("RATE=100") == ("RATE", "100")

store = Configurator()
store.handle_command(CommMethod.RS485, "C", 1, 7, PayloadType.STRING, "RATE=100")  # "ACK"
assert store.get("RATE") == "100"
```

Actuation:

```python
from bluelily.actuation import Actuation

act = Actuation()                              # default actuators and schedule
fired = act.run_scheduler(5_000_000, 0.0, 20.0)  # relay 0 switches on at 5 s
assert act.actuators[0].state is True
```

ROS2 text stream:

```python
import io
from bluelily.ros2bridge import Ros2Bridge

bridge = Ros2Bridge(io.StringIO(), clock_ms=lambda: 0)
assert bridge.publish_temperature(21.5) == "TEMP,0,0,21.50"
```

## What this package does not do

- It has no hardware drivers. You supply serial, CAN, pin, sensor and clock
  access as objects or callables.
- The flash area of `FlightLogger` exists only in memory.
- It installs no command-line program and no main loop. You call
  `FlightController.run` or `step` with your own clock values.
- `Ros2Bridge` acknowledges commands and returns them, but does not act on
  them.
- Schedules can be replaced only with `Actuation.load_schedule`; they are not
  read from files.

## Tests

```
pytest
```