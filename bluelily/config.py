"""Board configuration: protocol constants, actuator table and link identifiers."""

from __future__ import annotations

import enum
from dataclasses import dataclass

# chYAPpy v1.2 framing
CHYAPPY_V1_2_START = 0x7D
SENSOR_TYPE_CONFIG = ord("C")
SENSOR_TYPE_ACK = ord("A")

# Configurator limits (sizes include the C string terminator)
CONFIG_BUFFER_SIZE = 64
MAX_SETTINGS = 10
KEY_MAX_LEN = 16
VALUE_MAX_LEN = 32

# Link settings
SERIAL_BAUD = 115200
RS485_BAUD = 115200
BLUETOOTH_BAUD = 9600
LORA_FREQ = 433_000_000

# Logger settings
SD_LOG_FILE_SIZE = 150_000_000
RING_BUF_CAPACITY = 400 * 512
W25Q128_CAPACITY = 16_777_216

# Actuation
MAX_SCHEDULE_EVENTS = 10

# Timing
LOOP_INTERVAL_MS = 50
ROS2_PUBLISH_RATE_MS = 10


class ActuatorType(enum.IntEnum):
    """How an actuator is driven."""

    RELAY = 0
    PWM = 1


class PayloadType(enum.IntEnum):
    """Payload encodings carried in a chYAPpy frame."""

    STRING = 0x01
    FLOAT = 0x02
    INT16 = 0x03
    INT32 = 0x04


class CommMethod(enum.IntEnum):
    """Links over which configuration commands arrive and responses leave."""

    RS485 = 0
    CANBUS = 1
    BLUETOOTH = 2
    LORA = 3


@dataclass
class Actuator:
    """One output channel and its current drive level."""

    id: int
    pin: int
    kind: ActuatorType
    state: bool = False
    pwm_value: int = 0


def default_actuators() -> list[Actuator]:
    """Return a fresh copy of the board's actuator table."""
    return [
        Actuator(id=0, pin=21, kind=ActuatorType.RELAY),
        Actuator(id=1, pin=29, kind=ActuatorType.PWM),
    ]