"""Line-oriented telemetry for a ROS2 host over a serial text stream.

Every message is ``TYPE,timestamp_ms,sequence,data...`` ended by CR LF.
"""

from __future__ import annotations

import enum
import time
from typing import Callable, Iterable, Optional, Sequence, TextIO

from .config import ROS2_PUBLISH_RATE_MS

FIRMWARE_VERSION = "1.0.0"
HEARTBEAT_INTERVAL_MS = 1000
COMMAND_PREFIX = "CMD,"
ADC_CHANNELS = 4


class Ros2MessageType(enum.IntEnum):
    IMU = 0
    TEMP = 1
    ADC = 2
    STATE = 3
    HEARTBEAT = 4


def _monotonic_ms() -> Callable[[], int]:
    start = time.monotonic()
    return lambda: int((time.monotonic() - start) * 1000)


class Ros2Bridge:
    """Publishes sensor data and acknowledges commands on a text stream."""

    def __init__(
        self,
        output: TextIO,
        input_stream: Optional[TextIO] = None,
        clock_ms: Optional[Callable[[], int]] = None,
        imu_source: Optional[Callable[[], Iterable[float]]] = None,
        publish_rate_ms: int = ROS2_PUBLISH_RATE_MS,
    ) -> None:
        self.output = output
        self.input_stream = input_stream
        self.clock_ms = clock_ms if clock_ms is not None else _monotonic_ms()
        self.imu_source = imu_source
        self.publish_rate_ms = publish_rate_ms
        self.sequence = 0
        self._last_imu = 0
        self._last_heartbeat = 0

    def _emit(self, line: str) -> str:
        self.output.write(line + "\r\n")
        return line

    def _header(self, kind: Ros2MessageType) -> str:
        stamp = self.clock_ms()
        seq = self.sequence
        self.sequence += 1
        return f"{kind.name},{stamp},{seq}"

    def start(self) -> None:
        """Write the banner that announces the bridge and its message format."""
        for line in (
            "# BlueLily ROS2 Bridge Initialized",
            f"# Firmware Version: {FIRMWARE_VERSION}",
            f"# IMU Rate: {1000 // self.publish_rate_ms} Hz",
            "# Message Format: TYPE,timestamp,seq,data...",
            "# Ready",
        ):
            self._emit(line)

    def publish_imu(
        self,
        accel_x: float,
        accel_y: float,
        accel_z: float,
        gyro_x: float,
        gyro_y: float,
        gyro_z: float,
    ) -> str:
        values = (accel_x, accel_y, accel_z, gyro_x, gyro_y, gyro_z)
        fields = ",".join(f"{v:.6f}" for v in values)
        return self._emit(f"{self._header(Ros2MessageType.IMU)},{fields}")

    def publish_temperature(self, temperature: float) -> str:
        return self._emit(f"{self._header(Ros2MessageType.TEMP)},{temperature:.2f}")

    def publish_adc(self, voltages: Sequence[float]) -> str:
        if len(voltages) != ADC_CHANNELS:
            raise ValueError(f"expected {ADC_CHANNELS} voltages, got {len(voltages)}")
        fields = ",".join(f"{v:.4f}" for v in voltages)
        return self._emit(f"{self._header(Ros2MessageType.ADC)},{fields}")

    def publish_state(self, state_name: str) -> str:
        return self._emit(f"{self._header(Ros2MessageType.STATE)},{state_name}")

    def publish_heartbeat(self) -> str:
        return self._emit(self._header(Ros2MessageType.HEARTBEAT))

    def receive_commands(self) -> Optional[str]:
        """Read one line; acknowledge and return it if it is a ``CMD,`` command."""
        if self.input_stream is None:
            return None
        line = self.input_stream.readline()
        if not line:
            return None
        command = line.strip()
        if not command.startswith(COMMAND_PREFIX):
            return None
        command = command[len(COMMAND_PREFIX):]
        self._emit(f"ACK,{self.clock_ms()},{command}")
        return command

    def update(self) -> Optional[str]:
        """Publish what is due, then check for a command and return it."""
        now = self.clock_ms()
        if now - self._last_imu >= self.publish_rate_ms:
            if self.imu_source is not None:
                self.publish_imu(*self.imu_source())
            self._last_imu = now
        if now - self._last_heartbeat >= HEARTBEAT_INTERVAL_MS:
            self.publish_heartbeat()
            self._last_heartbeat = now
        return self.receive_commands()