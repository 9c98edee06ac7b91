"""Flight state machine: integrates acceleration, detects phases, logs and reports."""

from __future__ import annotations

import enum
import logging
from typing import Callable, Optional, Protocol, Union

from .actuation import Actuation
from .config import LOOP_INTERVAL_MS
from .hid import Hid
from .logger import FlightLogger, LoggerFullError
from .sensors import SensorSuite

log = logging.getLogger(__name__)

LIFTOFF_ACCEL_THRESHOLD = 20.0
APOGEE_VELOCITY_THRESHOLD = 0.0
APOGEE_MIN_ALTITUDE = 50.0
LANDING_ALTITUDE_THRESHOLD = 10.0
LANDING_MAX_VELOCITY = 5.0
ARM_DELAY_MS = 5000
RECOVERY_ACTUATOR = 0
TELEMETRY_SENSOR_TYPE = "F"
TELEMETRY_SENSOR_ID = 1


class FlightState(enum.IntEnum):
    IDLE = 0
    ARMED = 1
    ASCENT = 2
    APOGEE = 3
    DESCENT = 4
    LANDED = 5


class TelemetryLink(Protocol):
    def send(self, sensor_type: Union[int, str], sensor_id: int, seq_num: int, data: str) -> object: ...


class FlightController:
    """Runs one control loop per step: sense, update state, log, report, actuate."""

    def __init__(
        self,
        sensors: Optional[SensorSuite] = None,
        actuation: Optional[Actuation] = None,
        logger: Optional[FlightLogger] = None,
        telemetry: Optional[TelemetryLink] = None,
        hid: Optional[Hid] = None,
        hid_inputs: Optional[Callable[[], tuple[int, bool, bool]]] = None,
    ) -> None:
        self.sensors = sensors if sensors is not None else SensorSuite()
        self.actuation = actuation if actuation is not None else Actuation()
        self.logger = logger
        self.telemetry = telemetry
        self.hid = hid
        self.hid_inputs = hid_inputs
        self.state = FlightState.IDLE
        self.start_time_us = 0
        self.max_altitude = 0.0
        self.velocity = 0.0
        self.altitude = 0.0
        self.telemetry_seq = 0
        self.landing_preview: Optional[tuple[Optional[bytes], Optional[bytes]]] = None
        self._last_update_ms = 0
        self._shut_down = False
        log.info("Flight controller initialized")

    def run(self, now_ms: int, now_us: int) -> Optional[str]:
        """Step if a loop interval has passed since the last step; return its log line."""
        if now_ms - self._last_update_ms < LOOP_INTERVAL_MS:
            return None
        self._last_update_ms = now_ms
        return self.step(now_ms, now_us)

    def _advance_state(self, now_ms: int, now_us: int, accel_z: float) -> None:
        state = self.state
        if state is FlightState.IDLE:
            if now_ms > ARM_DELAY_MS:
                self.state = FlightState.ARMED
        elif state is FlightState.ARMED:
            if accel_z > LIFTOFF_ACCEL_THRESHOLD:
                self.state = FlightState.ASCENT
                self.start_time_us = now_us
        elif state is FlightState.ASCENT:
            if self.velocity <= APOGEE_VELOCITY_THRESHOLD and self.altitude > APOGEE_MIN_ALTITUDE:
                self.state = FlightState.APOGEE
                self.actuation.set(RECOVERY_ACTUATOR, True)
        elif state is FlightState.APOGEE:
            if self.velocity < 0:
                self.state = FlightState.DESCENT
        elif state is FlightState.DESCENT:
            if self.altitude < LANDING_ALTITUDE_THRESHOLD and self.velocity < LANDING_MAX_VELOCITY:
                self.state = FlightState.LANDED
        else:
            self.actuation.set(RECOVERY_ACTUATOR, False)
            self._finish_logging()
        if self.state is not state:
            log.info("State: %s", self.state.name)

    def _finish_logging(self) -> None:
        if self._shut_down or self.logger is None:
            return
        self._shut_down = True
        self.logger.flush()
        try:
            self.logger.sync_flash_to_sd()
        except RuntimeError as exc:
            log.warning("Flash sync failed: %s", exc)
        self.logger.close()
        self.landing_preview = self.logger.preview()

    def step(self, now_ms: int, now_us: int) -> str:
        """Run one loop iteration and return the line it logged."""
        temp = self.sensors.read_temperature()
        accel_z = self.sensors.read_imu().accel_z

        dt = LOOP_INTERVAL_MS / 1000.0
        self.velocity += accel_z * dt
        self.altitude += self.velocity * dt
        self.max_altitude = max(self.max_altitude, self.altitude)

        self._advance_state(now_ms, now_us, accel_z)

        elapsed_us = now_us - self.start_time_us
        line = (
            f"{elapsed_us},{temp:.2f},{accel_z:.2f},{self.velocity:.2f},"
            f"{self.altitude:.2f},{int(self.state)}"
        )
        if self.logger is not None:
            try:
                self.logger.log(line)
            except LoggerFullError as exc:
                log.warning("%s", exc)

        telemetry = f"{accel_z:.2f},{self.velocity:.2f},{self.altitude:.2f},{int(self.state)}"
        if self.telemetry is not None:
            self.telemetry.send(TELEMETRY_SENSOR_TYPE, TELEMETRY_SENSOR_ID, self.telemetry_seq, telemetry)
        self.telemetry_seq = (self.telemetry_seq + 1) & 0xFFFF

        self.actuation.run_scheduler(elapsed_us, accel_z, temp)

        if self.hid is not None:
            if self.hid_inputs is not None:
                pot, select, back = self.hid_inputs()
            else:
                pot, select, back = self.hid.last_pot, False, False
            self.hid.update(now_ms, pot, select, back)
        return line