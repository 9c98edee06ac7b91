"""Relay and PWM outputs with a time- and condition-driven event schedule."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, Sequence

from .config import MAX_SCHEDULE_EVENTS, Actuator, ActuatorType, default_actuators

log = logging.getLogger(__name__)

PWM_TOGGLE_LEVEL = 128


class ConditionType(enum.IntEnum):
    """What decides when a scheduled event fires."""

    NONE = 0
    ACCEL_Z = 1
    TEMP = 2


@dataclass
class ScheduleEvent:
    """A pending change to one actuator.

    Events with no condition fire once ``time_micros`` has passed; events with
    a condition fire when the reading crosses ``condition_value`` (above it if
    ``condition_greater``, below it otherwise).
    """

    time_micros: int
    actuator_id: int
    state: bool
    pwm_value: int = 0
    condition_type: ConditionType = ConditionType.NONE
    condition_value: float = 0.0
    condition_greater: bool = False
    triggered: bool = False

    def is_due(self, current_time_micros: int, accel_z: float, temp: float) -> bool:
        if self.condition_type is ConditionType.NONE:
            return current_time_micros >= self.time_micros
        reading = accel_z if self.condition_type is ConditionType.ACCEL_Z else temp
        if self.condition_greater:
            return reading > self.condition_value
        return reading < self.condition_value


def default_schedule() -> list[ScheduleEvent]:
    """The board's built-in schedule."""
    return [
        ScheduleEvent(5_000_000, 0, True),
        ScheduleEvent(10_000_000, 0, False),
        ScheduleEvent(15_000_000, 1, True, 128, ConditionType.ACCEL_Z, -10.0, False),
        ScheduleEvent(20_000_000, 1, True, 255, ConditionType.TEMP, 50.0, True),
    ]


class UnknownActuatorError(LookupError):
    """No actuator has the requested id."""


class PinDriver(Protocol):
    def digital_write(self, pin: int, value: bool) -> None: ...

    def analog_write(self, pin: int, value: int) -> None: ...


@dataclass
class MemoryPinDriver:
    """Pin driver that remembers the last level written to each pin."""

    digital: dict[int, bool] = field(default_factory=dict)
    analog: dict[int, int] = field(default_factory=dict)

    def digital_write(self, pin: int, value: bool) -> None:
        self.digital[pin] = bool(value)

    def analog_write(self, pin: int, value: int) -> None:
        self.analog[pin] = int(value)


class Actuation:
    """Drives the actuators and runs the event schedule."""

    def __init__(
        self,
        actuators: Optional[Iterable[Actuator]] = None,
        driver: Optional[PinDriver] = None,
        schedule: Optional[Iterable[ScheduleEvent]] = None,
    ) -> None:
        self.actuators = default_actuators() if actuators is None else list(actuators)
        self.driver = MemoryPinDriver() if driver is None else driver
        self.schedule = default_schedule() if schedule is None else list(schedule)
        for actuator in self.actuators:
            if actuator.kind is ActuatorType.RELAY:
                self.driver.digital_write(actuator.pin, False)
                actuator.state = False
            else:
                self.driver.analog_write(actuator.pin, 0)
                actuator.pwm_value = 0
        log.info("Actuation initialized")

    def _find(self, actuator_id: int) -> Optional[Actuator]:
        return next((a for a in self.actuators if a.id == actuator_id), None)

    def toggle(self, actuator_id: int) -> Actuator:
        """Flip a relay, or switch a PWM output between off and half duty."""
        actuator = self._find(actuator_id)
        if actuator is None:
            raise UnknownActuatorError(f"invalid actuator id {actuator_id}")
        if actuator.kind is ActuatorType.RELAY:
            actuator.state = not actuator.state
            self.driver.digital_write(actuator.pin, actuator.state)
            log.info("Relay %d toggled to %s", actuator_id, "HIGH" if actuator.state else "LOW")
        else:
            actuator.pwm_value = PWM_TOGGLE_LEVEL if actuator.pwm_value == 0 else 0
            self.driver.analog_write(actuator.pin, actuator.pwm_value)
            log.info("PWM %d toggled to %d", actuator_id, actuator.pwm_value)
        return actuator

    def set(self, actuator_id: int, state: bool, pwm_value: int = 0) -> None:
        """Drive an actuator; unknown ids are ignored."""
        if not 0 <= pwm_value <= 0xFF:
            raise ValueError(f"pwm value out of range: {pwm_value}")
        actuator = self._find(actuator_id)
        if actuator is None:
            log.debug("Ignoring unknown actuator %d", actuator_id)
            return
        if actuator.kind is ActuatorType.RELAY:
            actuator.state = bool(state)
            self.driver.digital_write(actuator.pin, actuator.state)
        else:
            actuator.state = pwm_value > 0
            actuator.pwm_value = pwm_value
            self.driver.analog_write(actuator.pin, pwm_value)

    def run_scheduler(
        self, current_time_micros: int, accel_z: float, temp: float
    ) -> list[ScheduleEvent]:
        """Fire every pending event that is due; return those fired, in order."""
        fired = []
        for event in self.schedule:
            if event.triggered or not event.is_due(current_time_micros, accel_z, temp):
                continue
            self.set(event.actuator_id, event.state, event.pwm_value)
            event.triggered = True
            fired.append(event)
            actuator = self._find(event.actuator_id)
            if actuator is not None and actuator.kind is ActuatorType.RELAY:
                log.info(
                    "Scheduled event triggered: Actuator %d set to %s",
                    event.actuator_id,
                    "ON" if event.state else "OFF",
                )
            else:
                log.info(
                    "Scheduled event triggered: Actuator %d PWM set to %d",
                    event.actuator_id,
                    event.pwm_value,
                )
        return fired

    def load_schedule(
        self,
        times: Sequence[int],
        actuator_ids: Sequence[int],
        states: Sequence[bool],
    ) -> None:
        """Replace the schedule with purely time-based events."""
        if not len(times) == len(actuator_ids) == len(states):
            raise ValueError("times, actuator_ids and states must have equal length")
        if len(times) > MAX_SCHEDULE_EVENTS:
            log.warning("Schedule exceeds max events")
        self.schedule = [
            ScheduleEvent(time, actuator_id, bool(state))
            for time, actuator_id, state in zip(times, actuator_ids, states)
        ][:MAX_SCHEDULE_EVENTS]
        log.info("Schedule loaded")