"""Thermocouple, IMU and ADC readings with the board's fallbacks."""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

log = logging.getLogger(__name__)

TEMPERATURE_ERROR = -1.0
ADC_CHANNELS = 4
ADC_MILLIVOLTS_PER_COUNT = 0.125  # gain one, +/-4.096 V range


@dataclass(frozen=True)
class ImuReading:
    """Acceleration (m/s^2) and angular rate on three axes."""

    accel_x: float = 0.0
    accel_y: float = 0.0
    accel_z: float = 0.0
    gyro_x: float = 0.0
    gyro_y: float = 0.0
    gyro_z: float = 0.0

    def __iter__(self) -> Iterator[float]:
        return iter(dataclasses.astuple(self))


def adc_to_voltage(raw: int) -> float:
    """Convert a raw ADS1115 count to volts."""
    return raw * ADC_MILLIVOLTS_PER_COUNT / 1000


class SensorSuite:
    """Reads the attached sensors; a sensor left out reads as its default.

    ``thermocouple`` returns degrees Celsius (NaN on fault), ``imu`` returns
    six values in ImuReading order, ``adc`` returns the raw count of a channel.
    """

    def __init__(
        self,
        thermocouple: Optional[Callable[[], float]] = None,
        imu: Optional[Callable[[], Iterable[float]]] = None,
        adc: Optional[Callable[[int], int]] = None,
    ) -> None:
        self.thermocouple = thermocouple
        self.imu = imu
        self.adc = adc

    def read_temperature(self) -> float:
        """Temperature in Celsius, or -1.0 when absent or faulty."""
        if self.thermocouple is None:
            return TEMPERATURE_ERROR
        value = float(self.thermocouple())
        if math.isnan(value):
            log.error("Error reading thermocouple")
            return TEMPERATURE_ERROR
        return value

    def read_imu(self) -> ImuReading:
        if self.imu is None:
            return ImuReading()
        return ImuReading(*(float(v) for v in self.imu()))

    def read_adc(self, channel: int) -> int:
        """Raw count of a single-ended channel; 0 for a channel that does not exist."""
        if self.adc is None or not 0 <= channel < ADC_CHANNELS:
            return 0
        return int(self.adc(channel))

    def read_adc_voltage(self, channel: int) -> float:
        return adc_to_voltage(self.read_adc(channel))