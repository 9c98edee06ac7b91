import math

import pytest

from bluelily.sensors import ImuReading, SensorSuite, adc_to_voltage


def test_adc_to_voltage_scale():
    assert adc_to_voltage(0) == 0
    assert adc_to_voltage(8000) == pytest.approx(1.0)
    assert adc_to_voltage(-400) == pytest.approx(-adc_to_voltage(400))


def test_temperature_passes_through():
    suite = SensorSuite(thermocouple=lambda: 23.75)
    assert suite.read_temperature() == 23.75


def test_temperature_fault_reads_error_value():
    suite = SensorSuite(thermocouple=lambda: math.nan)
    assert suite.read_temperature() == -1.0


def test_missing_sensors_read_defaults():
    suite = SensorSuite()
    assert suite.read_temperature() == -1.0
    assert suite.read_imu() == ImuReading(0, 0, 0, 0, 0, 0)
    assert suite.read_adc(0) == 0
    assert suite.read_adc_voltage(2) == 0.0


def test_imu_reading_round_trip():
    values = (1.0, 2.0, -9.8, 0.1, 0.2, 0.3)
    reading = SensorSuite(imu=lambda: values).read_imu()
    assert reading.accel_z == -9.8
    assert tuple(reading) == values


def test_adc_channel_out_of_range_is_zero():
    seen = []

    def adc(channel):
        seen.append(channel)
        return 1234

    suite = SensorSuite(adc=adc)
    assert suite.read_adc(4) == 0
    assert suite.read_adc(3) == 1234
    assert seen == [3]


def test_adc_voltage_uses_raw_reading():
    suite = SensorSuite(adc=lambda channel: 1000 * (channel + 1))
    assert suite.read_adc_voltage(1) == pytest.approx(adc_to_voltage(2000))