import pytest

from bluelily.actuation import (
    Actuation,
    ConditionType,
    MemoryPinDriver,
    ScheduleEvent,
    UnknownActuatorError,
    default_schedule,
)


@pytest.fixture
def driver():
    return MemoryPinDriver()


@pytest.fixture
def actuation(driver):
    return Actuation(driver=driver)


def test_init_drives_outputs_low(actuation, driver):
    assert driver.digital == {21: False}
    assert driver.analog == {29: 0}


def test_memory_driver_records_levels():
    drv = MemoryPinDriver()
    drv.digital_write(3, 1)
    drv.analog_write(4, 77)
    assert drv.digital == {3: True}
    assert drv.analog == {4: 77}


def test_toggle_relay_twice(actuation, driver):
    assert actuation.toggle(0).state is True
    assert driver.digital[21] is True
    assert actuation.toggle(0).state is False
    assert driver.digital[21] is False


def test_toggle_pwm(actuation, driver):
    assert actuation.toggle(1).pwm_value == 128
    assert driver.analog[29] == 128
    assert actuation.toggle(1).pwm_value == 0
    assert driver.analog[29] == 0


def test_toggle_unknown_actuator(actuation):
    with pytest.raises(UnknownActuatorError):
        actuation.toggle(9)


def test_set_pwm_updates_state(actuation, driver):
    actuation.set(1, False, 200)
    assert actuation.actuators[1].state is True
    assert actuation.actuators[1].pwm_value == 200
    assert driver.analog[29] == 200
    actuation.set(1, True, 0)
    assert actuation.actuators[1].state is False


def test_set_relay(actuation, driver):
    actuation.set(0, True)
    assert driver.digital[21] is True


def test_set_unknown_actuator_is_ignored(actuation, driver):
    actuation.set(9, True, 10)
    assert driver.digital == {21: False}
    assert driver.analog == {29: 0}


def test_set_rejects_out_of_range_pwm(actuation):
    with pytest.raises(ValueError):
        actuation.set(1, True, 256)


def test_default_schedule_shape():
    schedule = default_schedule()
    assert [e.time_micros for e in schedule] == [5_000_000, 10_000_000, 15_000_000, 20_000_000]
    assert [e.condition_type for e in schedule] == [
        ConditionType.NONE,
        ConditionType.NONE,
        ConditionType.ACCEL_Z,
        ConditionType.TEMP,
    ]
    assert not any(e.triggered for e in schedule)


def test_nothing_fires_at_start(actuation):
    assert actuation.run_scheduler(0, 0.0, 20.0) == []


def test_time_events_fire_once(actuation, driver):
    fired = actuation.run_scheduler(5_000_000, 0.0, 20.0)
    assert [e.actuator_id for e in fired] == [0]
    assert driver.digital[21] is True
    assert actuation.run_scheduler(6_000_000, 0.0, 20.0) == []
    fired = actuation.run_scheduler(10_000_000, 0.0, 20.0)
    assert [e.state for e in fired] == [False]
    assert driver.digital[21] is False


def test_late_call_fires_events_in_order(actuation, driver):
    fired = actuation.run_scheduler(10_000_000, 0.0, 20.0)
    assert [e.time_micros for e in fired] == [5_000_000, 10_000_000]
    assert driver.digital[21] is False


def test_condition_events_ignore_time(actuation, driver):
    assert actuation.run_scheduler(30_000_000, 0.0, 20.0)[-1].time_micros == 10_000_000
    assert driver.analog[29] == 0
    fired = actuation.run_scheduler(30_000_000, -11.0, 20.0)
    assert [e.pwm_value for e in fired] == [128]
    assert driver.analog[29] == 128
    fired = actuation.run_scheduler(30_000_000, 0.0, 60.0)
    assert [e.pwm_value for e in fired] == [255]
    assert driver.analog[29] == 255


def test_condition_boundaries_are_strict():
    greater = ScheduleEvent(0, 1, True, 255, ConditionType.TEMP, 50.0, True)
    less = ScheduleEvent(0, 1, True, 128, ConditionType.ACCEL_Z, -10.0, False)
    assert greater.is_due(0, 0.0, 50.0) is False
    assert less.is_due(0, -10.0, 0.0) is False
    assert greater.is_due(0, 0.0, 50.5) is True
    assert less.is_due(0, -10.5, 0.0) is True


def test_load_schedule_replaces_events(actuation, driver):
    actuation.load_schedule([100, 200], [0, 0], [True, False])
    assert len(actuation.schedule) == 2
    assert all(e.condition_type is ConditionType.NONE for e in actuation.schedule)
    actuation.run_scheduler(150, -50.0, 99.0)
    assert driver.digital[21] is True
    assert driver.analog[29] == 0
    actuation.run_scheduler(250, 0.0, 0.0)
    assert driver.digital[21] is False


def test_load_schedule_truncates_to_max(actuation):
    count = 12
    actuation.load_schedule(list(range(count)), [0] * count, [True] * count)
    assert len(actuation.schedule) == 10
    assert actuation.schedule[-1].time_micros == 9


def test_load_schedule_rejects_mismatched_lengths(actuation):
    with pytest.raises(ValueError):
        actuation.load_schedule([1, 2], [0], [True, False])