from bluelily.config import Actuator, ActuatorType, default_actuators


def test_default_actuators_match_board_table():
    actuators = default_actuators()
    assert [(a.id, a.pin, a.kind) for a in actuators] == [
        (0, 21, ActuatorType.RELAY),
        (1, 29, ActuatorType.PWM),
    ]


def test_default_actuators_start_off():
    for actuator in default_actuators():
        assert actuator.state is False
        assert actuator.pwm_value == 0


def test_default_actuators_are_independent_copies():
    first = default_actuators()
    first[0].state = True
    first[1].pwm_value = 200
    second = default_actuators()
    assert second[0].state is False
    assert second[1].pwm_value == 0


def test_default_actuator_ids_are_unique():
    ids = [a.id for a in default_actuators()]
    assert len(ids) == len(set(ids))


def test_actuator_defaults():
    actuator = Actuator(id=5, pin=3, kind=ActuatorType.PWM)
    assert (actuator.state, actuator.pwm_value) == (False, 0)