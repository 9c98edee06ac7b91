import io

import pytest

from bluelily.ros2bridge import Ros2Bridge
from bluelily.sensors import ImuReading


def lines_of(output):
    text = output.getvalue()
    assert text.endswith("\r\n")
    return text[:-2].split("\r\n")


def test_start_writes_banner():
    output = io.StringIO()
    Ros2Bridge(output, clock_ms=lambda: 0).start()
    lines = lines_of(output)
    assert lines[0] == "# BlueLily ROS2 Bridge Initialized"
    assert "# IMU Rate: 100 Hz" in lines
    assert lines[-1] == "# Ready"


def test_publish_imu_fields():
    output = io.StringIO()
    bridge = Ros2Bridge(output, clock_ms=lambda: 42)
    values = (1.0, -2.5, 9.81, 0.1, 0.2, 0.3)
    line = bridge.publish_imu(*values)
    fields = line.split(",")
    assert fields[:3] == ["IMU", "42", "0"]
    assert [float(f) for f in fields[3:]] == pytest.approx(list(values))
    assert all(len(f.split(".")[1]) == 6 for f in fields[3:])
    assert output.getvalue() == line + "\r\n"


def test_sequence_counts_every_message():
    output = io.StringIO()
    bridge = Ros2Bridge(output, clock_ms=lambda: 5)
    bridge.publish_temperature(21.5)
    bridge.publish_state("ARMED")
    bridge.publish_heartbeat()
    bridge.publish_adc([0.1, 0.2, 0.3, 0.4])
    lines = lines_of(output)
    assert [line.split(",")[2] for line in lines] == ["0", "1", "2", "3"]
    assert [line.split(",")[0] for line in lines] == ["TEMP", "STATE", "HEARTBEAT", "ADC"]
    assert lines[1].split(",")[3] == "ARMED"


def test_temperature_and_adc_precision():
    bridge = Ros2Bridge(io.StringIO(), clock_ms=lambda: 0)
    temp = bridge.publish_temperature(21.5).split(",")[3]
    assert float(temp) == 21.5
    assert len(temp.split(".")[1]) == 2
    adc = bridge.publish_adc([1.25, 0.5, 0.0, 3.0]).split(",")[3:]
    assert [float(v) for v in adc] == [1.25, 0.5, 0.0, 3.0]
    assert all(len(v.split(".")[1]) == 4 for v in adc)


def test_publish_adc_needs_four_channels():
    with pytest.raises(ValueError):
        Ros2Bridge(io.StringIO(), clock_ms=lambda: 0).publish_adc([1.0, 2.0])


def test_command_is_acknowledged():
    output = io.StringIO()
    bridge = Ros2Bridge(output, io.StringIO("  CMD,SET,LED=1 \n"), clock_ms=lambda: 7)
    assert bridge.receive_commands() == "SET,LED=1"
    assert output.getvalue() == "ACK,7,SET,LED=1\r\n"
    assert bridge.receive_commands() is None


def test_non_command_is_ignored():
    output = io.StringIO()
    bridge = Ros2Bridge(output, io.StringIO("hello\n"), clock_ms=lambda: 7)
    assert bridge.receive_commands() is None
    assert output.getvalue() == ""


def test_update_publishes_on_schedule():
    now = [5]
    output = io.StringIO()
    reading = ImuReading(0.0, 0.0, 9.8, 0.0, 0.0, 0.0)
    bridge = Ros2Bridge(output, clock_ms=lambda: now[0], imu_source=lambda: reading)
    bridge.update()
    assert output.getvalue() == ""
    now[0] = 10
    bridge.update()
    assert [line.split(",")[0] for line in lines_of(output)] == ["IMU"]
    now[0] = 1000
    bridge.update()
    assert [line.split(",")[0] for line in lines_of(output)] == ["IMU", "IMU", "HEARTBEAT"]
    assert float(lines_of(output)[0].split(",")[5]) == pytest.approx(9.8)