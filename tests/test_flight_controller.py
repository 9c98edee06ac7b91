from bluelily.actuation import Actuation
from bluelily.communication import ChyappyLink
from bluelily.config import CommMethod
from bluelily.flight_controller import FlightController, FlightState
from bluelily.hid import Hid
from bluelily.logger import FlightLogger
from bluelily.protocol import decode_frame
from bluelily.sensors import SensorSuite


class Wire:
    def __init__(self):
        self.sent = []

    def write(self, data):
        self.sent.append(bytes(data))

    def read(self):
        return b""


def make(tmp_path=None, az=None, telemetry=None):
    accel = az if az is not None else [0.0]
    sensors = SensorSuite(imu=lambda: (0.0, 0.0, accel[0], 0.0, 0.0, 0.0))
    logger = FlightLogger(sd_path=tmp_path / "log.csv") if tmp_path is not None else None
    fc = FlightController(
        sensors=sensors, actuation=Actuation(schedule=[]), logger=logger, telemetry=telemetry
    )
    return fc, accel


def test_idle_log_line():
    fc, _ = make()
    assert fc.step(100, 1000) == "1000,-1.00,0.00,0.00,0.00,0"


def test_arms_after_delay():
    fc, _ = make()
    fc.step(5000, 0)
    assert fc.state is FlightState.IDLE
    fc.step(5001, 0)
    assert fc.state is FlightState.ARMED


def test_liftoff_records_start_time():
    fc, accel = make()
    fc.state = FlightState.ARMED
    accel[0] = 30.0
    line = fc.step(6000, 7_000_000)
    assert fc.state is FlightState.ASCENT
    assert fc.start_time_us == 7_000_000
    assert line.startswith("0,")
    assert line.endswith(",2")


def test_no_liftoff_below_threshold():
    fc, accel = make()
    fc.state = FlightState.ARMED
    accel[0] = 20.0
    fc.step(6000, 0)
    assert fc.state is FlightState.ARMED


def test_max_altitude_tracks_peak():
    fc, accel = make()
    accel[0] = 15.0
    for i in range(10):
        fc.step(i * 50, i * 50_000)
    assert fc.max_altitude == fc.altitude
    accel[0] = -100.0
    for i in range(10, 20):
        fc.step(i * 50, i * 50_000)
    assert fc.max_altitude > fc.altitude


def test_apogee_descent_and_landing(tmp_path):
    fc, accel = make(tmp_path)
    fc.state = FlightState.ASCENT
    fc.altitude = 100.0
    fc.velocity = 0.5
    accel[0] = -20.0
    fc.step(10_000, 10_000_000)
    assert fc.state is FlightState.APOGEE
    assert fc.actuation.actuators[0].state is True

    fc.step(10_050, 10_050_000)
    assert fc.state is FlightState.DESCENT

    fc.altitude = 5.0
    fc.velocity = 0.0
    accel[0] = 0.0
    fc.step(10_100, 10_100_000)
    assert fc.state is FlightState.LANDED

    fc.step(10_150, 10_150_000)
    assert fc.actuation.actuators[0].state is False
    data = (tmp_path / "log.csv").read_bytes()
    half = len(data) // 2
    assert data[:half] == data[half:]
    assert fc.landing_preview is not None
    assert fc.landing_preview[0] == data

    fc.step(10_200, 10_200_000)
    assert (tmp_path / "log.csv").read_bytes() == data


def test_run_respects_loop_interval():
    fc, _ = make()
    assert fc.run(10, 10_000) is None
    assert fc.run(50, 50_000) is not None
    assert fc.run(60, 60_000) is None
    assert fc.run(100, 100_000) is not None


def test_telemetry_frames():
    wire = Wire()
    fc, _ = make(telemetry=ChyappyLink(wire, CommMethod.LORA))
    fc.step(0, 0)
    fc.step(50, 50_000)
    first = decode_frame(wire.sent[0])
    second = decode_frame(wire.sent[1])
    assert first.sensor_type == ord("F")
    assert first.sensor_id == 1
    assert first.value == "0.00,0.00,0.00,0"
    assert (first.seq_num, second.seq_num) == (0, 1)


def test_sequence_counts_without_link():
    fc, _ = make()
    fc.step(0, 0)
    fc.step(50, 50_000)
    assert fc.telemetry_seq == 2


def test_step_drives_hid():
    hid = Hid()
    fc = FlightController(
        actuation=Actuation(schedule=[]), hid=hid, hid_inputs=lambda: (0, True, False)
    )
    fc.step(0, 0)
    assert hid.level == 1


def test_scheduler_runs_on_elapsed_time():
    fc = FlightController()
    fc.step(0, 5_000_000)
    assert fc.actuation.actuators[0].state is True