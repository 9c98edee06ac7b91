"""Flight computer logic: chYAPpy framing, configuration, actuation, sensors, logging, HID menu and telemetry."""

__version__ = "0.1.0"