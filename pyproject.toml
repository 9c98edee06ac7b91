[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bluelily"
version = "0.1.0"
description = "Flight computer logic: chYAPpy v1.2 framing, configuration, actuation scheduling, logging, a front-panel menu and a ROS2 serial text format"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "flight computer",
    "rocketry",
    "telemetry",
    "crc8",
    "ros2",
    "serial protocol",
    "actuator scheduling",
    "state machine",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bluelily"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
