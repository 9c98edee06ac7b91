"""In-memory KEY=VALUE settings store driven by configuration frames."""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional, Union

from .config import (
    KEY_MAX_LEN,
    MAX_SETTINGS,
    SENSOR_TYPE_CONFIG,
    VALUE_MAX_LEN,
    PayloadType,
)

log = logging.getLogger(__name__)

ACK = "ACK"
NACK_SETTINGS_FULL = "NACK - Settings full"
NACK_INVALID_FORMAT = "NACK - Invalid format"

Responder = Callable[[int, int, int, str], None]

_SETTING_RE = re.compile(
    r"([^=]{1,%d})=\s*(\S{1,%d})" % (KEY_MAX_LEN - 1, VALUE_MAX_LEN - 1)
)


class ConfigFormatError(ValueError):
    """A payload is not of the form KEY=VALUE."""


def parse_setting(payload: Union[str, bytes]) -> tuple[str, str]:
    """Split ``KEY=VALUE`` into its parts.

    The key is up to 15 characters other than '='; the value is the first
    whitespace-delimited word after '=', cut to 31 characters.
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = bytes(payload).decode("utf-8", errors="replace")
    payload = payload.split("\0", 1)[0]
    match = _SETTING_RE.match(payload)
    if match is None:
        raise ConfigFormatError(f"invalid setting: {payload!r}")
    return match.group(1), match.group(2)


def _code(value: Union[int, str]) -> int:
    return ord(value) if isinstance(value, str) and len(value) == 1 else int(value)


class Configurator:
    """Stores settings received as configuration commands and answers them."""

    def __init__(
        self, responder: Optional[Responder] = None, max_settings: int = MAX_SETTINGS
    ) -> None:
        self.responder = responder
        self.max_settings = max_settings
        self._settings: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._settings)

    def __contains__(self, key: object) -> bool:
        return key in self._settings

    def handle_command(
        self,
        method: int,
        sensor_type: Union[int, str],
        sensor_id: int,
        seq_num: int,
        payload_type: int,
        payload: Union[str, bytes],
    ) -> Optional[str]:
        """Apply a command and return the response sent, or None if it was not a config command."""
        if _code(sensor_type) != SENSOR_TYPE_CONFIG or payload_type != PayloadType.STRING:
            log.info("Non-config message received")
            return None
        try:
            key, value = parse_setting(payload)
        except ConfigFormatError:
            log.warning("Invalid config format")
            response = NACK_INVALID_FORMAT
        else:
            if key in self._settings or len(self._settings) < self.max_settings:
                verb = "Updated" if key in self._settings else "Added"
                self._settings[key] = value
                log.info("%s setting: %s=%s", verb, key, value)
                response = ACK
            else:
                log.warning("Settings full")
                response = NACK_SETTINGS_FULL
        if self.responder is not None:
            self.responder(method, sensor_id, seq_num, response)
        return response

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or None."""
        return self._settings.get(key)

    def items(self) -> list[tuple[str, str]]:
        """All settings in the order they were first added."""
        return list(self._settings.items())

    def reset(self) -> None:
        """Forget every setting."""
        self._settings.clear()