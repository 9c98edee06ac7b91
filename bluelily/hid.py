"""Menu-driven display front panel: potentiometer, two buttons, OLED and LEDs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .actuation import Actuation
from .sensors import SensorSuite

log = logging.getLogger(__name__)

SCREEN_WIDTH = 128
SCREEN_HEIGHT = 64
CHAR_WIDTH = 6
POT_MAX = 1023
ITEMS_PER_PAGE = 4
SCREENSAVER_TIMEOUT_MS = 30_000
DEADBAND_THRESHOLD = 50
SCROLL_DELAY_MS = 300
SCROLLBAR_HEIGHT = 20
SCROLLBAR_X = SCREEN_WIDTH - 5
ICON_SPACING = 10
TEXT_BUFFER_SIZE = 64
ROCKET_START_Y = SCREEN_HEIGHT - 10
ROCKET_X = SCREEN_WIDTH // 2 - 4

ICONS = {
    "bluetooth": bytes([0x18, 0x24, 0x44, 0x88, 0x44, 0x24, 0x18, 0x00]),
    "rs485": bytes([0x18, 0x3C, 0x7E, 0x66, 0x66, 0x7E, 0x3C, 0x18]),
    "canbus": bytes([0x3C, 0x42, 0x99, 0xBD, 0xBD, 0x99, 0x42, 0x3C]),
    "lora": bytes([0x08, 0x14, 0x22, 0x41, 0x41, 0x22, 0x14, 0x08]),
}
ROCKET_BITMAP = bytes([0x18, 0x3C, 0x7E, 0xFF, 0x7E, 0x3C, 0x18, 0x18])

MAIN_MENU = ("Sensors", "Communication", "Logger", "Actuation", "HID", "FlightController", "Config")
SUBMENUS = (
    ("MAX31855", "MPU6500", "ADS1115", "Back"),
    ("RS485", "CANBUS", "Bluetooth", "LoRa", "Back"),
    ("SD", "W25Q128", "Back"),
    ("Relay 0", "PWM 1", "Back"),
    ("Display", "Potentiometer", "Buttons", "Back"),
    ("State", "Back"),
    ("Timeouts", "Back"),
)
HARDWARE_SETTINGS = ("Enable/Disable", "Preview", "Back")

_SETTING_KEYS = (
    ("MAX31855", "max31855"),
    ("MPU6500", "mpu6500"),
    ("ADS1115", "ads1115"),
    ("RS485", "rs485"),
    ("CANBUS", "canbus"),
    ("Bluetooth", "bluetooth"),
    ("LoRa", "lora"),
    ("SD", "sd"),
    ("W25Q128", "w25q128"),
    ("Relay0", "relay0"),
    ("PWM1", "pwm1"),
)

_TOGGLES = {
    0: ("max31855", "mpu6500", "ads1115"),
    1: ("rs485", "canbus", "bluetooth", "lora"),
    2: ("sd", "w25q128"),
    3: ("relay0", "pwm1"),
}


def map_range(value: int, in_min: int, in_max: int, out_min: int, out_max: int) -> int:
    """Rescale an integer linearly, truncating toward zero."""
    den = in_max - in_min
    if den == 0:
        raise ValueError("input range is empty")
    num = (value - in_min) * (out_max - out_min)
    quotient = abs(num) // abs(den)
    if (num < 0) != (den < 0):
        quotient = -quotient
    return quotient + out_min


def status_icons(bluetooth: bool, rs485: bool, canbus: bool, lora: bool) -> list[tuple[str, int]]:
    """Icons shown in the top-right corner and the x position of each."""
    x = SCREEN_WIDTH - 40
    icons = []
    for name, shown in (("bluetooth", bluetooth), ("rs485", rs485), ("canbus", canbus), ("lora", lora)):
        if shown:
            icons.append((name, x))
            x += ICON_SPACING
    return icons


@dataclass
class HardwareFlags:
    """Which attached devices the operator has enabled."""

    max31855: bool = True
    mpu6500: bool = True
    ads1115: bool = True
    rs485: bool = True
    canbus: bool = False
    bluetooth: bool = True
    lora: bool = True
    sd: bool = True
    w25q128: bool = True
    relay0: bool = True
    pwm1: bool = True

    def to_text(self) -> str:
        """Settings file contents, one ``NAME=0|1`` line per device."""
        return "".join(f"{key}={int(getattr(self, attr))}\n" for key, attr in _SETTING_KEYS)

    @classmethod
    def from_text(cls, text: str) -> "HardwareFlags":
        """Parse a settings file; devices not mentioned keep their defaults."""
        flags = cls()
        flags._apply(text)
        return flags

    def _apply(self, text: str) -> None:
        for line in text.splitlines():
            for key, attr in _SETTING_KEYS:
                prefix = key + "="
                if line.startswith(prefix):
                    setattr(self, attr, line[len(prefix) : len(prefix) + 1] == "1")
                    break

    def _toggle(self, module: int, hardware: int) -> None:
        attrs = _TOGGLES.get(module, ())
        if 0 <= hardware < len(attrs):
            setattr(self, attrs[hardware], not getattr(self, attrs[hardware]))


class Hid:
    """Menu state machine driven by a potentiometer and select/back buttons."""

    def __init__(
        self,
        sensors: Optional[SensorSuite] = None,
        actuation: Optional[Actuation] = None,
        settings_path: Union[str, Path, None] = None,
        start_ms: int = 0,
    ) -> None:
        self.sensors = sensors if sensors is not None else SensorSuite()
        self.actuation = actuation if actuation is not None else Actuation()
        self.settings_path = Path(settings_path) if settings_path is not None else None
        self.flags = HardwareFlags()
        self.menu_index = 0
        self.level = 0
        self.current_menu: tuple[str, ...] = MAIN_MENU
        self.selected_module = -1
        self.selected_hardware = -1
        self.last_pot = 0
        self.last_interaction_ms = start_ms
        self.in_screensaver = False
        self.in_preview = False
        self.scroll_offset = 0
        self.menu_scroll_offset = 0
        self.last_scroll_ms = 0
        self.rocket_y = ROCKET_START_Y
        self.packets = {"rs485": 0, "canbus": 0, "bluetooth": 0, "lora": 0}
        if self.settings_path is not None:
            self.load_settings(self.settings_path)
        log.info("HID initialized")

    # -- input -----------------------------------------------------------

    def update(self, now_ms: int, pot: int, select: bool, back: bool) -> list[str]:
        """Process one frame of input and return the text lines drawn."""
        if self.in_screensaver:
            lines = self._draw_screensaver()
            self._check_for_interaction(now_ms, pot, select, back)
        elif self.in_preview:
            title, text, _ = self.render_preview(now_ms)
            lines = [title, text]
            self._check_for_interaction(now_ms, pot, select, back)
        else:
            self._handle_input(now_ms, pot, select, back)
            lines = self.render_menu()
        return lines

    def _enter_module_menu(self) -> None:
        self.current_menu = SUBMENUS[self.selected_module]

    def _handle_input(self, now_ms: int, pot: int, select: bool, back: bool) -> None:
        mapped = map_range(pot, 0, POT_MAX, 0, len(self.current_menu) - 1)
        if mapped != self.menu_index:
            self.menu_index = mapped
            self.last_interaction_ms = now_ms
            self.scroll_offset = 0
            if self.menu_index < self.menu_scroll_offset:
                self.menu_scroll_offset = self.menu_index
            elif self.menu_index >= self.menu_scroll_offset + ITEMS_PER_PAGE:
                self.menu_scroll_offset = self.menu_index - ITEMS_PER_PAGE + 1
        self.last_pot = pot

        if select:
            self.last_interaction_ms = now_ms
            self._select()

        if back and self.level > 0:
            self.last_interaction_ms = now_ms
            if self.level == 2:
                self.level = 1
                self.menu_index = self.selected_hardware
                self._enter_module_menu()
            else:
                self.current_menu = MAIN_MENU
                self.level = 0
                self.menu_index = self.selected_module

        if now_ms - self.last_interaction_ms > SCREENSAVER_TIMEOUT_MS:
            self.in_screensaver = True

    def _select(self) -> None:
        if self.level == 0:
            self.selected_module = self.menu_index
            self._enter_module_menu()
            self.level = 1
            self.menu_index = 0
            self.menu_scroll_offset = 0
        elif self.level == 1:
            if self.menu_index == len(self.current_menu) - 1:
                self.current_menu = MAIN_MENU
                self.level = 0
                self.menu_index = self.selected_module
            else:
                self.selected_hardware = self.menu_index
                self.current_menu = HARDWARE_SETTINGS
                self.level = 2
                self.menu_index = 0
            self.menu_scroll_offset = 0
        elif self.menu_index == 2:
            self.level = 1
            self.menu_index = self.selected_hardware
            self._enter_module_menu()
        elif self.menu_index == 0:
            self.flags._toggle(self.selected_module, self.selected_hardware)
            if self.settings_path is not None:
                self.save_settings(self.settings_path)
        elif self.menu_index == 1:
            self.in_preview = True
            self.scroll_offset = 0

    def _check_for_interaction(self, now_ms: int, pot: int, select: bool, back: bool) -> None:
        if abs(pot - self.last_pot) > DEADBAND_THRESHOLD or select or back:
            self.in_screensaver = False
            self.in_preview = False
            self.last_interaction_ms = now_ms
        self.last_pot = pot

    # -- drawing ---------------------------------------------------------

    def _hardware_name(self) -> str:
        return SUBMENUS[self.selected_module][self.selected_hardware]

    @property
    def icons(self) -> list[tuple[str, int]]:
        f = self.flags
        return status_icons(f.bluetooth, f.rs485, f.canbus, f.lora)

    @property
    def scrollbar_position(self) -> Optional[int]:
        """Top of the scrollbar, or None when the menu fits on one page."""
        size = len(self.current_menu)
        if size <= ITEMS_PER_PAGE:
            return None
        max_y = SCREEN_HEIGHT - SCROLLBAR_HEIGHT - 5
        return map_range(self.menu_index, 0, size - 1, 10, max_y)

    def render_menu(self) -> list[str]:
        """Title followed by the visible menu items, the current one marked."""
        if self.level == 0:
            title = "Main Menu"
        elif self.level == 1:
            title = MAIN_MENU[self.selected_module]
        else:
            title = self._hardware_name()
        start = self.menu_scroll_offset
        end = min(start + ITEMS_PER_PAGE, len(self.current_menu))
        items = [
            ("> " if i == self.menu_index else "  ") + self.current_menu[i]
            for i in range(start, end)
        ]
        return [title, *items]

    def _preview_text(self) -> str:
        module, hardware, f = self.selected_module, self.selected_hardware, self.flags
        if module == 0:
            if hardware == 0 and f.max31855:
                return f"Temp: {self.sensors.read_temperature():.2f} C"
            if hardware == 1 and f.mpu6500:
                r = self.sensors.read_imu()
                return (
                    f"AX:{r.accel_x:.1f} AY:{r.accel_y:.1f} AZ:{r.accel_z:.1f} "
                    f"GX:{r.gyro_x:.1f} GY:{r.gyro_y:.1f} GZ:{r.gyro_z:.1f}"
                )
            if hardware == 2 and f.ads1115:
                return " ".join(
                    f"V{ch}: {self.sensors.read_adc_voltage(ch):.3f}" for ch in range(4)
                )
            return "Disabled"
        if module == 1:
            links = ("rs485", "canbus", "bluetooth", "lora")
            if 0 <= hardware < len(links) and getattr(f, links[hardware]):
                name = links[hardware]
                count = self.packets[name]
                self.packets[name] = count + 1
                return f"Packets: {count}"
            return "Disabled"
        if module == 2:
            enabled = f.sd if hardware == 0 else f.w25q128
            return f"Enabled: {'Yes' if enabled else 'No'}"
        if module == 3:
            if hardware == 0 and f.relay0:
                return f"State: {'On' if self.actuation.actuators[0].state else 'Off'}"
            if hardware == 1 and f.pwm1:
                return f"PWM: {self.actuation.actuators[1].pwm_value}"
            return "Disabled"
        if module == 4:
            return f"Pot: {self.last_pot}" if hardware == 1 else "N/A"
        if module == 5:
            return "State: N/A"
        if module == 6:
            return f"Screen Timeout: {SCREENSAVER_TIMEOUT_MS // 1000} s"
        return "No Data"

    def render_preview(self, now_ms: int) -> tuple[str, str, int]:
        """Title, live reading and its x position; long readings scroll sideways."""
        title = f"Preview: {self._hardware_name()}"
        text = self._preview_text()[: TEXT_BUFFER_SIZE - 1]
        width = len(text) * CHAR_WIDTH
        visible = SCREEN_WIDTH - 10
        if width > visible:
            if now_ms - self.last_scroll_ms > SCROLL_DELAY_MS:
                self.scroll_offset += CHAR_WIDTH
                if self.scroll_offset > width - visible:
                    self.scroll_offset = 0
                self.last_scroll_ms = now_ms
            x = 10 - self.scroll_offset
        else:
            self.scroll_offset = 0
            x = 10
        return title, text, x

    def _draw_screensaver(self) -> list[str]:
        self.rocket_y -= 1
        if self.rocket_y < -10:
            self.rocket_y = ROCKET_START_Y
        return ["GodSpeed", "Bluelily..."]

    # -- persistence -----------------------------------------------------

    def save_settings(self, path: Union[str, Path]) -> None:
        """Write the enable flags to a settings file."""
        Path(path).write_text(self.flags.to_text(), encoding="utf-8")

    def load_settings(self, path: Union[str, Path]) -> bool:
        """Apply a settings file over the current flags; False if it cannot be read."""
        try:
            text = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError:
            return False
        self.flags._apply(text)
        return True