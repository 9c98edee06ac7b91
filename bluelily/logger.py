"""Flight data logging to an SD card file and to SPI flash memory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .config import RING_BUF_CAPACITY, SD_LOG_FILE_SIZE, W25Q128_CAPACITY

log = logging.getLogger(__name__)

SECTOR = 512
SD_HEADROOM = 20
PREVIEW_LINES = 20
FLASH_PREVIEW_BYTES = 256
LINE_END = b"\r\n"


class LoggerFullError(RuntimeError):
    """A log destination has no room for more data."""


class FlightLogger:
    """Writes log lines to an SD file through a ring buffer and to flash.

    SD data goes out in 512-byte sectors; flash writes are immediate.
    Either destination may be disabled.
    """

    def __init__(
        self,
        sd_path: Union[str, Path, None] = None,
        use_flash: bool = True,
        sd_capacity: int = SD_LOG_FILE_SIZE,
        flash_capacity: int = W25Q128_CAPACITY,
        ring_capacity: int = RING_BUF_CAPACITY,
    ) -> None:
        self.sd_path = Path(sd_path) if sd_path is not None else None
        self.sd_capacity = sd_capacity
        self.flash_capacity = flash_capacity
        self.ring_capacity = ring_capacity
        self._ring = bytearray()
        self._flash: Optional[bytearray] = bytearray() if use_flash else None
        self._file: Optional[BinaryIO] = None
        if self.sd_path is not None:
            self._file = self.sd_path.open("wb")
            log.info("SD logger initialized")
        if self._flash is not None:
            log.info("W25Q128 logger initialized")

    def __enter__(self) -> "FlightLogger":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def flash_data(self) -> bytes:
        """Everything written to flash so far."""
        return bytes(self._flash) if self._flash is not None else b""

    @property
    def flash_address(self) -> int:
        return len(self._flash) if self._flash is not None else 0

    def _write_out(self, count: int) -> None:
        if self._file is None or count <= 0:
            return
        chunk = bytes(self._ring[:count])
        del self._ring[:count]
        self._file.write(chunk)

    def log(self, data: str) -> None:
        """Append one line to every enabled destination.

        Raises LoggerFullError naming each destination that had no room;
        the others still receive the line.
        """
        raw = data.encode("utf-8")
        full = []
        if self.sd_path is not None:
            if self._file is None:
                log.warning("SD log file closed, line dropped")
            elif len(self._ring) + self._file.tell() < self.sd_capacity - SD_HEADROOM:
                line = raw + LINE_END
                if len(self._ring) + len(line) > self.ring_capacity:
                    log.error("SD ring buffer write error")
                else:
                    self._ring += line
                if len(self._ring) >= SECTOR:
                    self._write_out(SECTOR)
            else:
                full.append("SD")
        if self._flash is not None:
            if len(self._flash) < self.flash_capacity - len(raw) - len(LINE_END):
                self._flash += raw + LINE_END
            else:
                full.append("W25Q128")
        if full:
            raise LoggerFullError(" and ".join(full) + " full")

    def flush(self) -> None:
        """Write everything buffered for the SD card."""
        if self._file is None:
            return
        self._write_out(len(self._ring))
        self._file.flush()

    def close(self) -> None:
        """Flush and close the SD file; further SD lines are dropped."""
        if self._file is None:
            return
        self.flush()
        self._file.truncate()
        self._file.close()
        self._file = None
        log.info("SD logger closed")

    def preview(self) -> tuple[Optional[bytes], Optional[bytes]]:
        """First 20 lines of the SD file and first 256 bytes of flash.

        A disabled destination gives None.
        """
        sd_preview = None
        if self.sd_path is not None:
            self.flush()
            lines = []
            with self.sd_path.open("rb") as handle:
                for _ in range(PREVIEW_LINES):
                    line = handle.readline()
                    if not line:
                        break
                    lines.append(line)
            sd_preview = b"".join(lines)
        flash_preview = None
        if self._flash is not None:
            flash_preview = bytes(self._flash[:FLASH_PREVIEW_BYTES])
        return sd_preview, flash_preview

    def sync_flash_to_sd(self) -> int:
        """Append the flash contents to the SD file; return the bytes copied."""
        if self.sd_path is None or self._flash is None:
            raise RuntimeError("Sync requires both SD and W25Q128 enabled")
        opened_here = self._file is None
        if opened_here:
            self._file = self.sd_path.open("ab")
        copied = 0
        full = False
        try:
            total = len(self._flash)
            while copied < total:
                chunk = self._flash[copied : copied + SECTOR]
                if len(self._ring) + self._file.tell() + len(chunk) >= self.sd_capacity:
                    full = True
                    break
                self._ring += chunk
                if len(self._ring) >= SECTOR:
                    self._write_out(SECTOR)
                copied += len(chunk)
            self.flush()
        finally:
            if opened_here:
                self._file.close()
                self._file = None
        if full:
            raise LoggerFullError("SD full during sync")
        log.info("Sync complete")
        return copied