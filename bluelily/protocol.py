"""chYAPpy v1.2 framing: CRC-8, frame encoding and a streaming decoder.

Frame layout::

    START | LEN | SENSOR_TYPE | SENSOR_ID | SEQ_HI | SEQ_LO | PAYLOAD_TYPE | PAYLOAD[LEN] | CRC

The CRC covers everything between START and CRC.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Union

from .config import CHYAPPY_V1_2_START, CONFIG_BUFFER_SIZE, PayloadType

log = logging.getLogger(__name__)

FRAME_OVERHEAD = 8
MAX_PAYLOAD = 0xFF
_CRC_POLY = 0x31

ByteCode = Union[int, str]


class FrameError(ValueError):
    """A byte sequence is not a valid chYAPpy frame."""


class CrcError(FrameError):
    """A frame's checksum does not match its contents."""


def crc8(data: bytes) -> int:
    """CRC-8 with polynomial 0x31, initial value 0, no reflection."""
    crc = 0
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x80:
                crc = ((crc << 1) ^ _CRC_POLY) & 0xFF
            else:
                crc = (crc << 1) & 0xFF
    return crc


def _byte(value: ByteCode, name: str) -> int:
    if isinstance(value, str):
        if len(value) != 1:
            raise ValueError(f"{name} must be a single character, got {value!r}")
        value = ord(value)
    value = int(value)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} out of range: {value}")
    return value


def encode_payload(data: Union[str, bytes, float], payload_type: int) -> bytes:
    """Turn a value into payload bytes.

    Strings end at the first NUL, floats are 4-byte little-endian; other
    payload types carry no bytes.
    """
    payload_type = PayloadType(payload_type)
    if payload_type is PayloadType.STRING:
        raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        return raw.split(b"\0", 1)[0]
    if payload_type is PayloadType.FLOAT:
        return struct.pack("<f", float(data))
    return b""


def decode_payload(payload: bytes, payload_type: int) -> Union[str, float, bytes]:
    """Interpret payload bytes according to their declared type."""
    try:
        payload_type = PayloadType(payload_type)
    except ValueError:
        return bytes(payload)
    if payload_type is PayloadType.STRING:
        return bytes(payload).split(b"\0", 1)[0].decode("utf-8", errors="replace")
    if payload_type is PayloadType.FLOAT:
        if len(payload) < 4:
            raise FrameError("float payload needs 4 bytes")
        return struct.unpack_from("<f", bytes(payload))[0]
    return bytes(payload)


def encode_frame(
    sensor_type: ByteCode,
    sensor_id: int,
    seq_num: int,
    payload_type: int,
    payload: bytes,
) -> bytes:
    """Build a complete frame around raw payload bytes."""
    payload = bytes(payload)
    if len(payload) > MAX_PAYLOAD:
        raise ValueError(f"payload too long: {len(payload)} bytes")
    seq = int(seq_num) & 0xFFFF
    body = bytes(
        [
            len(payload),
            _byte(sensor_type, "sensor_type"),
            _byte(sensor_id, "sensor_id"),
            seq >> 8,
            seq & 0xFF,
            _byte(payload_type, "payload_type"),
        ]
    ) + payload
    return bytes([CHYAPPY_V1_2_START]) + body + bytes([crc8(body)])


@dataclass(frozen=True)
class Frame:
    """A decoded chYAPpy frame."""

    sensor_type: int
    sensor_id: int
    seq_num: int
    payload_type: int
    payload: bytes

    @property
    def value(self) -> Union[str, float, bytes]:
        """The payload interpreted according to its type."""
        return decode_payload(self.payload, self.payload_type)

    def to_bytes(self) -> bytes:
        return encode_frame(
            self.sensor_type, self.sensor_id, self.seq_num, self.payload_type, self.payload
        )


def decode_frame(data: bytes) -> Frame:
    """Decode one frame from the start of ``data``; trailing bytes are ignored."""
    data = bytes(data)
    if len(data) < FRAME_OVERHEAD:
        raise FrameError("frame too short")
    if data[0] != CHYAPPY_V1_2_START:
        raise FrameError("missing start byte")
    end = data[1] + FRAME_OVERHEAD
    if len(data) < end:
        raise FrameError("truncated frame")
    if crc8(data[1 : end - 1]) != data[end - 1]:
        raise CrcError("checksum mismatch")
    return Frame(
        sensor_type=data[2],
        sensor_id=data[3],
        seq_num=(data[4] << 8) | data[5],
        payload_type=data[6],
        payload=data[7 : end - 1],
    )


class FrameDecoder:
    """Reassembles frames from a byte stream.

    Bytes before a start byte are skipped, a frame with a bad checksum is
    dropped and counted, and a buffer that fills up without completing a
    frame is discarded.
    """

    def __init__(self, capacity: int = CONFIG_BUFFER_SIZE) -> None:
        self.capacity = capacity
        self.crc_errors = 0
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes of a frame not yet complete."""
        return bytes(self._buffer)

    def feed(self, data: bytes) -> list[Frame]:
        """Consume bytes and return every frame they complete."""
        frames: list[Frame] = []
        for byte in bytes(data):
            if not self._buffer and byte != CHYAPPY_V1_2_START:
                continue
            self._buffer.append(byte)
            if len(self._buffer) >= FRAME_OVERHEAD:
                end = self._buffer[1] + FRAME_OVERHEAD
                if len(self._buffer) >= end:
                    try:
                        frames.append(decode_frame(self._buffer))
                    except CrcError:
                        self.crc_errors += 1
                        log.warning("CRC error, frame dropped")
                    self._buffer.clear()
                    continue
            if len(self._buffer) >= self.capacity:
                self._buffer.clear()
        return frames