"""Links that carry configuration commands: chYAPpy, line-based and CAN."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol, Union

from .config import CONFIG_BUFFER_SIZE, SENSOR_TYPE_ACK, CommMethod, PayloadType
from .protocol import (
    CrcError,
    Frame,
    FrameDecoder,
    FrameError,
    decode_frame,
    encode_frame,
    encode_payload,
)

log = logging.getLogger(__name__)

CAN_MAX_DATA = 8
RESPONSE_CAN_ID = 0x01

CommandHandler = Callable[[int, int, int, int, int, Union[bytes, str]], object]


class ByteTransport(Protocol):
    def write(self, data: bytes) -> object: ...

    def read(self) -> bytes: ...


class CanTransport(Protocol):
    def send(self, can_id: int, data: bytes) -> object: ...

    def receive(self) -> Optional[tuple[int, bytes]]: ...


def _payload_bytes(data: Union[str, bytes, float], payload_type: int) -> bytes:
    if payload_type == PayloadType.FLOAT and isinstance(data, (bytes, bytearray)):
        if len(data) < 4:
            raise ValueError("float payload needs 4 bytes")
        return bytes(data[:4])
    return encode_payload(data, payload_type)


class ChyappyLink:
    """A link that speaks chYAPpy v1.2 frames over a byte transport.

    In stream mode (RS485) bytes are reassembled across reads; in packet mode
    (LoRa) every read is one packet, cut to the receive buffer size.
    """

    def __init__(
        self,
        transport: ByteTransport,
        method: int,
        handler: Optional[CommandHandler] = None,
        tx_enable: Optional[Callable[[bool], object]] = None,
        packet_mode: bool = False,
    ) -> None:
        self.transport = transport
        self.method = CommMethod(method)
        self.handler = handler
        self.tx_enable = tx_enable
        self.packet_mode = packet_mode
        self.decoder = FrameDecoder()
        self._packet_crc_errors = 0

    @property
    def crc_errors(self) -> int:
        """Frames dropped because their checksum did not match."""
        return self.decoder.crc_errors + self._packet_crc_errors

    def send(
        self,
        sensor_type: Union[int, str],
        sensor_id: int,
        seq_num: int,
        data: Union[str, bytes, float],
        payload_type: int = PayloadType.STRING,
    ) -> bytes:
        """Frame ``data`` and write it out; return the bytes sent."""
        frame = encode_frame(
            sensor_type, sensor_id, seq_num, payload_type, _payload_bytes(data, payload_type)
        )
        if self.tx_enable is not None:
            self.tx_enable(True)
        try:
            self.transport.write(frame)
            flush = getattr(self.transport, "flush", None)
            if flush is not None:
                flush()
        finally:
            if self.tx_enable is not None:
                self.tx_enable(False)
        return frame

    def _decode_packet(self, packet: bytes) -> list[Frame]:
        try:
            return [decode_frame(packet[:CONFIG_BUFFER_SIZE])]
        except CrcError:
            self._packet_crc_errors += 1
            log.warning("%s CRC error", self.method.name)
        except FrameError:
            pass
        return []

    def poll(self) -> list[Frame]:
        """Read what is available and dispatch every complete frame."""
        data = bytes(self.transport.read() or b"")
        if not data:
            return []
        frames = self._decode_packet(data) if self.packet_mode else self.decoder.feed(data)
        for frame in frames:
            log.info(
                "%s parsed - type: %r, id: %d, seq: %d",
                self.method.name,
                chr(frame.sensor_type),
                frame.sensor_id,
                frame.seq_num,
            )
            if self.handler is not None:
                self.handler(
                    self.method,
                    frame.sensor_type,
                    frame.sensor_id,
                    frame.seq_num,
                    frame.payload_type,
                    frame.payload,
                )
        return frames


class LineLink:
    """A text link (Bluetooth serial) carrying one command per line."""

    def __init__(
        self,
        transport: ByteTransport,
        handler: Optional[CommandHandler] = None,
        method: int = CommMethod.BLUETOOTH,
    ) -> None:
        self.transport = transport
        self.handler = handler
        self.method = CommMethod(method)
        self._buffer = bytearray()

    def send(self, data: str) -> None:
        """Write text as is."""
        self.transport.write(data.encode("utf-8"))

    def poll(self) -> list[str]:
        """Read what is available and dispatch every line ended by CR or LF."""
        lines = []
        for byte in bytes(self.transport.read() or b""):
            if byte in (0x0A, 0x0D):
                line = self._buffer.decode("utf-8", errors="replace")
                self._buffer.clear()
                log.info("%s received: %s", self.method.name, line)
                lines.append(line)
                if self.handler is not None:
                    self.handler(self.method, 0, 0, 0, PayloadType.STRING, line)
            elif len(self._buffer) < CONFIG_BUFFER_SIZE - 1:
                self._buffer.append(byte)
            else:
                log.warning("%s line too long, discarded", self.method.name)
                self._buffer.clear()
        return lines


class CanLink:
    """A CAN bus link; messages carry raw command text, without chYAPpy framing."""

    def __init__(self, transport: CanTransport, handler: Optional[CommandHandler] = None) -> None:
        self.transport = transport
        self.handler = handler

    def send(self, can_id: int, data: bytes) -> bytes:
        """Send up to eight bytes under ``can_id``; longer data is cut to fit a frame."""
        data = bytes(data)[:CAN_MAX_DATA]
        self.transport.send(can_id, data)
        return data

    def poll(self) -> Optional[tuple[int, bytes]]:
        """Receive at most one message and dispatch it."""
        message = self.transport.receive()
        if message is None:
            return None
        can_id, data = message
        data = bytes(data)[:CAN_MAX_DATA]
        log.info("CAN received - id: 0x%X, data: %s", can_id, data.hex(" ").upper())
        if self.handler is not None:
            self.handler(CommMethod.CANBUS, 0, 0, 0, PayloadType.STRING, data)
        return can_id, data


Link = Union[ChyappyLink, LineLink, CanLink]


class CommunicationHub:
    """Routes polling and responses to the links registered per method."""

    def __init__(self) -> None:
        self._links: dict[CommMethod, Link] = {}

    def register(self, method: int, link: Link) -> None:
        self._links[CommMethod(method)] = link

    def send_response(self, method: int, sensor_id: int, seq_num: int, response: str) -> None:
        """Answer a command on the link it came from."""
        method = CommMethod(method)
        link = self._links.get(method)
        if link is None:
            raise LookupError(f"no link registered for {method.name}")
        if method in (CommMethod.RS485, CommMethod.LORA):
            link.send(SENSOR_TYPE_ACK, sensor_id, seq_num, response)
        elif method is CommMethod.CANBUS:
            link.send(RESPONSE_CAN_ID, response.encode("utf-8"))
        else:
            link.send(response)

    def poll(self) -> None:
        """Poll every registered link in method order."""
        for method in sorted(self._links):
            self._links[method].poll()