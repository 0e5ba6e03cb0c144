"""STOMP 1.2 frame codec.

Encodes outgoing frames and incrementally parses inbound text, which may
hold partial frames, several frames, or bare heart-beat EOLs.
"""

import re

from pydantic import BaseModel, Field

from docchat.exceptions import ProtocolError

# Heart-beats are reported in milliseconds on the wire
HEARTBEAT_HEADER = "heart-beat"
ACCEPT_VERSION = "1.2,1.1,1.0"

# CONNECT/CONNECTED headers are never escaped
_UNESCAPED_COMMANDS = frozenset({"CONNECT", "CONNECTED"})
_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", ":": "\\c"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r", "c": ":"}
_ESCAPE_RE = re.compile(r"\\(.)|\\$", re.DOTALL)
_HEADER_END_RE = re.compile(rb"\r?\n\r?\n")


class StompFrame(BaseModel):
    """A single STOMP frame.

    Attributes:
        command: Frame command (CONNECT, SEND, MESSAGE, ...).
        headers: Header map; the first occurrence of a repeated header wins.
        body: Frame body as text.
    """

    command: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""


def _escape(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def _unescape(value: str) -> str:
    def replace(match: re.Match[str]) -> str:
        escaped = match.group(1)
        if escaped is None or escaped not in _UNESCAPES:
            raise ProtocolError(f"Invalid header escape in {value!r}")
        return _UNESCAPES[escaped]

    return _ESCAPE_RE.sub(replace, value)


def _decode(data: bytes, part: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Invalid UTF-8 in frame {part}") from e


def encode_frame(frame: StompFrame) -> str:
    """Serialize a frame, adding content-length for non-empty bodies."""
    escape = frame.command not in _UNESCAPED_COMMANDS
    headers = dict(frame.headers)
    if frame.body and "content-length" not in headers:
        headers["content-length"] = str(len(frame.body.encode("utf-8")))

    lines = [frame.command]
    for key, value in headers.items():
        if escape:
            lines.append(f"{_escape(key)}:{_escape(value)}")
        else:
            lines.append(f"{key}:{value}")
    return "\n".join(lines) + "\n\n" + frame.body + "\x00"


def negotiate_heartbeat(
    client_outgoing: float,
    client_incoming: float,
    server_header: str | None,
) -> tuple[float, float]:
    """Agree on heart-beat intervals in seconds.

    Each direction runs at the larger of the two requested intervals, and
    is disabled when either side asked for zero.

    Returns:
        (outgoing, incoming) intervals in seconds, 0.0 meaning disabled.
    """
    server_outgoing_ms, server_incoming_ms = 0, 0
    if server_header:
        try:
            sx, sy = (int(part) for part in server_header.split(","))
            server_outgoing_ms, server_incoming_ms = sx, sy
        except ValueError as e:
            raise ProtocolError(f"Invalid heart-beat header: {server_header!r}") from e

    client_outgoing_ms = int(client_outgoing * 1000)
    client_incoming_ms = int(client_incoming * 1000)

    outgoing = 0
    if client_outgoing_ms and server_incoming_ms:
        outgoing = max(client_outgoing_ms, server_incoming_ms)
    incoming = 0
    if client_incoming_ms and server_outgoing_ms:
        incoming = max(client_incoming_ms, server_outgoing_ms)
    return outgoing / 1000, incoming / 1000


class FrameParser:
    """Incremental STOMP frame parser.

    Feed raw text or bytes as it arrives; complete frames are returned in
    order and any trailing partial frame is kept for the next call.
    """

    def __init__(self) -> None:
        self._buffer = b""
        self.heartbeats = 0

    def reset(self) -> None:
        self._buffer = b""

    def feed(self, data: str | bytes) -> list[StompFrame]:
        """Consume data and return every frame it completes.

        Raises:
            ProtocolError: If the data is not valid STOMP.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffer += data

        frames: list[StompFrame] = []
        while True:
            stripped = self._buffer.lstrip(b"\r\n")
            if len(stripped) != len(self._buffer):
                self.heartbeats += 1
                self._buffer = stripped
            if not self._buffer:
                break
            frame = self._next_frame()
            if frame is None:
                break
            frames.append(frame)
        return frames

    def _next_frame(self) -> StompFrame | None:
        match = _HEADER_END_RE.search(self._buffer)
        if match is None:
            return None

        lines = _decode(self._buffer[: match.start()], "headers").split("\n")
        command = lines[0].rstrip("\r")
        if not command:
            raise ProtocolError("Frame without command")
        escape = command not in _UNESCAPED_COMMANDS

        headers: dict[str, str] = {}
        for line in lines[1:]:
            line = line.rstrip("\r")
            key, sep, value = line.partition(":")
            if not sep:
                raise ProtocolError(f"Malformed header line: {line!r}")
            if escape:
                key, value = _unescape(key), _unescape(value)
            headers.setdefault(key, value)

        body_start = match.end()
        if "content-length" in headers:
            try:
                length = int(headers["content-length"])
            except ValueError as e:
                raise ProtocolError("Invalid content-length header") from e
            if length < 0:
                raise ProtocolError(f"Negative content-length: {length}")
            body_end = body_start + length
            if len(self._buffer) <= body_end:
                return None
            if self._buffer[body_end] != 0:
                raise ProtocolError("Frame body is not NUL-terminated")
        else:
            body_end = self._buffer.find(b"\x00", body_start)
            if body_end == -1:
                return None

        body = _decode(self._buffer[body_start:body_end], "body")
        self._buffer = self._buffer[body_end + 1 :]
        return StompFrame(command=command, headers=headers, body=body)
