"""Line-delimited JSON messages exchanged between media server and clients.

Each message travels as one JSON document per line. Variants that carry
fields are encoded as ``{"Tag": {...fields...}}`` and variants without
fields as the bare string ``"Tag"``. Binary payloads are sent as arrays
of byte values.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Union


class ProtocolError(ValueError):
    """Raised when a line cannot be decoded into a protocol message."""


@dataclass(frozen=True)
class Join:
    """Client announces itself to the server."""

    client_id: str


@dataclass(frozen=True)
class RequestMediaList:
    """Client asks for the names of the files the server offers."""


@dataclass(frozen=True)
class RequestMedia:
    """Client asks for the contents of one media file."""

    filename: str


@dataclass(frozen=True)
class Welcome:
    """Server greets a client that has joined."""

    client_id: str


@dataclass(frozen=True)
class MediaList:
    """Server lists the files it offers."""

    files: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MediaData:
    """Server sends the contents of a media file."""

    filename: str
    data: bytes
    media_type: str
    timestamp: int


@dataclass(frozen=True)
class PlayCommand:
    """Server tells clients to start playing a file."""

    filename: str
    timestamp: int


@dataclass(frozen=True)
class PauseCommand:
    """Server tells clients to pause playback."""


@dataclass(frozen=True)
class ErrorMessage:
    """Server reports an error to a client."""

    message: str


Message = Union[
    Join,
    RequestMediaList,
    RequestMedia,
    Welcome,
    MediaList,
    MediaData,
    PlayCommand,
    PauseCommand,
    ErrorMessage,
]

_TAGS: dict[type, str] = {
    Join: "Join",
    RequestMediaList: "RequestMediaList",
    RequestMedia: "RequestMedia",
    Welcome: "Welcome",
    MediaList: "MediaList",
    MediaData: "MediaData",
    PlayCommand: "PlayCommand",
    PauseCommand: "PauseCommand",
    ErrorMessage: "Error",
}
_CLASSES: dict[str, type] = {tag: cls for cls, tag in _TAGS.items()}

_U64_MAX = 2**64 - 1


def _check_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ProtocolError(f"field {name!r} must be a string")
    return value


def _check_u64(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f"field {name!r} must be an unsigned integer")
    if not 0 <= value <= _U64_MAX:
        raise ProtocolError(f"field {name!r} is out of range")
    return value


def _check_bytes(name: str, value: Any) -> bytes:
    if not isinstance(value, list):
        raise ProtocolError(f"field {name!r} must be an array of bytes")
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= 255:
            raise ProtocolError(f"field {name!r} holds a value that is not a byte")
    return bytes(value)


def _check_str_list(name: str, value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ProtocolError(f"field {name!r} must be an array of strings")
    return list(value)


_DECODERS: dict[tuple[type, str], Callable[[str, Any], Any]] = {
    (Join, "client_id"): _check_str,
    (RequestMedia, "filename"): _check_str,
    (Welcome, "client_id"): _check_str,
    (MediaList, "files"): _check_str_list,
    (MediaData, "filename"): _check_str,
    (MediaData, "data"): _check_bytes,
    (MediaData, "media_type"): _check_str,
    (MediaData, "timestamp"): _check_u64,
    (PlayCommand, "filename"): _check_str,
    (PlayCommand, "timestamp"): _check_u64,
    (ErrorMessage, "message"): _check_str,
}


def _wire_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return list(value)
    if isinstance(value, list):
        return list(value)
    return value


def encode_message(message: Message) -> str:
    """Return the compact JSON text of a message, without a line ending."""
    try:
        tag = _TAGS[type(message)]
    except KeyError:
        raise TypeError(f"not a protocol message: {message!r}") from None
    message_fields = fields(message)
    if not message_fields:
        payload: Any = tag
    else:
        payload = {tag: {f.name: _wire_value(getattr(message, f.name)) for f in message_fields}}
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def decode_message(line: str | bytes) -> Message:
    """Parse one line of JSON into a message; raise ProtocolError if it is not one."""
    if isinstance(line, (bytes, bytearray)):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProtocolError("message is not valid UTF-8") from exc
    text = line.strip()
    if not text:
        raise ProtocolError("empty message")
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"invalid JSON: {exc}") from exc

    if isinstance(document, str):
        cls = _CLASSES.get(document)
        if cls is None:
            raise ProtocolError(f"unknown message variant {document!r}")
        if fields(cls):
            raise ProtocolError(f"message variant {document!r} requires fields")
        return cls()

    if not isinstance(document, dict) or len(document) != 1:
        raise ProtocolError("message must be a string or an object with a single key")
    ((tag, payload),) = document.items()
    cls = _CLASSES.get(tag)
    if cls is None:
        raise ProtocolError(f"unknown message variant {tag!r}")
    cls_fields = fields(cls)
    if not cls_fields:
        if payload is not None:
            raise ProtocolError(f"message variant {tag!r} takes no fields")
        return cls()
    if not isinstance(payload, dict):
        raise ProtocolError(f"fields of {tag!r} must be an object")

    values = {}
    for f in cls_fields:
        if f.name not in payload:
            raise ProtocolError(f"missing field {f.name!r} in {tag!r}")
        values[f.name] = _DECODERS[(cls, f.name)](f.name, payload[f.name])
    return cls(**values)