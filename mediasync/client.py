"""TCP media client that joins a media server, lists and receives media files."""

from __future__ import annotations

import logging
import os
import socket
import threading
from pathlib import Path
from typing import Callable, Optional

from .media import MediaFile, write_and_open
from .protocol import (
    ErrorMessage,
    Join,
    MediaData,
    MediaList,
    Message,
    PauseCommand,
    PlayCommand,
    ProtocolError,
    RequestMedia,
    RequestMediaList,
    Welcome,
    decode_message,
    encode_message,
)

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]
FilesCallback = Callable[[list[str]], None]


def _parse_address(address: str) -> tuple[str, int]:
    """Split "host:port" (or "[v6host]:port") into host and port."""
    if address.startswith("["):
        host, closing, rest = address[1:].partition("]")
        if not closing or not rest.startswith(":"):
            raise ValueError(f"invalid server address: {address!r}")
        port_text = rest[1:]
    else:
        host, sep, port_text = address.rpartition(":")
        if not sep:
            raise ValueError(f"invalid server address: {address!r}")
    if not host:
        raise ValueError(f"invalid server address: {address!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid port in server address: {address!r}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range in server address: {address!r}")
    return host, port


class MediaClient:
    """Joins a media server, asks for its media list and plays what it receives."""

    def __init__(
        self,
        server_addr: str,
        client_id: str,
        *,
        auto_request_first: bool = True,
        play_media: bool = True,
        temp_dir: str | os.PathLike = ".",
    ) -> None:
        self.server_addr = server_addr
        self.client_id = client_id
        self.auto_request_first = auto_request_first
        self.play_media = play_media
        self.temp_dir = Path(temp_dir)
        self.available_files: list[str] = []
        self.received_media: dict[str, MediaFile] = {}
        self._status_callback: Optional[StatusCallback] = None
        self._files_callback: Optional[FilesCallback] = None
        self._sock: Optional[socket.socket] = None
        self._send_lock = threading.Lock()
        self._closing = False

    def set_status_callback(self, callback: Optional[StatusCallback]) -> None:
        """Install a function that receives every status message."""
        self._status_callback = callback

    def set_files_callback(self, callback: Optional[FilesCallback]) -> None:
        """Install a function that receives the server's list of media files."""
        self._files_callback = callback

    def _log_status(self, message: str) -> None:
        logger.info("%s", message)
        callback = self._status_callback
        if callback is not None:
            callback(message)

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def _open(self) -> socket.socket:
        if self._sock is not None:
            raise RuntimeError("client is already connected")
        host, port = _parse_address(self.server_addr)
        sock = socket.create_connection((host, port))
        self._closing = False
        self._sock = sock
        self._log_status(f"Connected to media server at {self.server_addr}")
        try:
            self._send(Join(client_id=self.client_id))
        except OSError:
            self._sock = None
            sock.close()
            raise
        return sock

    def connect(self) -> None:
        """Connect, join, and handle server messages until the connection ends."""
        sock = self._open()
        self._run(sock)

    def connect_in_background(self) -> threading.Thread:
        """Connect and join now, then handle server messages on a daemon thread."""
        sock = self._open()

        def run() -> None:
            try:
                self._run(sock)
            except OSError as exc:
                self._log_status(f"Connection error: {exc}")

        thread = threading.Thread(target=run, daemon=True)
        thread.start()
        return thread

    def request_media(self, filename: str) -> None:
        """Ask the server for one media file."""
        if self._sock is None:
            raise RuntimeError("client is not connected")
        self._send(RequestMedia(filename=filename))

    def close(self) -> None:
        """Close the connection to the server."""
        self._closing = True
        sock = self._sock
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def _send(self, message: Message) -> None:
        sock = self._sock
        if sock is None:
            raise RuntimeError("client is not connected")
        line = (encode_message(message) + "\n").encode("utf-8")
        with self._send_lock:
            sock.sendall(line)

    def _run(self, sock: socket.socket) -> None:
        reader = sock.makefile("rb")
        try:
            while True:
                try:
                    raw = reader.readline()
                except OSError as exc:
                    if not self._closing:
                        logger.error("Error reading from server: %s", exc)
                    break
                if not raw:
                    if not self._closing:
                        self._log_status("Server disconnected")
                    break
                if not raw.strip():
                    continue
                try:
                    message = decode_message(raw)
                except ProtocolError:
                    logger.warning("Failed to parse server message: %r", raw.strip()[:200])
                    continue
                self._process(message)
        finally:
            if self._sock is sock:
                self._sock = None
            reader.close()
            sock.close()

    def _process(self, message: Message) -> None:
        if isinstance(message, Welcome):
            self._log_status(f"Welcome! Client ID: {message.client_id}")
            self._send(RequestMediaList())
        elif isinstance(message, MediaList):
            files = list(message.files)
            self.available_files = files
            self._log_status(f"Received {len(files)} media files from server")
            callback = self._files_callback
            if callback is not None:
                callback(list(files))
            if self.auto_request_first and files:
                self._log_status(f"Requesting: {files[0]}")
                self._send(RequestMedia(filename=files[0]))
        elif isinstance(message, MediaData):
            self._log_status(
                f"Received media: {message.filename} ({len(message.data)} bytes)"
            )
            self.received_media[message.filename] = MediaFile(
                filename=message.filename,
                data=message.data,
                media_type=message.media_type,
            )
            if self.play_media:
                self._play(message)
        elif isinstance(message, PlayCommand):
            self._log_status(
                f"Play command received for: {message.filename} at timestamp {message.timestamp}"
            )
        elif isinstance(message, PauseCommand):
            self._log_status("Pause command received")
        elif isinstance(message, ErrorMessage):
            self._log_status(f"Server error: {message.message}")

    def _play(self, message: MediaData) -> None:
        safe_name = Path(message.filename).name
        target = self.temp_dir / f"client_temp_{self.client_id}_{safe_name}"
        try:
            write_and_open(target, message.data, message.media_type)
        except OSError as exc:
            self._log_status(f"Error playing media: {exc}")