"""TCP media server that holds media files and serves them to joined clients."""

from __future__ import annotations

import logging
import os
import socket
import sys
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from .media import MediaFile, load_media_file, write_and_open
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

_ACCEPT_POLL_SECONDS = 0.2


def _format_address(address: tuple) -> str:
    host, port = address[0], address[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class _Connection:
    """One accepted client socket with serialised writes."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self._send_lock = threading.Lock()
        self.address = self.peer_address() or "unknown"

    def peer_address(self) -> Optional[str]:
        try:
            return _format_address(self.sock.getpeername())
        except OSError:
            return None

    def send(self, message: Message) -> None:
        line = (encode_message(message) + "\n").encode("utf-8")
        with self._send_lock:
            try:
                self.sock.sendall(line)
            except OSError as exc:
                logger.error("Error sending message: %s", exc)

    def close(self) -> None:
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass


class MediaServer:
    """Serves loaded media files to clients over line-delimited JSON on TCP."""

    def __init__(self, *, play_on_host: bool = True, temp_dir: str | os.PathLike = ".") -> None:
        self.media_files: dict[str, MediaFile] = {}
        self.current_media: Optional[str] = None
        self.is_playing = False
        self.play_on_host = play_on_host
        self.temp_dir = Path(temp_dir)
        self.port: Optional[int] = None
        self._clients: dict[str, _Connection] = {}
        self._connections: set[_Connection] = set()
        self._lock = threading.RLock()
        self._status_callback: Optional[StatusCallback] = None
        self._listener: Optional[socket.socket] = None
        self._stopping = threading.Event()

    def set_status_callback(self, callback: Optional[StatusCallback]) -> None:
        """Install a function that receives every status message."""
        self._status_callback = callback

    def _log_status(self, message: str) -> None:
        logger.info("%s", message)
        callback = self._status_callback
        if callback is not None:
            callback(message)

    def load_media_path(self, path: str | os.PathLike) -> list[str]:
        """Load one file or every supported file in a directory.

        Returns the names of the files loaded by this call. Raises
        FileNotFoundError if the path is neither a file nor a directory;
        errors reading a supported file propagate.
        """
        target = Path(path)
        loaded: list[str] = []
        with self._lock:
            if target.is_file():
                candidates = [target]
            elif target.is_dir():
                candidates = sorted(entry for entry in target.iterdir() if entry.is_file())
            else:
                raise FileNotFoundError(f"Path '{path}' is not a valid file or directory")

            for candidate in candidates:
                media = load_media_file(candidate)
                if media is None:
                    continue
                self.media_files[media.filename] = media
                loaded.append(media.filename)
                self._log_status(f"Loaded media file: {media.filename} ({media.size} bytes)")

            if self.media_files:
                self._log_status(f"Loaded {len(self.media_files)} media file(s)")
            else:
                self._log_status("No supported media files found in the specified path.")
        return loaded

    def listen(self, port: int) -> int:
        """Bind to all interfaces on port and return the port actually bound."""
        if self._listener is not None:
            raise RuntimeError("server is already listening")
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            if not sys.platform.startswith("win"):
                listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind(("0.0.0.0", port))
            listener.listen()
        except OSError:
            listener.close()
            raise
        listener.settimeout(_ACCEPT_POLL_SECONDS)
        self._stopping.clear()
        self._listener = listener
        self.port = listener.getsockname()[1]
        self._log_status(f"Media server started on port {self.port}")
        self._log_status("Waiting for clients to connect...")
        return self.port

    def serve_forever(self) -> None:
        """Accept clients until shutdown() is called, one thread per client."""
        listener = self._listener
        if listener is None:
            raise RuntimeError("listen() must be called before serve_forever()")
        while not self._stopping.is_set():
            try:
                client_sock, _ = listener.accept()
            except TimeoutError:
                continue
            except OSError as exc:
                if self._stopping.is_set():
                    break
                logger.error("Error accepting connection: %s", exc)
                continue
            threading.Thread(
                target=self._handle_client, args=(client_sock,), daemon=True
            ).start()

    def start_server(self, port: int) -> None:
        """Listen on port and serve clients until shutdown()."""
        self.listen(port)
        self.serve_forever()

    def shutdown(self) -> None:
        """Stop accepting clients and close every open connection."""
        self._stopping.set()
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.close()
        with self._lock:
            connections = list(self._connections)
            self._clients.clear()
        for connection in connections:
            connection.close()

    def _handle_client(self, sock: socket.socket) -> None:
        sock.settimeout(None)
        connection = _Connection(sock)
        with self._lock:
            self._connections.add(connection)
        self._log_status(f"New client connected: {connection.address}")
        client_id = ""
        reader = sock.makefile("rb")
        try:
            while True:
                try:
                    raw = reader.readline()
                except OSError as exc:
                    logger.error("Error reading from client %s: %s", connection.address, exc)
                    break
                if not raw:
                    self._log_status(f"Client {connection.address} disconnected")
                    break
                if not raw.strip():
                    continue
                try:
                    message = decode_message(raw)
                except ProtocolError:
                    logger.warning("Failed to parse message: %r", raw.strip()[:200])
                    continue
                if isinstance(message, Join):
                    client_id = message.client_id
                    with self._lock:
                        self._clients[client_id] = connection
                self._process_message(message, connection)
        finally:
            with self._lock:
                if client_id and self._clients.get(client_id) is connection:
                    del self._clients[client_id]
                self._connections.discard(connection)
            reader.close()
            sock.close()

    def _process_message(self, message: Message, connection: _Connection) -> None:
        if isinstance(message, Join):
            connection.send(Welcome(client_id=message.client_id))
            self._log_status(f"Client {message.client_id} joined")
        elif isinstance(message, RequestMediaList):
            with self._lock:
                files = list(self.media_files)
            connection.send(MediaList(files=files))
        elif isinstance(message, RequestMedia):
            self._serve_media(message.filename, connection)

    def _serve_media(self, filename: str, connection: _Connection) -> None:
        with self._lock:
            media = self.media_files.get(filename)
            if media is None:
                connection.send(ErrorMessage(message=f"Media file '{filename}' not found"))
                return
            timestamp = int(time.time())
            self._log_status(f"Client requested media: {filename} ({media.size} bytes)")
            self._log_status(
                f"Sending media data to CLIENT for: {filename} ({media.size} bytes)"
            )
            connection.send(
                MediaData(
                    filename=media.filename,
                    data=media.data,
                    media_type=media.media_type,
                    timestamp=timestamp,
                )
            )
            self.current_media = filename
            self.is_playing = True

            if self.play_on_host:
                try:
                    write_and_open(
                        self.temp_dir / f"host_temp_{media.filename}",
                        media.data,
                        media.media_type,
                    )
                except OSError as exc:
                    self._log_status(f"Error playing media on host: {exc}")
                else:
                    self._log_status(f"Started playing {filename} on HOST")

            self._broadcast(PlayCommand(filename=filename, timestamp=timestamp), exclude=connection)

    def _broadcast(self, message: Message, exclude: Optional[_Connection] = None) -> None:
        with self._lock:
            targets = [conn for conn in self._clients.values() if conn is not exclude]
        for connection in targets:
            connection.send(message)

    def play_media(self, filename: str) -> None:
        """Tell every joined client to play filename and mark it as current."""
        command = PlayCommand(filename=filename, timestamp=int(time.time()))
        with self._lock:
            self._broadcast(command)
            self.current_media = filename
            self.is_playing = True
        logger.info("Playing: %s", filename)

    def pause_media(self) -> None:
        """Tell every joined client to pause."""
        with self._lock:
            self._broadcast(PauseCommand())
            self.is_playing = False
        logger.info("Media paused")

    def get_connected_clients(self) -> list[tuple[str, str]]:
        """Return (client id, peer address) for every joined, still connected client."""
        with self._lock:
            items = list(self._clients.items())
        result = []
        for client_id, connection in items:
            address = connection.peer_address()
            if address is not None:
                result.append((client_id, address))
        return result

    def disconnect_client(self, client_id: str) -> bool:
        """Close the connection of a joined client; return False if it is unknown."""
        with self._lock:
            connection = self._clients.pop(client_id, None)
        if connection is None:
            logger.info("Client %s not found", client_id)
            return False
        connection.close()
        logger.info("Disconnected client: %s", client_id)
        return True