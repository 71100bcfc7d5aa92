"""HTTP control panel: serves the web interface and a JSON command API."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import os
import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from aiohttp import web

from .client import MediaClient
from .media import media_type_from_filename
from .server import MediaServer

logger = logging.getLogger(__name__)

DEFAULT_WEB_PORT = 3000
DEFAULT_MEDIA_PORT = 8080
MAX_LOG_MESSAGES = 100
_DUMMY_MEDIA_SIZE = 1000
_U64_LIMIT = 2**64

_FALLBACK_INDEX = """<!DOCTYPE html>
<html>
<head>
    <title>Media Sync - File not found</title>
</head>
<body>
    <h1>Media Sync</h1>
    <p>Please make sure index.html, style.css, and script.js are in the same directory as the executable.</p>
</body>
</html>"""

# (file name, content type, text served when the file cannot be read)
_STATIC_FILES: dict[str, tuple[str, str, str]] = {
    "/": ("index.html", "text/html", _FALLBACK_INDEX),
    "/style.css": ("style.css", "text/css", "/* CSS file not found */"),
    "/script.js": ("script.js", "application/javascript", "// JavaScript file not found"),
}


@dataclass
class WebResponse:
    """Outcome of one API command."""

    success: bool
    error: Optional[str] = None
    data: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "error": self.error, "data": self.data}


@dataclass
class FileInfo:
    """A media file loaded by the running media server."""

    name: str
    size: int
    media_type: str


@dataclass
class ClientInfo:
    """A client joined to the running media server."""

    id: str
    address: str
    connected_time: str


@dataclass
class LogMessage:
    """One entry of the log shown in the web interface."""

    timestamp: str
    level: str
    message: str


def _clock() -> str:
    return datetime.now(timezone.utc).strftime("%H:%M:%S")


def _ok(data: Optional[dict[str, Any]] = None) -> WebResponse:
    return WebResponse(success=True, data=data)


def _fail(error: str) -> WebResponse:
    return WebResponse(success=False, error=error)


def _str_param(params: Any, key: str) -> str:
    value = params.get(key) if isinstance(params, dict) else None
    return value if isinstance(value, str) else ""


def _port_param(params: Any) -> int:
    value = params.get("port") if isinstance(params, dict) else None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < _U64_LIMIT:
        return DEFAULT_MEDIA_PORT
    return value & 0xFFFF


class WebServer:
    """Controls a media server and a media client through JSON commands over HTTP."""

    def __init__(
        self,
        *,
        static_dir: str | os.PathLike = ".",
        play_media: bool = True,
        files_timeout: float = 5.0,
    ) -> None:
        self.static_dir = Path(static_dir)
        self.play_media = play_media
        self.files_timeout = files_timeout
        self.media_server: Optional[MediaServer] = None
        self.media_client: Optional[MediaClient] = None
        self.loaded_files: list[FileInfo] = []
        self.available_files: list[str] = []
        self._logs: deque[LogMessage] = deque(maxlen=MAX_LOG_MESSAGES)
        self._log_lock = threading.Lock()
        self._handlers: dict[str, Callable[[Any], Awaitable[WebResponse]]] = {
            "start-server": self._start_server,
            "stop-server": self._stop_server,
            "get-connected-clients": self._get_connected_clients,
            "get-logs": self._get_logs,
            "disconnect-specific-client": self._disconnect_specific_client,
            "connect-client": self._connect_client,
            "disconnect-client": self._disconnect_client,
            "request-media": self._request_media,
            "stream-media": self._stream_media,
        }

    @property
    def log_messages(self) -> list[LogMessage]:
        """The most recent log entries, oldest first."""
        with self._log_lock:
            return list(self._logs)

    def add_log_message(self, level: str, message: str) -> None:
        """Record a log entry, keeping only the most recent ones."""
        entry = LogMessage(timestamp=_clock(), level=level, message=message)
        with self._log_lock:
            self._logs.append(entry)
        logger.info("[%s] %s: %s", entry.timestamp, level, message)

    async def handle_command(self, command: str, params: Any) -> WebResponse:
        """Run one API command and return its response."""
        handler = self._handlers.get(command)
        if handler is None:
            return _fail("Unknown command")
        return await handler(params)

    def _shutdown_media_server(self) -> None:
        server, self.media_server = self.media_server, None
        if server is not None:
            server.shutdown()

    def _close_media_client(self) -> None:
        client, self.media_client = self.media_client, None
        if client is not None:
            client.close()

    def _serve(self, server: MediaServer) -> None:
        try:
            server.serve_forever()
        except Exception as exc:  # the accept loop must not die silently
            logger.error("Server error: %s", exc)

    async def _start_server(self, params: Any) -> WebResponse:
        port = _port_param(params)
        directory = _str_param(params, "directory")

        raw = json.dumps(params, separators=(",", ":"), ensure_ascii=False, default=str)
        self.add_log_message("INFO", f"Raw params: {raw}")
        self.add_log_message("INFO", f"Extracted directory: '{directory}'")
        self.add_log_message("INFO", f"Directory length: {len(directory.encode('utf-8'))}")

        if not directory:
            self.add_log_message("ERROR", "Directory path is required")
            return _fail("Directory path is required")

        cleaned = directory.strip('"').strip()
        self.add_log_message("INFO", f"Cleaned directory: '{cleaned}'")

        server = MediaServer(play_on_host=self.play_media)
        server.set_status_callback(lambda message: self.add_log_message("INFO", message))

        try:
            if not cleaned:
                raise FileNotFoundError(f"Path '{cleaned}' is not a valid file or directory")
            await asyncio.to_thread(server.load_media_path, cleaned)
        except OSError as exc:
            error = f"Failed to load media files: {exc}"
            self.add_log_message("ERROR", error)
            return _fail(error)

        files = [
            FileInfo(name=media.filename, size=media.size, media_type=media.media_type)
            for media in server.media_files.values()
        ]

        self._shutdown_media_server()
        try:
            await asyncio.to_thread(server.listen, port)
        except OSError as exc:
            error = f"Failed to start server: {exc}"
            self.add_log_message("ERROR", error)
            return _fail(error)

        self.loaded_files = files
        self.media_server = server
        self.add_log_message("INFO", f"Media server started on port {port}")
        self.add_log_message("INFO", "Waiting for clients to connect...")
        self.add_log_message("INFO", f"Loaded {len(files)} media file(s)")

        threading.Thread(target=self._serve, args=(server,), daemon=True).start()

        return _ok({"files": [asdict(info) for info in files], "clients": []})

    async def _stop_server(self, params: Any) -> WebResponse:
        self.add_log_message("INFO", "Stopping media server...")
        await asyncio.to_thread(self._shutdown_media_server)
        self.loaded_files = []
        self.add_log_message("INFO", "Media server stopped successfully")
        return _ok()

    async def _get_connected_clients(self, params: Any) -> WebResponse:
        server = self.media_server
        if server is None:
            return _fail("Server is not running")
        now = _clock()
        clients = [
            ClientInfo(id=client_id, address=address, connected_time=now)
            for client_id, address in server.get_connected_clients()
        ]
        return _ok({"clients": [asdict(info) for info in clients]})

    async def _get_logs(self, params: Any) -> WebResponse:
        return _ok({"logs": [asdict(entry) for entry in self.log_messages]})

    async def _disconnect_specific_client(self, params: Any) -> WebResponse:
        client_id = _str_param(params, "clientId")
        if not client_id:
            return _fail("Client ID is required")
        server = self.media_server
        if server is None:
            return _fail("Server is not running")
        if not server.disconnect_client(client_id):
            return _fail(f"Client {client_id} not found")
        message = f"Client {client_id} disconnected"
        self.add_log_message("INFO", message)
        return _ok({"message": message})

    async def _connect_client(self, params: Any) -> WebResponse:
        server_address = _str_param(params, "serverAddress")
        client_id = _str_param(params, "clientId")
        if not server_address or not client_id:
            return _fail("Server address and client ID are required")

        client = MediaClient(
            server_address,
            client_id,
            auto_request_first=False,
            play_media=self.play_media,
        )
        files_received = threading.Event()
        client.set_files_callback(lambda files: files_received.set())
        client.set_status_callback(lambda message: self.add_log_message("INFO", message))

        try:
            await asyncio.to_thread(client.connect_in_background)
        except (OSError, ValueError, RuntimeError) as exc:
            return _fail(f"Failed to connect: {exc}")

        await asyncio.to_thread(files_received.wait, self.files_timeout)
        files = list(client.available_files)

        self._close_media_client()
        self.media_client = client
        self.available_files = files
        return _ok({"files": files})

    async def _disconnect_client(self, params: Any) -> WebResponse:
        self._close_media_client()
        self.available_files = []
        return _ok()

    async def _request_media(self, params: Any) -> WebResponse:
        filename = _str_param(params, "filename")
        if not filename:
            return _fail("Filename is required")
        media_type = media_type_from_filename(filename) or "unknown"
        encoded = base64.b64encode(bytes(_DUMMY_MEDIA_SIZE)).decode("ascii")
        return _ok(
            {"mediaData": {"filename": filename, "data": encoded, "mediaType": media_type}}
        )

    async def _stream_media(self, params: Any) -> WebResponse:
        filename = _str_param(params, "filename")
        if not filename:
            return _fail("Filename is required")
        return _ok()

    def _static_handler(self, path: str) -> Callable[[web.Request], Awaitable[web.Response]]:
        name, content_type, fallback = _STATIC_FILES[path]

        async def handler(request: web.Request) -> web.Response:
            try:
                text = (self.static_dir / name).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                text = fallback
            return web.Response(text=text, content_type=content_type, charset="utf-8")

        return handler

    async def _api(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except (ValueError, UnicodeDecodeError):
            return web.Response(status=400, text="Request body deserialize error")
        if (
            not isinstance(body, dict)
            or not isinstance(body.get("command"), str)
            or "params" not in body
        ):
            return web.Response(status=400, text="Request body deserialize error")
        response = await self.handle_command(body["command"], body["params"])
        return web.json_response(response.to_dict())

    def create_app(self) -> web.Application:
        """Build the aiohttp application with static pages and the API route."""

        @web.middleware
        async def allow_any_origin(request: web.Request, handler: Any) -> web.StreamResponse:
            response = await handler(request)
            response.headers["Access-Control-Allow-Origin"] = "*"
            return response

        app = web.Application(middlewares=[allow_any_origin])
        for path in _STATIC_FILES:
            app.router.add_get(path, self._static_handler(path))
        app.router.add_post("/api", self._api)
        return app

    async def start_web_server(self, port: int = DEFAULT_WEB_PORT) -> None:
        """Serve the web interface on all interfaces until cancelled."""
        runner = web.AppRunner(self.create_app())
        await runner.setup()
        try:
            site = web.TCPSite(runner, "0.0.0.0", port)
            await site.start()
            logger.info("Web server starting on http://0.0.0.0:%d", port)
            await asyncio.Event().wait()
        finally:
            await runner.cleanup()
            self._close_media_client()
            self._shutdown_media_server()