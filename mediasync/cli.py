"""Command line entry point: run a media server, a media client or the web interface."""

from __future__ import annotations

import asyncio
import logging
import re
import sys
from typing import Optional, Sequence

from .client import MediaClient
from .server import MediaServer
from .web_server import DEFAULT_WEB_PORT, WebServer

PROG = "mediasync"

_PORT_PATTERN = re.compile(r"\+?[0-9]+")


class _ConsoleHandler(logging.Handler):
    """Writes each record to whatever sys.stdout is at that moment."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            sys.stdout.write(self.format(record) + "\n")
            sys.stdout.flush()
        except Exception:
            self.handleError(record)


def _configure_logging() -> None:
    root = logging.getLogger()
    if not root.handlers:
        handler = _ConsoleHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    root.setLevel(logging.INFO)


def _parse_port(text: str) -> int:
    if not _PORT_PATTERN.fullmatch(text):
        raise ValueError(f"invalid port number: {text!r}")
    port = int(text)
    if port > 65535:
        raise ValueError(f"port number out of range: {text!r}")
    return port


def _usage_text() -> str:
    return "\n".join(
        [
            "Usage:",
            f"  {PROG} server <port> <media_directory>",
            f"  {PROG} client <server_ip:port> <client_id>",
            f"  {PROG} web [port]",
        ]
    )


def _error(exc: BaseException) -> int:
    print(f"Error: {exc}", file=sys.stderr)
    return 1


def _run_server(args: list[str]) -> int:
    if len(args) < 3:
        print(f"Usage: {PROG} server <port> <media_directory>")
        return 0
    try:
        port = _parse_port(args[1])
    except ValueError as exc:
        return _error(exc)
    print("Starting MEDIA SERVER - Media will play on HOST device")
    _configure_logging()
    server = MediaServer()
    try:
        server.load_media_path(args[2])
        server.start_server(port)
    except OSError as exc:
        return _error(exc)
    except KeyboardInterrupt:
        server.shutdown()
    return 0


def _run_client(args: list[str]) -> int:
    if len(args) < 3:
        print(f"Usage: {PROG} client <server_ip:port> <client_id>")
        return 0
    print("Starting MEDIA CLIENT - Media will play on CLIENT device")
    _configure_logging()
    client = MediaClient(args[1], args[2])
    try:
        client.connect()
    except (OSError, ValueError, RuntimeError) as exc:
        return _error(exc)
    except KeyboardInterrupt:
        client.close()
    return 0


def _run_web(args: list[str]) -> int:
    try:
        port = _parse_port(args[1]) if len(args) > 1 else DEFAULT_WEB_PORT
    except ValueError as exc:
        return _error(exc)
    print(f"Starting web interface on port {port}")
    _configure_logging()
    try:
        asyncio.run(WebServer().start_web_server(port))
    except OSError as exc:
        return _error(exc)
    except KeyboardInterrupt:
        return 0
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command given in argv (defaults to the process arguments)."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(_usage_text())
        return 0
    commands = {"server": _run_server, "client": _run_client, "web": _run_web}
    runner = commands.get(args[0])
    if runner is None:
        print("Invalid command. Use 'server', 'client', or 'web'")
        return 0
    return runner(args)


if __name__ == "__main__":
    sys.exit(main())