"""Desktop control panel for running a media server and a media client."""

from __future__ import annotations

import argparse
import enum
import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from .client import MediaClient
from .server import MediaServer

logger = logging.getLogger(__name__)

_PORT_PATTERN = re.compile(r"\+?[0-9]+")


class Tab(enum.Enum):
    """The pages of the control panel."""

    SERVER = "Server"
    CLIENT = "Client"


def _parse_port(text: str) -> Optional[int]:
    if not _PORT_PATTERN.fullmatch(text):
        return None
    port = int(text)
    return port if port <= 65535 else None


@dataclass
class AppState:
    """State behind the control panel: form fields, running services and status log."""

    server_port: str = ""
    media_directory: str = ""
    server_address: str = ""
    client_id: str = ""
    play_media: bool = True
    server_running: bool = False
    loaded_media_files: list[str] = field(default_factory=list)
    client_connected: bool = False
    available_files: list[str] = field(default_factory=list)
    current_tab: Tab = Tab.SERVER
    status_messages: list[str] = field(default_factory=list)
    selected_media_file: Optional[str] = None
    server_handle: Optional[MediaServer] = field(default=None, repr=False)
    client_handle: Optional[MediaClient] = field(default=None, repr=False)

    def _push(self, message: str) -> None:
        self.status_messages.append(message)

    def start_server(self) -> None:
        """Load the media directory and start a media server on the configured port."""
        if self.server_running:
            return
        port = _parse_port(self.server_port)
        if port is None:
            self._push("Invalid port number")
            return

        server = MediaServer(play_on_host=self.play_media)
        server.set_status_callback(lambda message: logger.info("Server: %s", message))

        if self.media_directory:
            try:
                self.loaded_media_files = server.load_media_path(self.media_directory)
            except OSError as exc:
                logger.warning("Could not load media: %s", exc)

        try:
            server.listen(port)
        except OSError as exc:
            self._push(f"Server error: {exc}")
            return

        threading.Thread(target=self._serve, args=(server,), daemon=True).start()

        self.server_handle = server
        self.server_running = True
        self._push("Server started successfully")

    def _serve(self, server: MediaServer) -> None:
        try:
            server.serve_forever()
        except (OSError, RuntimeError) as exc:
            self._push(f"Server error: {exc}")

    def stop_server(self) -> None:
        """Shut the media server down."""
        server, self.server_handle = self.server_handle, None
        if server is not None:
            server.shutdown()
        self.server_running = False
        self._push("Server stopped")

    def connect_client(self) -> None:
        """Connect a media client to the configured server address."""
        if self.client_connected:
            return
        if not self.server_address or not self.client_id:
            self._push("Please fill in server address and client ID")
            return

        client = MediaClient(
            self.server_address,
            self.client_id,
            auto_request_first=False,
            play_media=self.play_media,
        )
        client.set_status_callback(lambda message: logger.info("Client: %s", message))

        def receive_files(files: list[str]) -> None:
            if self.client_handle is client:
                self.available_files = list(files)

        client.set_files_callback(receive_files)

        self.client_handle = client
        self.client_connected = True
        threading.Thread(target=self._run_client, args=(client,), daemon=True).start()
        self._push("Connected to server")

    def _run_client(self, client: MediaClient) -> None:
        try:
            client.connect()
        except (OSError, ValueError, RuntimeError) as exc:
            self._push(f"Client error: {exc}")

    def disconnect_client(self) -> None:
        """Close the client connection and forget the server's file list."""
        client, self.client_handle = self.client_handle, None
        if client is not None:
            client.close()
        self.client_connected = False
        self.available_files.clear()
        self._push("Disconnected from server")

    def request_media_file(self, filename: str) -> None:
        """Ask the connected server for one media file."""
        client = self.client_handle
        if client is None:
            return
        self.selected_media_file = filename
        self._push(f"Requesting media file: {filename}")
        try:
            client.request_media(filename)
        except (RuntimeError, OSError) as exc:
            self._push(f"Request failed: {exc}")

    def server_status(self) -> str:
        return "Running" if self.server_running else "Stopped"

    def client_status(self) -> str:
        return "Connected" if self.client_connected else "Disconnected"


class _ControlPanel:
    """Tk window that edits and displays an AppState."""

    _REFRESH_MS = 200

    def __init__(self, root: Any, state: AppState) -> None:
        import tkinter as tk
        from tkinter import filedialog, ttk

        self._tk = tk
        self._filedialog = filedialog
        self.root = root
        self.state = state
        self._shown: dict[str, tuple[str, ...]] = {}
        self._shown_status = 0

        root.title("Media Streaming App")
        root.geometry("800x600")
        root.protocol("WM_DELETE_WINDOW", self._on_close)

        ttk.Label(
            root, text="Media Streaming Server & Client", font=("TkDefaultFont", 14, "bold")
        ).pack(anchor="w", padx=8, pady=4)

        self.notebook = ttk.Notebook(root)
        self.notebook.pack(fill="both", expand=True, padx=8)
        server_frame = ttk.Frame(self.notebook, padding=8)
        client_frame = ttk.Frame(self.notebook, padding=8)
        self.notebook.add(server_frame, text=Tab.SERVER.value)
        self.notebook.add(client_frame, text=Tab.CLIENT.value)
        self.notebook.bind("<<NotebookTabChanged>>", self._on_tab_changed)

        self.port_var = tk.StringVar(value=state.server_port)
        self.directory_var = tk.StringVar(value=state.media_directory)
        self.address_var = tk.StringVar(value=state.server_address)
        self.client_id_var = tk.StringVar(value=state.client_id)

        self._build_server_tab(server_frame, ttk)
        self._build_client_tab(client_frame, ttk)

        ttk.Label(root, text="Status Messages:").pack(anchor="w", padx=8)
        status_frame = ttk.Frame(root)
        status_frame.pack(fill="x", padx=8, pady=(0, 8))
        self.status_list = tk.Listbox(status_frame, height=8)
        scrollbar = ttk.Scrollbar(status_frame, command=self.status_list.yview)
        self.status_list.configure(yscrollcommand=scrollbar.set)
        self.status_list.pack(side="left", fill="both", expand=True)
        scrollbar.pack(side="right", fill="y")

        self._refresh()

    def _build_server_tab(self, frame: Any, ttk: Any) -> None:
        ttk.Label(frame, text="Media Server", font=("TkDefaultFont", 12, "bold")).grid(
            row=0, column=0, columnspan=3, sticky="w"
        )
        ttk.Label(frame, text="Port:").grid(row=1, column=0, sticky="w")
        ttk.Entry(frame, textvariable=self.port_var).grid(row=1, column=1, sticky="we")
        ttk.Label(frame, text="Media Directory:").grid(row=2, column=0, sticky="w")
        ttk.Entry(frame, textvariable=self.directory_var).grid(row=2, column=1, sticky="we")
        ttk.Button(frame, text="Browse", command=self._browse).grid(row=2, column=2)
        ttk.Button(frame, text="Start Server", command=self._start_server).grid(
            row=3, column=0, sticky="w"
        )
        ttk.Button(frame, text="Stop Server", command=self._stop_server).grid(
            row=3, column=1, sticky="w"
        )
        self.server_status_label = ttk.Label(frame)
        self.server_status_label.grid(row=4, column=0, columnspan=3, sticky="w")
        ttk.Label(frame, text="Loaded Media Files:").grid(row=5, column=0, sticky="w")
        self.loaded_list = self._tk.Listbox(frame, height=8)
        self.loaded_list.grid(row=6, column=0, columnspan=3, sticky="nsew")
        frame.columnconfigure(1, weight=1)
        frame.rowconfigure(6, weight=1)

    def _build_client_tab(self, frame: Any, ttk: Any) -> None:
        ttk.Label(frame, text="Media Client", font=("TkDefaultFont", 12, "bold")).grid(
            row=0, column=0, columnspan=2, sticky="w"
        )
        ttk.Label(frame, text="Server Address:").grid(row=1, column=0, sticky="w")
        ttk.Entry(frame, textvariable=self.address_var).grid(row=1, column=1, sticky="we")
        ttk.Label(frame, text="Client ID:").grid(row=2, column=0, sticky="w")
        ttk.Entry(frame, textvariable=self.client_id_var).grid(row=2, column=1, sticky="we")
        ttk.Button(frame, text="Connect", command=self._connect).grid(row=3, column=0, sticky="w")
        ttk.Button(frame, text="Disconnect", command=self._disconnect).grid(
            row=3, column=1, sticky="w"
        )
        self.client_status_label = ttk.Label(frame)
        self.client_status_label.grid(row=4, column=0, columnspan=2, sticky="w")
        ttk.Label(frame, text="Available Media Files:").grid(row=5, column=0, sticky="w")
        self.files_list = self._tk.Listbox(frame, height=8)
        self.files_list.grid(row=6, column=0, columnspan=2, sticky="nsew")
        ttk.Button(frame, text="Request", command=self._request).grid(row=7, column=0, sticky="w")
        frame.columnconfigure(1, weight=1)
        frame.rowconfigure(6, weight=1)

    def _sync_inputs(self) -> None:
        self.state.server_port = self.port_var.get()
        self.state.media_directory = self.directory_var.get()
        self.state.server_address = self.address_var.get()
        self.state.client_id = self.client_id_var.get()

    def _browse(self) -> None:
        path = self._filedialog.askdirectory()
        if path:
            self.directory_var.set(path)

    def _start_server(self) -> None:
        self._sync_inputs()
        if not self.state.server_running:
            self.state.start_server()

    def _stop_server(self) -> None:
        if self.state.server_running:
            self.state.stop_server()

    def _connect(self) -> None:
        self._sync_inputs()
        if not self.state.client_connected:
            self.state.connect_client()

    def _disconnect(self) -> None:
        if self.state.client_connected:
            self.state.disconnect_client()

    def _request(self) -> None:
        selection = self.files_list.curselection()
        if selection:
            self.state.request_media_file(self.files_list.get(selection[0]))

    def _on_tab_changed(self, _event: Any) -> None:
        index = self.notebook.index(self.notebook.select())
        self.state.current_tab = list(Tab)[index]

    def _fill(self, key: str, listbox: Any, items: tuple[str, ...]) -> None:
        if self._shown.get(key) == items:
            return
        self._shown[key] = items
        listbox.delete(0, "end")
        for item in items:
            listbox.insert("end", item)

    def _refresh(self) -> None:
        state = self.state
        self.server_status_label.configure(text=f"Server Status: {state.server_status()}")
        self.client_status_label.configure(text=f"Client Status: {state.client_status()}")
        self._fill("loaded", self.loaded_list, tuple(f"• {name}" for name in state.loaded_media_files))
        self._fill("files", self.files_list, tuple(state.available_files))
        messages = state.status_messages[self._shown_status:]
        for message in messages:
            self.status_list.insert("end", message)
        if messages:
            self._shown_status += len(messages)
            self.status_list.see("end")
        self.root.after(self._REFRESH_MS, self._refresh)

    def _on_close(self) -> None:
        if self.state.server_running:
            self.state.stop_server()
        if self.state.client_connected:
            self.state.disconnect_client()
        self.root.destroy()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Open the control panel window."""
    parser = argparse.ArgumentParser(
        prog="mediasync-gui",
        description="Control panel for a media sync server and client.",
    )
    parser.parse_args(argv)

    import tkinter as tk

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    state = AppState(
        server_port="8080",
        server_address="127.0.0.1:8080",
        client_id="client1",
    )
    root = tk.Tk()
    _ControlPanel(root, state)
    root.mainloop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())