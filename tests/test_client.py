import socket
import threading
from unittest import mock

import pytest

from mediasync.client import MediaClient
from mediasync.server import MediaServer

CLIP = b"\x00\x01video-bytes"
SONG = b"ID3-song-bytes"


class _Collector:
    def __init__(self):
        self.items = []
        self._cond = threading.Condition()

    def __call__(self, item):
        with self._cond:
            self.items.append(item)
            self._cond.notify_all()

    def wait_for(self, predicate, timeout=5.0):
        with self._cond:
            return self._cond.wait_for(lambda: any(predicate(i) for i in self.items), timeout)


@pytest.fixture
def media_server(tmp_path):
    media_dir = tmp_path / "media"
    media_dir.mkdir()
    (media_dir / "clip.mp4").write_bytes(CLIP)
    (media_dir / "song.mp3").write_bytes(SONG)
    server = MediaServer(play_on_host=False, temp_dir=tmp_path)
    server.load_media_path(media_dir)
    port = server.listen(0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server, port
    server.shutdown()
    thread.join(5)


def _client(port, tmp_path, **kwargs):
    kwargs.setdefault("play_media", False)
    client = MediaClient(f"127.0.0.1:{port}", "c1", temp_dir=tmp_path, **kwargs)
    statuses = _Collector()
    client.set_status_callback(statuses)
    return client, statuses


def test_files_callback_receives_server_list(media_server, tmp_path):
    _, port = media_server
    client, statuses = _client(port, tmp_path, auto_request_first=False)
    files = _Collector()
    client.set_files_callback(files)
    client.connect_in_background()
    try:
        assert files.wait_for(lambda f: True)
        assert files.items[0] == ["clip.mp4", "song.mp3"]
        assert client.available_files == ["clip.mp4", "song.mp3"]
        assert f"Connected to media server at 127.0.0.1:{port}" in statuses.items
        assert "Welcome! Client ID: c1" in statuses.items
        assert client.received_media == {}
    finally:
        client.close()


def test_auto_request_first_receives_media(media_server, tmp_path):
    _, port = media_server
    client, statuses = _client(port, tmp_path)
    client.connect_in_background()
    try:
        assert statuses.wait_for(lambda s: s.startswith("Received media: clip.mp4"))
        media = client.received_media["clip.mp4"]
        assert media.data == CLIP
        assert media.media_type == "video"
        assert "Requesting: clip.mp4" in statuses.items
        assert not (tmp_path / "client_temp_c1_clip.mp4").exists()
    finally:
        client.close()


def test_received_media_written_to_temp_file(media_server, tmp_path):
    _, port = media_server
    client, statuses = _client(port, tmp_path, play_media=True)
    with mock.patch("subprocess.Popen"):
        client.connect_in_background()
        try:
            assert statuses.wait_for(lambda s: s.startswith("Received media: clip.mp4"))
            target = tmp_path / "client_temp_c1_clip.mp4"
            assert client.received_media["clip.mp4"].data == CLIP
            client.close()
            assert statuses.wait_for(lambda s: False, timeout=0.2) is False
            assert target.read_bytes() == CLIP
        finally:
            client.close()


def test_request_missing_media_reports_server_error(media_server, tmp_path):
    _, port = media_server
    client, statuses = _client(port, tmp_path, auto_request_first=False)
    client.connect_in_background()
    try:
        assert statuses.wait_for(lambda s: s.startswith("Received 2 media files"))
        client.request_media("nope.mp4")
        assert statuses.wait_for(lambda s: s == "Server error: Media file 'nope.mp4' not found")
    finally:
        client.close()


def test_request_media_by_name(media_server, tmp_path):
    _, port = media_server
    client, statuses = _client(port, tmp_path, auto_request_first=False)
    client.connect_in_background()
    try:
        assert statuses.wait_for(lambda s: s.startswith("Received 2 media files"))
        client.request_media("song.mp3")
        assert statuses.wait_for(lambda s: s.startswith("Received media: song.mp3"))
        assert client.received_media["song.mp3"].data == SONG
        assert client.received_media["song.mp3"].media_type == "audio"
    finally:
        client.close()


def test_pause_and_play_commands_are_reported(media_server, tmp_path):
    server, port = media_server
    client, statuses = _client(port, tmp_path, auto_request_first=False)
    client.connect_in_background()
    try:
        assert statuses.wait_for(lambda s: s == "Welcome! Client ID: c1")
        server.pause_media()
        assert statuses.wait_for(lambda s: s == "Pause command received")
        server.play_media("song.mp3")
        assert statuses.wait_for(
            lambda s: s.startswith("Play command received for: song.mp3 at timestamp ")
        )
    finally:
        client.close()


def test_server_disconnect_ends_blocking_connect(media_server, tmp_path):
    server, port = media_server
    client, statuses = _client(port, tmp_path, auto_request_first=False)
    thread = threading.Thread(target=client.connect, daemon=True)
    thread.start()
    assert statuses.wait_for(lambda s: s == "Welcome! Client ID: c1")
    assert server.disconnect_client("c1") is True
    thread.join(5)
    assert not thread.is_alive()
    assert "Server disconnected" in statuses.items
    assert client.connected is False


def test_close_stops_background_thread(media_server, tmp_path):
    _, port = media_server
    client, statuses = _client(port, tmp_path, auto_request_first=False)
    thread = client.connect_in_background()
    assert statuses.wait_for(lambda s: s == "Welcome! Client ID: c1")
    client.close()
    thread.join(5)
    assert not thread.is_alive()
    with pytest.raises(RuntimeError):
        client.request_media("clip.mp4")


def test_request_media_without_connection_raises(tmp_path):
    client = MediaClient("127.0.0.1:1", "c1", temp_dir=tmp_path)
    with pytest.raises(RuntimeError):
        client.request_media("clip.mp4")


def test_connect_refused_raises_oserror(tmp_path):
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    client = MediaClient(f"127.0.0.1:{port}", "c1", temp_dir=tmp_path)
    with pytest.raises(OSError):
        client.connect()
    assert client.connected is False


@pytest.mark.parametrize("address", ["localhost", "localhost:notaport", ":8080", "host:70000", "[::1]8080"])
def test_invalid_address_raises_value_error(address, tmp_path):
    client = MediaClient(address, "c1", temp_dir=tmp_path)
    with pytest.raises(ValueError):
        client.connect()