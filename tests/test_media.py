import sys
from unittest import mock

import pytest

from mediasync.media import (
    MediaFile,
    load_media_file,
    media_type_from_filename,
    open_with_default_app,
    write_and_open,
)


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("movie.mp4", "video"),
        ("MOVIE.MKV", "video"),
        ("clip.webm", "video"),
        ("song.mp3", "audio"),
        ("track.FLAC", "audio"),
        ("sound.aac", "audio"),
        ("photo.jpeg", "image"),
        ("pic.WebP", "image"),
        ("archive.tar.gif", "image"),
    ],
)
def test_media_type_supported(filename, expected):
    assert media_type_from_filename(filename) == expected


@pytest.mark.parametrize("filename", ["notes.txt", "README", ".mp4", "file.", "movie.mp4.bak"])
def test_media_type_unsupported(filename):
    assert media_type_from_filename(filename) is None


def test_media_file_size():
    assert MediaFile("a.mp3", b"abcd", "audio").size == 4


def test_load_media_file(tmp_path):
    path = tmp_path / "Clip.MOV"
    path.write_bytes(b"\x00\x01\x02")
    media = load_media_file(path)
    assert media == MediaFile("Clip.MOV", b"\x00\x01\x02", "video")


def test_load_media_file_unsupported_returns_none(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    assert load_media_file(path) is None


def test_load_media_file_missing_raises(tmp_path):
    with pytest.raises(OSError):
        load_media_file(tmp_path / "missing.mp3")


@pytest.mark.parametrize(
    "platform, prefix",
    [
        ("linux", ["xdg-open"]),
        ("darwin", ["open"]),
        ("win32", ["cmd", "/C", "start", ""]),
    ],
)
def test_open_with_default_app_command(monkeypatch, tmp_path, platform, prefix):
    monkeypatch.setattr(sys, "platform", platform)
    target = tmp_path / "a.png"
    with mock.patch("subprocess.Popen") as popen:
        result = open_with_default_app(target)
    popen.assert_called_once_with(prefix + [str(target)])
    assert result is popen.return_value


def test_open_with_default_app_unknown_platform(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "platform", "sunos5")
    with mock.patch("subprocess.Popen") as popen:
        result = open_with_default_app(tmp_path / "a.png")
    assert result is None
    assert popen.call_count == 0


def test_write_and_open_playable(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "platform", "linux")
    target = tmp_path / "host_temp_song.mp3"
    with mock.patch("subprocess.Popen") as popen:
        written = write_and_open(target, b"data", "audio")
    assert written == target
    assert target.read_bytes() == b"data"
    popen.assert_called_once_with(["xdg-open", str(target)])


def test_write_and_open_unknown_type_does_not_open(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "platform", "linux")
    target = tmp_path / "blob.bin"
    with mock.patch("subprocess.Popen") as popen:
        write_and_open(target, b"xyz", "document")
    assert target.read_bytes() == b"xyz"
    assert popen.call_count == 0


def test_write_and_open_propagates_launch_failure(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "platform", "linux")
    with mock.patch("subprocess.Popen", side_effect=FileNotFoundError("xdg-open")):
        with pytest.raises(FileNotFoundError):
            write_and_open(tmp_path / "v.mp4", b"1", "video")