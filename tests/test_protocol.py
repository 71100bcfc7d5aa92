import json

import pytest

from mediasync.protocol import (
    ErrorMessage,
    Join,
    MediaData,
    MediaList,
    PauseCommand,
    PlayCommand,
    ProtocolError,
    RequestMedia,
    RequestMediaList,
    Welcome,
    decode_message,
    encode_message,
)

ALL_MESSAGES = [
    Join("client1"),
    RequestMediaList(),
    RequestMedia("movie.mp4"),
    Welcome("client1"),
    MediaList(["a.mp3", "b.png"]),
    MediaList([]),
    MediaData("clip.mp4", b"\x00\x01\xfe\xff", "video", 1_700_000_000),
    PlayCommand("clip.mp4", 42),
    PauseCommand(),
    ErrorMessage("Media file 'x' not found"),
]


@pytest.mark.parametrize("message", ALL_MESSAGES)
def test_round_trip(message):
    assert decode_message(encode_message(message)) == message


@pytest.mark.parametrize("message", ALL_MESSAGES)
def test_encoded_is_single_line(message):
    assert "\n" not in encode_message(message)


def test_join_wire_form():
    assert encode_message(Join("client1")) == '{"Join":{"client_id":"client1"}}'


def test_unit_variant_is_bare_string():
    assert encode_message(PauseCommand()) == '"PauseCommand"'


def test_error_variant_tag():
    document = json.loads(encode_message(ErrorMessage("boom")))
    assert list(document) == ["Error"]
    assert document["Error"]["message"] == "boom"


def test_media_data_bytes_as_array():
    payload = b"\x01\x02\xff"
    document = json.loads(encode_message(MediaData("f.png", payload, "image", 7)))
    assert document["MediaData"]["data"] == list(payload)
    assert document["MediaData"]["timestamp"] == 7


def test_decode_strips_whitespace_and_newline():
    assert decode_message('  {"Welcome":{"client_id":"abc"}}\r\n') == Welcome("abc")


def test_decode_bytes_input():
    assert decode_message(b'"RequestMediaList"\n') == RequestMediaList()


def test_decode_ignores_unknown_fields():
    line = '{"RequestMedia":{"filename":"a.mp3","extra":1}}'
    assert decode_message(line) == RequestMedia("a.mp3")


def test_decode_unit_variant_with_null_payload():
    assert decode_message('{"PauseCommand":null}') == PauseCommand()


@pytest.mark.parametrize(
    "line",
    [
        "",
        "   ",
        "not json",
        '"Unknown"',
        '{"Unknown":{}}',
        '"Join"',
        '{"Join":{}}',
        '{"Join":{"client_id":5}}',
        '{"Join":"client1"}',
        '{"Join":{"client_id":"a"},"Welcome":{"client_id":"b"}}',
        "[1,2]",
        '{"PlayCommand":{"filename":"a","timestamp":-1}}',
        '{"PlayCommand":{"filename":"a","timestamp":true}}',
        '{"PlayCommand":{"filename":"a","timestamp":1.5}}',
        '{"MediaData":{"filename":"a","data":[256],"media_type":"video","timestamp":1}}',
        '{"MediaData":{"filename":"a","data":"AAEC","media_type":"video","timestamp":1}}',
        '{"MediaList":{"files":["a",1]}}',
        '{"PauseCommand":{"x":1}}',
    ],
)
def test_decode_rejects_invalid(line):
    with pytest.raises(ProtocolError):
        decode_message(line)


def test_protocol_error_is_value_error():
    with pytest.raises(ValueError):
        decode_message("{")


def test_encode_rejects_non_message():
    with pytest.raises(TypeError):
        encode_message("Join")