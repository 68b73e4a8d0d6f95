import math

import pytest

from stewart_platform.protocol import (
    FRAME_HEADER,
    Telemetry,
    decode_frame,
    encode_frame,
    parse_feedback,
)


def test_frame_layout():
    degrees = [1.234, -2.5678, 0.0, 10.019, 45.5555, -0.009]
    frame = encode_frame([math.radians(d) for d in degrees])

    assert frame[:2] == bytes([0x6A, 0x6A])
    assert frame == FRAME_HEADER + b"123,-256,0,1001,4555,0\n"


def test_round_trip_within_centidegree():
    degrees = [12.3456, -45.0001, 0.5, -0.25, 89.999, -89.001]
    decoded = decode_frame(encode_frame([math.radians(d) for d in degrees]))

    assert len(decoded) == 6
    for original, got in zip(degrees, decoded):
        assert abs(original - got) <= 0.01


def test_encode_rejects_nan_and_wrong_count():
    with pytest.raises(ValueError):
        encode_frame([0.0, 0.0, math.nan, 0.0, 0.0, 0.0])
    with pytest.raises(ValueError):
        encode_frame([0.0] * 5)


@pytest.mark.parametrize(
    "frame",
    [
        b"123,0,0,0,0,0\n",
        FRAME_HEADER + b"1,2,3,4,5,6",
        FRAME_HEADER + b"1,2,3\n",
    ],
)
def test_decode_rejects_bad_frames(frame):
    with pytest.raises(ValueError):
        decode_frame(frame)


def test_parse_feedback_line():
    fb = parse_feedback("FB:1.2,-3.4,5.6,7.8\n")

    assert fb.roll == 1.2
    assert fb.pitch == -3.4
    assert fb.yaw == 5.6
    assert fb.temperature == 7.8


def test_parse_feedback_accepts_bytes():
    fb = parse_feedback(b"FB:0.5,0.0,-1,25.25\r\n")

    assert (fb.roll, fb.pitch, fb.yaw, fb.temperature) == (0.5, 0.0, -1.0, 25.25)


@pytest.mark.parametrize(
    "line",
    [
        "FB:bad\n",
        "FB:1,2,3\n",
        "FB:1,2,3,4,5\n",
        "IMU:1,2,3,4\n",
        "1.2,-3.4,5.6,7.8\n",
        "",
        b"\xff\xfe",
    ],
)
def test_parse_feedback_ignores_other_lines(line):
    assert parse_feedback(line) is None


def test_parse_feedback_keeps_fields_that_parse():
    fb = parse_feedback("FB:1.0,oops,3.0,4.0\n")

    assert fb.roll == 1.0
    assert fb.pitch is None
    assert fb.yaw == 3.0
    assert fb.temperature == 4.0


def test_telemetry_format_and_row():
    fb = Telemetry(1.25, None, -3.0, 40.04, received_at=10.0)

    assert fb.format() == {"roll": "1.2°", "pitch": "--", "yaw": "-3.0°", "temperature": "40.0°C"}
    row = fb.as_row()
    assert row[0] == 10.0
    assert math.isnan(row[2])
