"""Wire format between the PC and the servo board.

Outbound (PC -> board), one frame per send tick:
    0x6A 0x6A "<v0>,<v1>,<v2>,<v3>,<v4>,<v5>\\n"
where v[i] is the horn angle in centi-degrees, truncated to an integer.

Inbound (board -> PC), orientation/temperature feedback:
    "FB:<roll>,<pitch>,<yaw>,<temp>\\n"
Any other line is noise and is ignored.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

log = logging.getLogger(__name__)

FRAME_HEADER = bytes([0x6A, 0x6A])
FRAME_TERMINATOR = b"\n"
FEEDBACK_PREFIX = "FB:"
CENTI = 100
ANGLE_COUNT = 6
FEEDBACK_FIELDS = 4


def encode_frame(alpha_rad: Sequence[float]) -> bytes:
    """Build the outbound frame for six horn angles.

    Args:
        alpha_rad: Six horn angles in radians

    Returns:
        Header bytes followed by the ASCII payload

    Raises:
        ValueError: Wrong number of angles or a non-finite angle
    """
    if len(alpha_rad) != ANGLE_COUNT:
        raise ValueError(f"expected {ANGLE_COUNT} angles (got {len(alpha_rad)})")

    values = []
    for a in alpha_rad:
        a = float(a)
        if not math.isfinite(a):
            raise ValueError("cannot encode a non-finite angle")
        deg = a / (math.pi / 180.0)
        values.append(int(deg * CENTI))

    payload = ",".join(str(v) for v in values) + "\n"
    return FRAME_HEADER + payload.encode("ascii")


def decode_frame(frame: bytes) -> List[float]:
    """Inverse of encode_frame, returns the six angles in degrees."""
    if not frame.startswith(FRAME_HEADER):
        raise ValueError("missing frame header")
    body = frame[len(FRAME_HEADER):]
    if not body.endswith(FRAME_TERMINATOR):
        raise ValueError("frame is not newline terminated")

    parts = body[:-1].decode("ascii").split(",")
    if len(parts) != ANGLE_COUNT:
        raise ValueError(f"expected {ANGLE_COUNT} fields (got {len(parts)})")
    return [int(p) / CENTI for p in parts]


@dataclass
class Telemetry:
    """One feedback line from the board (degrees and deg C).

    A field the board sent but that did not parse is None.
    """

    roll: Optional[float]
    pitch: Optional[float]
    yaw: Optional[float]
    temperature: Optional[float]
    received_at: float = field(default_factory=time.time)

    def as_row(self) -> List[float]:
        return [
            self.received_at,
            *(math.nan if v is None else v for v in (self.roll, self.pitch, self.yaw, self.temperature)),
        ]

    def format(self) -> dict:
        """Display strings, one decimal place."""
        def fmt(v, unit):
            return "--" if v is None else f"{v:.1f}{unit}"

        return {
            "roll": fmt(self.roll, "°"),
            "pitch": fmt(self.pitch, "°"),
            "yaw": fmt(self.yaw, "°"),
            "temperature": fmt(self.temperature, "°C"),
        }


def _try_float(text: str) -> Optional[float]:
    try:
        return float(text)
    except ValueError:
        return None


def parse_feedback(line) -> Optional[Telemetry]:
    """Parse a feedback line.

    Args:
        line: str or bytes, with or without the trailing newline

    Returns:
        Telemetry, or None if the line is not a four-field feedback line
    """
    if isinstance(line, (bytes, bytearray)):
        line = line.decode("ascii", errors="ignore")
    if not line.startswith(FEEDBACK_PREFIX):
        return None

    parts = line[len(FEEDBACK_PREFIX):].strip().split(",")
    if len(parts) != FEEDBACK_FIELDS:
        log.debug("[FB] dropped malformed line: %r", line)
        return None

    roll, pitch, yaw, temp = (_try_float(p) for p in parts)
    return Telemetry(roll, pitch, yaw, temp)
