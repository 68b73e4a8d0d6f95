"""Stewart Platform Physical Dimensions and Configuration

This file holds the physical dimensions and angle conventions of the
six-leg rotary Stewart platform, and loads them from the JSON config file
so every other module works from the same numbers.

Coordinate System:
- Origin: Center of base plate
- Z-axis: Vertical up
- X-axis: Angle 0 of the joint layout
- Y-axis: Follows right-hand rule

Joint Layout:
- Six base joints and six platform joints, index-aligned per leg
- Joint angles are given in degrees around their circle
- Beta angles (radians) give the swing plane of each servo horn

Physical Dimensions (mm):
"""
from __future__ import annotations

import json
import math
import os
from dataclasses import asdict, dataclass, field
from typing import Sequence

# Link dimensions
BASE_RADIUS = 300.0       # Radius of the base joint circle
PLATFORM_RADIUS = 284.0   # Radius of the platform joint circle
HORN_LENGTH = 40.0        # Servo horn (actuator arm)
ROD_LENGTH = 118.0        # Rod from horn tip to platform joint
INITIAL_HEIGHT = 100.0    # Resting platform height above the base plane

# Joint layout (degrees)
BASE_ANGLES = [-50.0, -70.0, -170.0, -190.0, -290.0, -310.0]
PLATFORM_ANGLES = [-54.0, -66.0, -174.0, -186.0, -294.0, -306.0]

# Horn swing planes (radians)
BETA_ANGLES = [
    math.pi / 6,       # 30 deg
    -5 * math.pi / 6,  # -150 deg
    -math.pi / 2,      # -90 deg
    math.pi / 2,       # 90 deg
    5 * math.pi / 6,   # 150 deg
    -math.pi / 6,      # -30 deg
]

# Input limits
MAX_TRANSLATION = 35.0   # mm
MAX_ROTATION_DEG = 5.0   # degrees

# Communication
SERIAL_PORT = "COM5"
BAUD_RATE = 115200
READ_TIMEOUT_S = 1.0
WRITE_TIMEOUT_S = 1.0

# Timing
SEND_INTERVAL_MS = 40
HOME_INTERVAL_MS = 20

# Return-to-home step per tick
HOME_TRANSLATION_STEP = 0.5      # mm
HOME_ROTATION_STEP_DEG = 0.05    # degrees

NAN_POLICIES = ("skip", "stop")

LEG_COUNT = 6


def ensure_len(seq: Sequence, length: int, name: str) -> list:
    if len(seq) != length:
        raise ValueError(f"{name} must have length {length} (got {len(seq)})")
    return [float(v) for v in seq]


@dataclass
class PlatformConfig:
    """Everything the engine and the streaming loop need at construction."""

    base_radius: float = BASE_RADIUS
    platform_radius: float = PLATFORM_RADIUS
    horn_length: float = HORN_LENGTH
    rod_length: float = ROD_LENGTH
    initial_height: float = INITIAL_HEIGHT
    base_angles_deg: list = field(default_factory=lambda: list(BASE_ANGLES))
    platform_angles_deg: list = field(default_factory=lambda: list(PLATFORM_ANGLES))
    beta_angles: list = field(default_factory=lambda: list(BETA_ANGLES))

    max_translation: float = MAX_TRANSLATION
    max_rotation_deg: float = MAX_ROTATION_DEG

    port: str = SERIAL_PORT
    baud_rate: int = BAUD_RATE
    read_timeout: float = READ_TIMEOUT_S
    write_timeout: float = WRITE_TIMEOUT_S

    send_interval_ms: int = SEND_INTERVAL_MS
    home_interval_ms: int = HOME_INTERVAL_MS
    home_translation_step: float = HOME_TRANSLATION_STEP
    home_rotation_step_deg: float = HOME_ROTATION_STEP_DEG

    nan_policy: str = "skip"

    def __post_init__(self):
        self.base_angles_deg = ensure_len(self.base_angles_deg, LEG_COUNT, "base_angles_deg")
        self.platform_angles_deg = ensure_len(self.platform_angles_deg, LEG_COUNT, "platform_angles_deg")
        self.beta_angles = ensure_len(self.beta_angles, LEG_COUNT, "beta_angles")
        if self.nan_policy not in NAN_POLICIES:
            raise ValueError(f"nan_policy must be one of {NAN_POLICIES} (got {self.nan_policy!r})")

    @property
    def max_rotation(self) -> float:
        """Rotation limit in radians."""
        return math.radians(self.max_rotation_deg)

    @property
    def home_rotation_step(self) -> float:
        """Return-to-home rotation step in radians."""
        return math.radians(self.home_rotation_step_deg)

    def to_dict(self) -> dict:
        """Nested dict in the same shape `load_config` reads."""
        flat = asdict(self)
        return {
            "geometry": {
                key: flat[key]
                for key in (
                    "base_radius",
                    "platform_radius",
                    "horn_length",
                    "rod_length",
                    "initial_height",
                    "base_angles_deg",
                    "platform_angles_deg",
                    "beta_angles",
                )
            },
            "limits": {
                "max_translation": flat["max_translation"],
                "max_rotation_deg": flat["max_rotation_deg"],
            },
            "serial": {
                "port": flat["port"],
                "baud_rate": flat["baud_rate"],
                "read_timeout": flat["read_timeout"],
                "write_timeout": flat["write_timeout"],
            },
            "timing": {
                "send_interval_ms": flat["send_interval_ms"],
                "home_interval_ms": flat["home_interval_ms"],
                "nan_policy": flat["nan_policy"],
            },
            "home": {
                "translation_step": flat["home_translation_step"],
                "rotation_step_deg": flat["home_rotation_step_deg"],
            },
        }


def config_from_dict(data: dict) -> PlatformConfig:
    """Build a PlatformConfig from the nested JSON layout.

    Missing sections or keys fall back to the reference hardware values.
    """
    geometry = data.get("geometry", {})
    limits = data.get("limits", {})
    serial_cfg = data.get("serial", {})
    timing = data.get("timing", {})
    home = data.get("home", {})

    return PlatformConfig(
        base_radius=float(geometry.get("base_radius", BASE_RADIUS)),
        platform_radius=float(geometry.get("platform_radius", PLATFORM_RADIUS)),
        horn_length=float(geometry.get("horn_length", HORN_LENGTH)),
        rod_length=float(geometry.get("rod_length", ROD_LENGTH)),
        initial_height=float(geometry.get("initial_height", INITIAL_HEIGHT)),
        base_angles_deg=list(geometry.get("base_angles_deg", BASE_ANGLES)),
        platform_angles_deg=list(geometry.get("platform_angles_deg", PLATFORM_ANGLES)),
        beta_angles=list(geometry.get("beta_angles", BETA_ANGLES)),
        max_translation=float(limits.get("max_translation", MAX_TRANSLATION)),
        max_rotation_deg=float(limits.get("max_rotation_deg", MAX_ROTATION_DEG)),
        port=str(serial_cfg.get("port", SERIAL_PORT)),
        baud_rate=int(serial_cfg.get("baud_rate", BAUD_RATE)),
        read_timeout=float(serial_cfg.get("read_timeout", READ_TIMEOUT_S)),
        write_timeout=float(serial_cfg.get("write_timeout", WRITE_TIMEOUT_S)),
        send_interval_ms=int(timing.get("send_interval_ms", SEND_INTERVAL_MS)),
        home_interval_ms=int(timing.get("home_interval_ms", HOME_INTERVAL_MS)),
        nan_policy=str(timing.get("nan_policy", "skip")),
        home_translation_step=float(home.get("translation_step", HOME_TRANSLATION_STEP)),
        home_rotation_step_deg=float(home.get("rotation_step_deg", HOME_ROTATION_STEP_DEG)),
    )


def load_config(path: str) -> PlatformConfig:
    """Load platform configuration from a JSON file.

    Args:
        path: Path to the JSON config file

    Returns:
        PlatformConfig with defaults filled in for anything not in the file

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a joint array does not have six entries
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path, "r") as f:
        data = json.load(f)
    return config_from_dict(data)


def save_config(config: PlatformConfig, path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=4)
