"""Inverse kinematics and serial streaming for a six-leg Stewart platform."""

from .dimensions import PlatformConfig, load_config, save_config
from .kinematics import Pose, StewartPlatform
from .protocol import Telemetry, decode_frame, encode_frame, parse_feedback
from .serial_link import ArduinoLink, LinkError
from .controller import CadenceController, HomingController, StewartController

__all__ = [
    "ArduinoLink",
    "CadenceController",
    "HomingController",
    "LinkError",
    "PlatformConfig",
    "Pose",
    "StewartController",
    "StewartPlatform",
    "Telemetry",
    "decode_frame",
    "encode_frame",
    "load_config",
    "parse_feedback",
    "save_config",
]
