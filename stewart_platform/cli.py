"""Command line front-end.

    python -m stewart_platform solve --pose 0 0 10 2 0 0
    python -m stewart_platform stream --port COM5 --pose 0 0 10 2 0 0 --home --duration 5
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .controller import StewartController
from .dimensions import PlatformConfig, load_config
from .kinematics import Pose, StewartPlatform
from .protocol import encode_frame
from .serial_link import ArduinoLink

log = logging.getLogger(__name__)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="stewart_platform", description="Stewart platform IK and servo streaming.")
    parser.add_argument("--config", type=str, default=None, help="Path to platform config JSON.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")

    sub = parser.add_subparsers(dest="command", required=True)

    solve = sub.add_parser("solve", help="Solve one pose and print the servo angles.")
    solve.add_argument(
        "--pose",
        type=float,
        nargs=6,
        default=[0.0] * 6,
        metavar=("X", "Y", "Z", "ROLL", "PITCH", "YAW"),
        help="Translation in mm, rotation in degrees.",
    )

    stream = sub.add_parser("stream", help="Stream servo angles to the board.")
    stream.add_argument("--port", type=str, default=None, help="Serial port (overrides config).")
    stream.add_argument(
        "--pose",
        type=float,
        nargs=6,
        default=[0.0] * 6,
        metavar=("X", "Y", "Z", "ROLL", "PITCH", "YAW"),
        help="Translation in mm, rotation in degrees.",
    )
    stream.add_argument("--home", action="store_true", help="Ease back to the home pose once the requested pose has been sent.")
    stream.add_argument("--duration", type=float, default=5.0, help="Seconds to stream. Use <= 0 to run until Ctrl+C.")
    stream.add_argument("--save-csv", dest="save_csv", type=str, default=None, help="Directory for CSV logs.")
    stream.add_argument("--plot", action="store_true", help="Plot sent angles and feedback afterwards.")
    return parser.parse_args(argv)


def _load(path: Optional[str]) -> PlatformConfig:
    if path is None:
        return PlatformConfig()
    return load_config(path)


def _pose_from_args(values: Sequence[float], config: PlatformConfig) -> Pose:
    requested = Pose.from_degrees(*values)
    pose = requested.clamped(config.max_translation, config.max_rotation)
    if pose != requested:
        log.warning("[KIN] Pose clamped to limits (+-%.1f mm, +-%.1f deg)",
                    config.max_translation, config.max_rotation_deg)
    return pose


def solve_command(args: argparse.Namespace, config: PlatformConfig) -> int:
    platform = StewartPlatform(config)
    platform.apply_pose(_pose_from_args(args.pose, config))

    for i, deg in enumerate(platform.alpha_degrees()):
        print(f"Servo {i}: {deg:.2f}°")
    if platform.is_valid():
        print(f"Frame: {encode_frame(platform.alpha)!r}")
        return 0
    print("No valid solution for at least one leg; nothing would be sent.")
    return 1


def stream_command(args: argparse.Namespace, config: PlatformConfig) -> int:
    link = ArduinoLink.from_config(config, port=args.port)
    controller = StewartController(config, link)
    if not link.connect():
        print(f"[ERROR] {link.status}")
        return 1

    controller.request_pose(_pose_from_args(args.pose, config))
    if args.home:
        controller.request_home()

    duration = args.duration if args.duration > 0 else None
    try:
        controller.run(duration=duration)
    except KeyboardInterrupt:
        pass
    finally:
        controller.stop()

    print(f"Frames sent: {controller.cadence.frames_sent}, skipped: {controller.cadence.skipped}")
    if controller.latest_telemetry is not None:
        fb = controller.latest_telemetry.format()
        print(f"Feedback: roll {fb['roll']} pitch {fb['pitch']} yaw {fb['yaw']} temp {fb['temperature']}")
    if args.save_csv:
        controller.save_csv(args.save_csv)
    if args.plot:
        controller.plot_results()
    return 0 if not link.failed else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = _load(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"[ERROR] {e}")
        return 2

    if args.command == "solve":
        return solve_command(args, config)
    return stream_command(args, config)


if __name__ == "__main__":
    sys.exit(main())
