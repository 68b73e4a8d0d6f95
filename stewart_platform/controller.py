"""Real-time streaming of solved horn angles to the platform.

Two periodic tasks share one control thread:
- CadenceController samples the latest solve every send interval and
  writes one frame, skipping ticks with an unsolvable leg.
- HomingController eases the commanded pose back to home in bounded
  steps after a reset request.

Pose requests from other threads and telemetry from the serial reader
arrive through queues and are applied on the control thread only.
"""
from __future__ import annotations

import logging
import math
import os
import queue
import time
from collections import deque
from enum import Enum
from threading import Event, Thread
from typing import List, Optional

import numpy as np

from .dimensions import PlatformConfig
from .kinematics import Pose, StewartPlatform
from .protocol import Telemetry, encode_frame
from .serial_link import ArduinoLink, LinkError

log = logging.getLogger(__name__)


class CadenceController:
    """Fixed-rate sampler of the current solve.

    Args:
        platform: Engine whose latest alpha is sent
        link: Transport with `ready` and `write(bytes)`
        nan_policy: "skip" drops the tick, "stop" also halts the trigger
    """

    def __init__(self, platform: StewartPlatform, link, nan_policy: str = "skip"):
        self.platform = platform
        self.link = link
        self.nan_policy = nan_policy
        self.running = True
        self.frames_sent = 0
        self.skipped = 0
        self.last_frame: Optional[bytes] = None

    def start(self):
        self.running = True

    def stop(self):
        self.running = False

    def tick(self) -> Optional[bytes]:
        """Send the current angles once.

        Returns:
            The frame written, or None if nothing was sent
        """
        if not self.running:
            return None
        if self.link is None or not self.link.ready:
            return None

        if not self.platform.is_valid():
            self.skipped += 1
            if self.nan_policy == "stop":
                self.running = False
                log.warning("[SERVO] Unsolvable leg in current pose; transmission stopped")
            else:
                log.debug("[SERVO] Unsolvable leg in current pose; tick skipped")
            return None

        frame = encode_frame(self.platform.alpha)
        try:
            self.link.write(frame)
        except LinkError as e:
            log.error("[SERVO] Write error, transmission paused until reconnect: %s", e)
            return None

        self.frames_sent += 1
        self.last_frame = frame
        return frame


class HomingController:
    """Bounded linear ease of every pose axis back to zero."""

    class State(Enum):
        IDLE = "idle"
        ANIMATING = "animating"

    SNAP_TOLERANCE = 1e-9

    def __init__(self, platform: StewartPlatform, translation_step: float = 0.5,
                 rotation_step: float = math.radians(0.05)):
        if translation_step <= 0 or rotation_step <= 0:
            raise ValueError("home step sizes must be positive")
        self.platform = platform
        self.translation_step = float(translation_step)
        self.rotation_step = float(rotation_step)
        self.state = HomingController.State.IDLE
        self.ticks = 0

    @property
    def active(self) -> bool:
        return self.state is HomingController.State.ANIMATING

    def request(self):
        if not self.active:
            log.info("[HOME] Returning to home pose")
        self.state = HomingController.State.ANIMATING
        self.ticks = 0

    @staticmethod
    def move_towards_zero(value: float, step: float) -> float:
        # Repeated subtraction leaves rounding residue just above `step`
        if abs(value) > step * (1.0 + HomingController.SNAP_TOLERANCE):
            return value - step if value > 0 else value + step
        return 0.0

    def tick(self) -> bool:
        """Advance one step.

        Returns:
            True on the tick where every axis reaches zero
        """
        if not self.active:
            return False

        t = self.translation_step
        r = self.rotation_step
        p = self.platform.pose
        pose = Pose(
            self.move_towards_zero(p.x, t),
            self.move_towards_zero(p.y, t),
            self.move_towards_zero(p.z, t),
            self.move_towards_zero(p.roll, r),
            self.move_towards_zero(p.pitch, r),
            self.move_towards_zero(p.yaw, r),
        )
        self.platform.apply_pose(pose)
        self.ticks += 1

        if pose.is_home():
            self.state = HomingController.State.IDLE
            log.info("[HOME] Home reached after %d ticks", self.ticks)
            return True
        return False


class StewartController:
    """Owns the engine, the link and both periodic tasks.

    Everything that mutates the pose runs on the thread calling `run`.
    Other threads talk to it through `request_pose` / `request_home`.
    """

    def __init__(self, config: Optional[PlatformConfig] = None, link: Optional[ArduinoLink] = None,
                 max_points: int = 10000):
        self.config = config if config is not None else PlatformConfig()
        self.platform = StewartPlatform(self.config)
        self.link = link

        self.cadence = CadenceController(self.platform, link, nan_policy=self.config.nan_policy)
        self.homing = HomingController(
            self.platform,
            translation_step=self.config.home_translation_step,
            rotation_step=self.config.home_rotation_step,
        )
        self.send_interval = self.config.send_interval_ms / 1000.0
        self.home_interval = self.config.home_interval_ms / 1000.0

        self.command_queue: "queue.Queue[tuple]" = queue.Queue()
        self.latest_telemetry: Optional[Telemetry] = None

        # Logs
        self.max_points = max_points
        self.sent_log = deque(maxlen=max_points)
        self.telemetry_log = deque(maxlen=max_points)

        self._stop = Event()
        self._thread: Optional[Thread] = None
        self.start_time = time.time()

    # ---------------- requests (any thread) ----------------
    def request_pose(self, pose: Pose):
        self.command_queue.put(("pose", pose))

    def request_home(self):
        self.command_queue.put(("home", None))

    def reconnect(self) -> bool:
        """Reopen the link and resume transmission."""
        if self.link is None:
            return False
        ok = self.link.connect()
        if ok:
            self.cadence.start()
        return ok

    # ---------------- control thread ----------------
    def process_commands(self):
        while True:
            try:
                kind, payload = self.command_queue.get_nowait()
            except queue.Empty:
                return
            if kind == "pose":
                self.platform.apply_pose(payload)
            elif kind == "home":
                self.homing.request()

    def drain_telemetry(self) -> Optional[Telemetry]:
        if self.link is None:
            return None
        while True:
            try:
                telemetry = self.link.telemetry_queue.get_nowait()
            except queue.Empty:
                return self.latest_telemetry
            self.latest_telemetry = telemetry
            self.telemetry_log.append(telemetry.as_row())

    def send_tick(self) -> Optional[bytes]:
        frame = self.cadence.tick()
        if frame is not None:
            t = time.time() - self.start_time
            self.sent_log.append([t, *self.platform.alpha_degrees()])
        return frame

    def home_tick(self) -> bool:
        return self.homing.tick()

    def run(self, duration: Optional[float] = None):
        """Run both periodic tasks on the calling thread until stopped."""
        self._stop.clear()
        self._loop(duration)

    def _loop(self, duration: Optional[float]):
        log.info("[CTRL] Starting Stewart platform streaming")
        self.cadence.start()
        self.start_time = time.time()

        now = time.monotonic()
        end = None if duration is None else now + duration
        next_send = now
        next_home = now

        while not self._stop.is_set():
            now = time.monotonic()
            if end is not None and now >= end:
                break

            self.process_commands()
            self.drain_telemetry()

            # A requested pose is sent at least once before homing steps it
            if now >= next_send:
                self.send_tick()
                next_send += self.send_interval
                if next_send < now:
                    next_send = now + self.send_interval
            if now >= next_home:
                self.home_tick()
                next_home += self.home_interval
                if next_home < now:
                    next_home = now + self.home_interval

            wake = min(next_send, next_home)
            if end is not None:
                wake = min(wake, end)
            self._stop.wait(max(0.0, wake - time.monotonic()))

        log.info("[CTRL] Streaming stopped")

    def start(self, duration: Optional[float] = None) -> Thread:
        self._stop.clear()
        self._thread = Thread(target=self._loop, args=(duration,), daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, close_link: bool = True):
        self._stop.set()
        self.cadence.stop()
        thread, self._thread = self._thread, None
        if thread is not None and thread.is_alive():
            thread.join(timeout=1.0)
        if close_link and self.link is not None:
            self.link.close()

    # ---------------- logs ----------------
    def save_csv(self, directory: str = "logs") -> List[str]:
        """Write the sent-angle and feedback logs to timestamped CSV files."""
        written = []
        if not self.sent_log and not self.telemetry_log:
            log.info("[SAVE] no data to save")
            return written

        os.makedirs(directory, exist_ok=True)
        ts = time.strftime("%Y%m%d_%H%M%S")

        if self.sent_log:
            fname = os.path.join(directory, f"sp_angles_{ts}.csv")
            header = "t_s," + ",".join(f"servo{i}_deg" for i in range(6))
            np.savetxt(fname, np.array(self.sent_log, dtype=float), delimiter=",", header=header, comments="")
            written.append(fname)

        if self.telemetry_log:
            fname = os.path.join(directory, f"sp_feedback_{ts}.csv")
            header = "t_s,roll_deg,pitch_deg,yaw_deg,temp_c"
            np.savetxt(fname, np.array(self.telemetry_log, dtype=float), delimiter=",", header=header, comments="")
            written.append(fname)

        for fname in written:
            log.info("[SAVE] logs written to %s", fname)
        return written

    def plot_results(self, show: bool = True):
        """Plot sent angles and board feedback over the run."""
        import matplotlib.pyplot as plt

        if not self.sent_log and not self.telemetry_log:
            log.info("[PLOT] no data to plot")
            return None

        fig, axs = plt.subplots(2, 1, figsize=(8, 8), sharex=False)
        sent = np.array(self.sent_log, dtype=float)
        if sent.size:
            for i in range(6):
                axs[0].plot(sent[:, 0], sent[:, i + 1], label=f"s{i}")
        axs[0].set_ylabel("Horn angle [deg]")
        axs[0].legend(); axs[0].grid(True)

        fb = np.array(self.telemetry_log, dtype=float)
        if fb.size:
            t = fb[:, 0] - fb[0, 0]
            axs[1].plot(t, fb[:, 1], label="roll")
            axs[1].plot(t, fb[:, 2], label="pitch")
            axs[1].plot(t, fb[:, 3], label="yaw")
        axs[1].set_ylabel("Feedback [deg]")
        axs[1].set_xlabel("Time [s]")
        axs[1].legend(); axs[1].grid(True)

        fig.tight_layout()
        if show:
            plt.show()
        return fig
