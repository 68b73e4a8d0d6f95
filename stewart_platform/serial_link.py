"""Serial link to the servo board.

Owns the pyserial port, writes outbound frames, and runs a background
reader thread that parses feedback lines and hands them to the control
thread through a queue. The reader never touches shared state directly.
"""
from __future__ import annotations

import logging
import queue
import time
from threading import Event, Lock, Thread
from typing import Callable, Optional

import serial

from .dimensions import PlatformConfig
from .protocol import Telemetry, parse_feedback

log = logging.getLogger(__name__)

TRANSPORT_ERRORS = (serial.SerialException, serial.SerialTimeoutException, OSError)


class LinkError(RuntimeError):
    """The serial transport failed; it stays failed until reconnected."""


class ArduinoLink:
    """Duplex serial link: frames out, telemetry in.

    Args:
        port: Serial port name (e.g. "COM5", "/dev/ttyACM0")
        baud_rate: Must match the board's Serial.begin()
        read_timeout: Seconds readline() waits before returning empty
        write_timeout: Seconds write() waits before raising
        settle_s: Delay after opening while the board resets
        serial_factory: Callable returning a serial.Serial-like object
    """

    def __init__(self, port: str, baud_rate: int = 115200, read_timeout: float = 1.0,
                 write_timeout: float = 1.0, settle_s: float = 2.0,
                 serial_factory: Optional[Callable[..., serial.Serial]] = None):
        self.port = port
        self.baud_rate = int(baud_rate)
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.settle_s = settle_s
        self._factory = serial_factory if serial_factory is not None else serial.Serial

        self.serial = None
        self.failed = False
        self.status = "Disconnected"
        self.telemetry_queue: "queue.Queue[Telemetry]" = queue.Queue(maxsize=1)

        self._write_lock = Lock()
        self._reader_stop = Event()
        self._reader: Optional[Thread] = None

    @classmethod
    def from_config(cls, config: PlatformConfig, port: Optional[str] = None, **kwargs) -> "ArduinoLink":
        return cls(
            port or config.port,
            config.baud_rate,
            read_timeout=config.read_timeout,
            write_timeout=config.write_timeout,
            **kwargs,
        )

    @property
    def is_open(self) -> bool:
        return self.serial is not None and bool(getattr(self.serial, "is_open", True))

    @property
    def ready(self) -> bool:
        """Open and not failed, i.e. frames may be written."""
        return self.is_open and not self.failed

    # ---------------- connection ----------------
    def connect(self) -> bool:
        """Open the port and start the reader. Clears a previous failure."""
        self.close()
        try:
            self.serial = self._factory(
                self.port,
                self.baud_rate,
                timeout=self.read_timeout,
                write_timeout=self.write_timeout,
            )
            if self.settle_s:
                time.sleep(self.settle_s)
            self.serial.reset_input_buffer()
        except TRANSPORT_ERRORS as e:
            log.error("[SERVO] Could not open serial %s: %s", self.port, e)
            self.serial = None
            self.status = f"Error: {e}"
            return False

        self.failed = False
        self.status = "Connected"
        log.info("[SERVO] Connected to Arduino on %s @ %d", self.port, self.baud_rate)

        self._reader_stop.clear()
        self._reader = Thread(target=self._read_loop, name="serial-reader", daemon=True)
        self._reader.start()
        return True

    def close(self):
        self._reader_stop.set()
        reader, self._reader = self._reader, None
        if self.serial is not None:
            try:
                self.serial.close()
            except TRANSPORT_ERRORS as e:
                log.warning("[SERVO] Error closing %s: %s", self.port, e)
            self.serial = None
            self.status = "Disconnected"
            log.info("[SERVO] Disconnected from %s", self.port)
        if reader is not None and reader.is_alive():
            reader.join(timeout=max(0.1, float(self.read_timeout or 0) + 0.5))

    # ---------------- io ----------------
    def write(self, data: bytes):
        """Write bytes to the board.

        Raises:
            LinkError: Port not open, already failed, or the write failed
        """
        if not self.ready:
            raise LinkError(f"link to {self.port} is not available ({self.status})")
        try:
            with self._write_lock:
                self.serial.write(data)
        except TRANSPORT_ERRORS as e:
            self._mark_failed(e)
            raise LinkError(str(e)) from e

    def _mark_failed(self, err):
        self.failed = True
        self.status = f"Error: {err}"
        log.error("[SERVO] Serial error on %s: %s", self.port, err)

    def _read_loop(self):
        ser = self.serial
        while not self._reader_stop.is_set():
            try:
                raw = ser.readline()
            except TRANSPORT_ERRORS as e:
                if not self._reader_stop.is_set():
                    self._mark_failed(e)
                return
            if not raw:
                continue

            telemetry = parse_feedback(raw)
            if telemetry is None:
                continue
            self._publish(telemetry)

    def _publish(self, telemetry: Telemetry):
        # latest wins
        try:
            if self.telemetry_queue.full():
                self.telemetry_queue.get_nowait()
        except queue.Empty:
            pass
        try:
            self.telemetry_queue.put_nowait(telemetry)
        except queue.Full:
            log.debug("[FB] queue full, dropped %s", telemetry)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
