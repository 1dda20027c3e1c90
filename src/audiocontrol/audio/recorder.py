"""
Microphone recorder that feeds live sample blocks into an audio channel.

The recorder owns the capture lifecycle. ``start`` spawns a dedicated worker
thread that opens the default input device and registers a block callback;
the worker then idles, polling for a stop request, and closes the stream when
one arrives. Blocks are forwarded with a non-blocking send: when the channel is
full the newest block is dropped so the driver thread never stalls.

Key features:
- Three-state lifecycle (inactive / active / stop requested) under one lock
- Idempotent start and stop
- Lossy backpressure: drop-on-full, never block the capture callback
- Setup failures reported to the caller as ``DeviceError``
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from ..errors import ChannelClosed, ChannelFull, DeviceError
from .capture import CaptureSource, CaptureStream, PyAudioCaptureSource, StreamFormat
from .channel import AudioChannel

logger = logging.getLogger(__name__)


class RecordingState(Enum):
    """Lifecycle of a recording session."""

    INACTIVE = "inactive"
    ACTIVE = "active"
    STOP_REQUESTED = "stop_requested"


@dataclass(frozen=True)
class RecorderConfig:
    """Requested capture format and worker timing."""

    sample_rate: int = 44100
    channels: int = 1
    poll_interval: float = 0.1
    startup_timeout: float = 5.0


@dataclass
class _Session:
    """Per-start state. Each worker only ever sees its own session."""

    sender: AudioChannel
    stop: threading.Event = field(default_factory=threading.Event)
    reported_closed: bool = False


class Recorder:
    """
    Capture audio from the default input device on a background thread.

    All lifecycle state lives behind ``self._lock``. The lock is never held
    while the worker sleeps or while the driver does I/O. Every ``start``
    creates a new session with its own stop event, so a worker left behind by
    a timed-out start shuts itself down even after a later start succeeds.
    """

    def __init__(self, config: Optional[RecorderConfig] = None, capture_source: Optional[CaptureSource] = None):
        """
        Initialize the recorder.

        Args:
            config: Requested format and timing (defaults to 44.1kHz mono)
            capture_source: Audio driver backend (defaults to PyAudio)
        """
        self.config = config or RecorderConfig()
        self.capture_source = capture_source or PyAudioCaptureSource()

        self._lock = threading.Lock()
        self._state = RecordingState.INACTIVE
        self._session: Optional[_Session] = None
        self._stream_format: Optional[StreamFormat] = None
        self._worker: Optional[threading.Thread] = None
        self._dropped_blocks = 0

    @property
    def state(self) -> RecordingState:
        with self._lock:
            return self._state

    @property
    def stream_format(self) -> Optional[StreamFormat]:
        """Format negotiated for the current session, None when inactive."""
        with self._lock:
            return self._stream_format

    @property
    def dropped_blocks(self) -> int:
        """Blocks discarded because the channel was full, for the current or last session."""
        with self._lock:
            return self._dropped_blocks

    def is_recording(self) -> bool:
        return self.state == RecordingState.ACTIVE

    def start(self, sender: AudioChannel) -> Optional[StreamFormat]:
        """
        Start capturing into ``sender``.

        Blocks until the worker has a running stream or has failed to get one.
        Calling ``start`` while already active logs and returns the current
        format without opening the device again.

        Args:
            sender: Channel that receives copies of every captured block

        Returns:
            The negotiated stream format

        Raises:
            DeviceError: If the device could not be opened or the stream could
                not be started in time. The recorder is left inactive.
        """
        with self._lock:
            if self._state == RecordingState.ACTIVE:
                logger.warning("Recording is already active")
                return self._stream_format
            session = _Session(sender=sender)
            self._state = RecordingState.ACTIVE
            self._session = session
            self._stream_format = None
            self._dropped_blocks = 0

        ready = threading.Event()
        outcome: dict = {}

        worker = threading.Thread(target=self._record_loop, args=(session, ready, outcome), daemon=True)
        self._worker = worker
        worker.start()

        if not ready.wait(timeout=self.config.startup_timeout):
            outcome.setdefault("error", DeviceError("Timed out waiting for the capture stream to start"))

        error = outcome.get("error")
        if error is not None:
            self._abort_start(worker, session)
            logger.error(f"Failed to start recording: {error}")
            raise error

        logger.info("Recording started")
        return outcome["format"]

    def _abort_start(self, worker: threading.Thread, session: _Session) -> None:
        """Return to INACTIVE after a failed start."""
        session.stop.set()
        with self._lock:
            self._state = RecordingState.STOP_REQUESTED
        worker.join(timeout=self.config.startup_timeout)
        if worker.is_alive():
            # The worker exits on its own once the driver call it is stuck in returns
            logger.warning("Capture setup still pending, abandoning it")
        with self._lock:
            self._state = RecordingState.INACTIVE
            self._session = None
            self._stream_format = None
        self._worker = None

    def _on_data(self, session: _Session, block: np.ndarray) -> None:
        """Per-block callback, runs on the driver thread. Must not block or raise."""
        if session.stop.is_set():
            return

        try:
            session.sender.try_send(np.array(block, dtype=np.float32, copy=True))
        except ChannelFull:
            with self._lock:
                self._dropped_blocks += 1
            logger.warning("Audio processing is falling behind - channel full, block dropped")
        except ChannelClosed:
            if not session.reported_closed:
                session.reported_closed = True
                logger.warning("Audio channel closed, dropping captured audio until recording stops")

    def _on_error(self, session: _Session, message: str) -> None:
        if not session.stop.is_set():
            logger.error(f"Error on capture stream: {message}")

    def _record_loop(self, session: _Session, ready: threading.Event, outcome: dict) -> None:
        """Worker thread: open the device, stream until the session stops, then tear down."""
        stream: Optional[CaptureStream] = None
        device = None

        try:
            device = self.capture_source.open_default_input()
            if session.stop.is_set():
                logger.info("Capture setup finished after start was abandoned, releasing device")
                self.capture_source.release(device)
                return

            requested = StreamFormat(sample_rate=self.config.sample_rate, channels=self.config.channels)
            stream_format = self.capture_source.negotiate_config(device, requested)
            logger.info(
                f"Input device '{device.name}': {stream_format.sample_rate}Hz, {stream_format.channels} channel(s)"
            )

            stream = self.capture_source.start_stream(
                device,
                stream_format,
                lambda block: self._on_data(session, block),
                lambda message: self._on_error(session, message),
            )
        except DeviceError as e:
            if device is not None:
                self.capture_source.release(device)
            outcome["error"] = e
            ready.set()
            return
        except Exception as e:
            if device is not None:
                self.capture_source.release(device)
            outcome["error"] = DeviceError(f"Unexpected capture failure: {e}")
            ready.set()
            return

        with self._lock:
            if self._session is session:
                self._stream_format = stream_format
        outcome["format"] = stream_format
        ready.set()

        try:
            while not session.stop.is_set():
                time.sleep(self.config.poll_interval)
        finally:
            try:
                stream.close()
            except Exception as e:
                logger.error(f"Failed to close capture stream: {e}")
            logger.info("Recording thread stopped")

    def stop(self) -> None:
        """
        Stop the active recording session.

        Waits for the worker to close the device, which takes at most one poll
        interval. Calling ``stop`` while inactive logs and returns.
        """
        with self._lock:
            if self._state != RecordingState.ACTIVE:
                logger.info("Recording is not active")
                return
            self._state = RecordingState.STOP_REQUESTED
            session = self._session

        logger.info("Stopping recording...")
        if session is not None:
            session.stop.set()

        worker = self._worker
        if worker is not None:
            worker.join(timeout=self.config.poll_interval + self.config.startup_timeout)
            if worker.is_alive():
                logger.warning("Recording thread did not exit in time")
        self._worker = None

        with self._lock:
            self._state = RecordingState.INACTIVE
            self._session = None
            self._stream_format = None
            dropped = self._dropped_blocks

        if session is not None:
            session.sender.close()

        if dropped:
            logger.warning(f"Recording stopped, {dropped} block(s) dropped under load")
        else:
            logger.info("Recording stopped")
