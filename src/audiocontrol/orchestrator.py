"""
Orchestration of the live transcription pipeline.

The orchestrator wires the recorder, the audio processor and the transcription
service together and exposes a single start/stop control surface:

    Recorder -> AudioChannel -> AudioProcessor -> TranscriptionService -> on_text

Each session gets its own bounded channel and stop signal. A dedicated
consumption thread drains the channel in FIFO order, so segments are
transcribed one at a time and text is delivered in capture order.
"""

import logging
import threading
import time
from typing import Callable, Optional

import numpy as np

from .audio.channel import AudioChannel
from .audio.processor import AudioProcessor
from .audio.recorder import Recorder
from .audio.storage import AudioStorage
from .errors import ChannelClosed, DeviceError, EngineInitError
from .transcription.service import TranscriptionService

logger = logging.getLogger(__name__)

TextCallback = Callable[[str], None]


class Orchestrator:
    """Coordinates recording, processing and transcription for one session at a time."""

    # The consumption loop gives up after more than this many failed receives in a row
    MAX_CONSECUTIVE_FAILURES = 5

    def __init__(
        self,
        recorder: Recorder,
        processor: AudioProcessor,
        transcription_service: TranscriptionService,
        channel_buffer_size: int = 128,
        storage: Optional[AudioStorage] = None,
        receive_timeout: float = 0.1,
        failure_backoff: float = 0.01,
    ):
        """
        Initialize the orchestrator.

        Args:
            recorder: Capture component
            processor: Buffering and resampling component
            transcription_service: Initialized transcription service
            channel_buffer_size: Capacity of the recorder -> consumer channel, in chunks
            storage: Optional WAV recorder fed with every received chunk
            receive_timeout: Longest wait for a chunk before re-checking the stop signal
            failure_backoff: Pause after a failed receive (seconds)
        """
        self.recorder = recorder
        self.processor = processor
        self.transcription_service = transcription_service
        self.channel_buffer_size = channel_buffer_size
        self.storage = storage
        self.receive_timeout = receive_timeout
        self.failure_backoff = failure_backoff

        # Serializes start/stop; never taken by the consumption thread
        self._control_lock = threading.Lock()
        self._is_active = False
        self._stop_signal = threading.Event()
        self._consecutive_failures = 0
        self._consumer_thread: Optional[threading.Thread] = None

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def start(self, on_text: TextCallback) -> bool:
        """
        Start a recording and transcription session.

        Args:
            on_text: Called from the consumption thread with each transcribed chunk

        Returns:
            True if a session was started, False if one was already running

        Raises:
            DeviceError: If the recorder could not open the input device. The
                orchestrator stays idle and ``start`` may be retried.
            EngineInitError: If the transcription engine has not been initialized
        """
        with self._control_lock:
            if self._is_active:
                logger.warning("Orchestrator already active")
                return False

            if not self.transcription_service.is_initialized:
                raise EngineInitError("Transcription service must be initialized before recording")

            # Fresh signal per session so a consumer from the previous session keeps its stop flag
            stop_signal = threading.Event()
            self._stop_signal = stop_signal
            self._consecutive_failures = 0
            self._is_active = True

            channel = AudioChannel(self.channel_buffer_size)

            try:
                stream_format = self.recorder.start(channel)
            except DeviceError:
                self._is_active = False
                stop_signal.set()
                logger.error("Orchestrator start aborted: no capture stream")
                raise

            self._prepare_session(stream_format)

            self._consumer_thread = threading.Thread(
                target=self._consume,
                args=(channel, stop_signal, on_text),
                name="audiocontrol-consumer",
                daemon=True,
            )
            self._consumer_thread.start()

            logger.info(f"Orchestration started (channel capacity {self.channel_buffer_size})")
            return True

    def _prepare_session(self, stream_format) -> None:
        """Align the processor and storage with the format the device actually delivers."""
        config = self.processor.config
        if stream_format is not None and (
            stream_format.sample_rate != config.source_sample_rate or stream_format.channels != config.source_channels
        ):
            self.processor.reconfigure(
                source_sample_rate=stream_format.sample_rate,
                source_channels=stream_format.channels,
            )
        else:
            self.processor.reset()

        if self.storage is not None:
            self.storage.clear()
            if stream_format is not None:
                self.storage.set_source_format(stream_format.sample_rate, stream_format.channels)

    def stop(self) -> bool:
        """
        Stop the running session.

        The recorder is stopped synchronously (its device is released before
        this returns). The consumption thread is only signalled: it exits at
        its next loop iteration and may still finish the chunk it holds.

        Returns:
            True if a session was stopped, False if none was running
        """
        with self._control_lock:
            if not self._is_active:
                logger.info("Orchestrator not active")
                return False

            self._stop_signal.set()
            self._is_active = False

            self.recorder.stop()

            if self.storage is not None:
                try:
                    self.storage.save()
                except (OSError, ValueError) as e:
                    logger.error(f"Failed to save recording: {e}")

            logger.info("Orchestration stopped")
            return True

    def wait_for_consumer(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the consumption thread of the last session to exit.

        Returns:
            True if no consumption thread is running anymore
        """
        thread = self._consumer_thread
        if thread is None:
            return True
        thread.join(timeout=timeout)
        return not thread.is_alive()

    def _consume(self, channel: AudioChannel, stop_signal: threading.Event, on_text: TextCallback) -> None:
        """Consumption loop: channel -> processor -> transcription -> on_text."""
        logger.info("Consumption thread started")
        failures = 0

        while not stop_signal.is_set():
            try:
                chunk = channel.recv(timeout=self.receive_timeout)
            except ChannelClosed:
                failures += 1
                self._record_failures(stop_signal, failures)
                if failures > self.MAX_CONSECUTIVE_FAILURES:
                    logger.error("Too many failures receiving audio, stopping orchestration")
                    break
                time.sleep(self.failure_backoff)
                continue

            if chunk is None:
                continue

            if failures:
                failures = 0
                self._record_failures(stop_signal, failures)

            try:
                self._handle_chunk(chunk, on_text)
            except Exception as e:
                logger.error(f"Failed to process audio chunk: {e}")

        logger.info("Consumption thread stopped")

    def _record_failures(self, stop_signal: threading.Event, failures: int) -> None:
        # Only the current session's consumer reports its counter
        if stop_signal is self._stop_signal:
            self._consecutive_failures = failures

    def _handle_chunk(self, chunk: np.ndarray, on_text: TextCallback) -> None:
        if self.storage is not None:
            self.storage.add_samples(chunk)

        segment = self.processor.process(chunk)
        if segment is None:
            return

        text = self.transcription_service.transcribe(segment)
        if not text:
            return

        try:
            on_text(text)
        except Exception as e:
            logger.error(f"Failed to deliver transcription: {e}")
