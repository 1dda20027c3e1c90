"""Shared test doubles for the capture device and the speech-to-text engine."""

import threading
import time
from typing import Callable, List, Optional

import numpy as np
import pytest

from audiocontrol.audio.capture import CaptureSource, CaptureStream, InputDevice, StreamFormat
from audiocontrol.errors import DeviceError, EngineInitError
from audiocontrol.transcription.engine import SpeechEngine


class FakeStream(CaptureStream):
    def __init__(self):
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeCaptureSource(CaptureSource):
    """Capture source whose blocks are pushed by the test instead of a driver."""

    def __init__(self, sample_rate: int = 44100, channels: int = 1, fail_on: Optional[str] = None):
        self.sample_rate = sample_rate
        self.channels = channels
        self.fail_on = fail_on
        self.open_count = 0
        self.release_count = 0
        self.streams: List[FakeStream] = []
        self._on_data: Optional[Callable] = None
        self._on_error: Optional[Callable] = None

    def open_default_input(self) -> InputDevice:
        self.open_count += 1
        if self.fail_on == "open":
            raise DeviceError("No input device available")
        return InputDevice(
            index=0,
            name="Fake Microphone",
            max_input_channels=self.channels,
            default_sample_rate=self.sample_rate,
        )

    def negotiate_config(self, device: InputDevice, preferred: StreamFormat) -> StreamFormat:
        if self.fail_on == "negotiate":
            raise DeviceError("Unsupported sample format")
        return StreamFormat(sample_rate=self.sample_rate, channels=self.channels)

    def start_stream(self, device, stream_format, on_data, on_error) -> CaptureStream:
        if self.fail_on == "stream":
            raise DeviceError("Failed to start stream")
        self._on_data = on_data
        self._on_error = on_error
        stream = FakeStream()
        self.streams.append(stream)
        return stream

    def release(self, device: InputDevice) -> None:
        self.release_count += 1

    @property
    def streaming(self) -> bool:
        return bool(self.streams) and not self.streams[-1].closed

    def push(self, block) -> None:
        """Deliver a block the way the driver thread would."""
        if self.streaming:
            self._on_data(np.asarray(block, dtype=np.float32))

    def report_error(self, message: str) -> None:
        if self._on_error is not None:
            self._on_error(message)


class FakeEngine(SpeechEngine):
    """Records every segment it is asked to decode."""

    def __init__(self, fail_init: bool = False, fail_transcribe: bool = False, delay: float = 0.0):
        self.fail_init = fail_init
        self.fail_transcribe = fail_transcribe
        self.delay = delay
        self.model_path: Optional[str] = None
        self.calls: List[int] = []
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self, model_path: str) -> None:
        if self.fail_init:
            raise EngineInitError(f"Failed to load model '{model_path}'")
        self.model_path = model_path
        self._initialized = True

    def transcribe(self, samples: np.ndarray) -> Optional[str]:
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.calls.append(len(samples))
            index = len(self.calls)
        if self.fail_transcribe:
            raise RuntimeError("decoder error")
        return f"segment {index}"


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.005) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def capture_source():
    return FakeCaptureSource()


@pytest.fixture
def engine():
    return FakeEngine()
