"""
Audio capture backend using PyAudio (pyaudiowpatch on Windows).

This module hides the audio driver behind a small interface so the recorder
can be driven by real hardware or by a test double. A capture source opens the
default input device, negotiates a sample format the device supports, and
starts a callback stream that pushes float32 sample blocks to the caller
until it is closed.

Key features:
- Default input device discovery
- Sample rate / channel negotiation with fallbacks
- Callback-mode streaming (the driver thread delivers blocks)
- Device listing for diagnostics

Important: PyAudio is imported inside the methods that need it, not at module
level, so the pipeline can be imported and tested on machines without
PortAudio.
"""

import logging
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from ..errors import DeviceError

logger = logging.getLogger(__name__)

# Sample rates tried, in order, after the preferred and device default rates
FALLBACK_RATES = [44100, 48000, 22050, 16000, 8000]


@dataclass(frozen=True)
class StreamFormat:
    """Negotiated capture format. Samples are always delivered as float32."""

    sample_rate: int
    channels: int


@dataclass
class InputDevice:
    """An opened input device."""

    index: int
    name: str
    max_input_channels: int
    default_sample_rate: int
    handle: Any = field(default=None, repr=False)


class CaptureStream(ABC):
    """A running capture stream. Closing it stops the callbacks and frees the device."""

    @abstractmethod
    def close(self) -> None: ...


class CaptureSource(ABC):
    """Interface to the audio driver layer."""

    @abstractmethod
    def open_default_input(self) -> InputDevice:
        """Open the system default input device or raise ``DeviceError``."""

    @abstractmethod
    def negotiate_config(self, device: InputDevice, preferred: StreamFormat) -> StreamFormat:
        """Pick a format supported by ``device``, as close to ``preferred`` as possible."""

    @abstractmethod
    def start_stream(
        self,
        device: InputDevice,
        stream_format: StreamFormat,
        on_data: Callable[[np.ndarray], None],
        on_error: Callable[[str], None],
    ) -> CaptureStream:
        """Start delivering sample blocks to ``on_data`` on a driver thread."""

    def release(self, device: InputDevice) -> None:
        """Free a device that never got a running stream."""


def _import_pyaudio():
    # Platform-specific audio library import
    try:
        if sys.platform == "win32":
            import pyaudiowpatch as pyaudio
        else:
            import pyaudio
    except ImportError as e:
        raise DeviceError(f"PyAudio is required for audio capture ({e}). Install with: pip install pyaudio")
    return pyaudio


class PyAudioStream(CaptureStream):
    """Wraps a PyAudio stream together with the PyAudio instance that owns it."""

    def __init__(self, pa, stream):
        self._pa = pa
        self._stream = stream

    def close(self) -> None:
        if self._stream is not None:
            try:
                if self._stream.is_active():
                    self._stream.stop_stream()
                self._stream.close()
            except OSError as e:
                logger.warning(f"Error closing capture stream: {e}")
            self._stream = None

        if self._pa is not None:
            self._pa.terminate()
            self._pa = None


class PyAudioCaptureSource(CaptureSource):
    """
    Capture source backed by PortAudio through PyAudio.

    Streams are opened in callback mode with 32-bit float samples, so every
    block arrives on PortAudio's own thread.
    """

    def __init__(self, frames_per_buffer: int = 1024):
        """
        Initialize capture source.

        Args:
            frames_per_buffer: Frames delivered per callback
        """
        self.frames_per_buffer = frames_per_buffer

    def open_default_input(self) -> InputDevice:
        pyaudio = _import_pyaudio()
        pa = pyaudio.PyAudio()

        try:
            info = pa.get_default_input_device_info()
        except (IOError, OSError) as e:
            pa.terminate()
            raise DeviceError(f"No input device available: {e}")

        device = InputDevice(
            index=int(info["index"]),
            name=info["name"],
            max_input_channels=int(info["maxInputChannels"]),
            default_sample_rate=int(info["defaultSampleRate"]),
            handle=pa,
        )
        if device.max_input_channels <= 0:
            pa.terminate()
            raise DeviceError(f"Default device '{device.name}' has no input channels")

        logger.info(f"Opened input device [{device.index}] {device.name}")
        return device

    def negotiate_config(self, device: InputDevice, preferred: StreamFormat) -> StreamFormat:
        """
        Find a supported sample rate and channel count for the device.

        The preferred rate is tried first, then the device default, then the
        common fallback rates. Channels are capped at what the device offers.

        Raises:
            DeviceError: If no candidate rate is supported
        """
        pyaudio = _import_pyaudio()
        pa = device.handle
        channels = max(1, min(preferred.channels, device.max_input_channels))

        # Remove duplicates while preserving order
        rates_to_try = list(dict.fromkeys([preferred.sample_rate, device.default_sample_rate] + FALLBACK_RATES))

        for rate in rates_to_try:
            try:
                supported = pa.is_format_supported(
                    rate,
                    input_device=device.index,
                    input_channels=channels,
                    input_format=pyaudio.paFloat32,
                )
            except ValueError:
                continue
            if supported:
                if rate != preferred.sample_rate or channels != preferred.channels:
                    logger.warning(
                        f"Device '{device.name}' does not support {preferred.sample_rate}Hz/"
                        f"{preferred.channels}ch, using {rate}Hz/{channels}ch"
                    )
                return StreamFormat(sample_rate=int(rate), channels=channels)

        raise DeviceError(f"No supported float32 sample rate found for '{device.name}'")

    def start_stream(
        self,
        device: InputDevice,
        stream_format: StreamFormat,
        on_data: Callable[[np.ndarray], None],
        on_error: Callable[[str], None],
    ) -> CaptureStream:
        pyaudio = _import_pyaudio()
        pa = device.handle

        def callback(in_data, frame_count, time_info, status):
            if status & pyaudio.paInputOverflow:
                on_error("input overflow")
            if in_data:
                on_data(np.frombuffer(in_data, dtype=np.float32))
            return (None, pyaudio.paContinue)

        try:
            stream = pa.open(
                format=pyaudio.paFloat32,
                channels=stream_format.channels,
                rate=stream_format.sample_rate,
                input=True,
                frames_per_buffer=self.frames_per_buffer,
                input_device_index=device.index,
                stream_callback=callback,
            )
            stream.start_stream()
        except (IOError, OSError, ValueError) as e:
            raise DeviceError(f"Failed to start capture stream on '{device.name}': {e}")

        logger.info(
            f"Capture stream started: {stream_format.sample_rate}Hz, "
            f"{stream_format.channels} channel(s), {self.frames_per_buffer} frames/block"
        )
        return PyAudioStream(pa, stream)

    def release(self, device: InputDevice) -> None:
        if device.handle is not None:
            device.handle.terminate()
            device.handle = None

    @staticmethod
    def list_devices() -> List[Dict]:
        """
        List all available audio input devices.

        Returns:
            List of device information dictionaries
        """
        pyaudio = _import_pyaudio()
        pa = pyaudio.PyAudio()
        devices = []

        try:
            for i in range(pa.get_device_count()):
                info = pa.get_device_info_by_index(i)
                if info.get("maxInputChannels", 0) > 0:
                    devices.append(
                        {
                            "index": i,
                            "name": info.get("name", "Unknown"),
                            "channels": info.get("maxInputChannels", 0),
                            "sample_rate": int(info.get("defaultSampleRate", 0)),
                        }
                    )
        finally:
            pa.terminate()

        return devices


def default_input_name(source: Optional[CaptureSource] = None) -> Optional[str]:
    """Name of the default input device, or None if it cannot be opened."""
    source = source or PyAudioCaptureSource()
    try:
        device = source.open_default_input()
    except DeviceError as e:
        logger.warning(f"Default input device unavailable: {e}")
        return None
    name = device.name
    source.release(device)
    return name
