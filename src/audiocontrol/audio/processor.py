"""
Buffering and resampling of captured audio into transcription segments.

Captured blocks are small and arrive at the device rate. The processor
accumulates them until a full segment's worth of samples is buffered, then
hands back everything it holds, converted to the rate and channel layout the
speech-to-text engine expects, and starts over with an empty buffer.
Segments therefore never overlap and together cover all retained input.
"""

import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .utils import as_samples, convert_channels, resample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessorConfig:
    """Per-session buffering and conversion settings."""

    target_sample_rate: int = 16000
    target_channels: int = 1
    source_sample_rate: int = 44100
    source_channels: int = 1
    # Counted in buffered (source-rate, interleaved) samples
    min_samples_for_processing: int = 16000
    max_buffer_size: int = 160000

    def __post_init__(self):
        if self.min_samples_for_processing <= 0:
            raise ValueError("min_samples_for_processing must be positive")
        if self.max_buffer_size < self.min_samples_for_processing:
            raise ValueError(
                f"max_buffer_size ({self.max_buffer_size}) must be >= "
                f"min_samples_for_processing ({self.min_samples_for_processing})"
            )
        for name in ("target_sample_rate", "target_channels", "source_sample_rate", "source_channels"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @property
    def needs_conversion(self) -> bool:
        return (
            self.source_sample_rate != self.target_sample_rate or self.source_channels != self.target_channels
        )


class AudioProcessor:
    """Accumulate audio chunks and emit resampled segments."""

    def __init__(self, config: Optional[ProcessorConfig] = None):
        """
        Initialize the processor.

        Args:
            config: Buffering and conversion settings
        """
        self.config = config or ProcessorConfig()
        self._lock = threading.Lock()
        self._buffer = np.zeros(0, dtype=np.float32)

    @property
    def buffered_samples(self) -> int:
        with self._lock:
            return len(self._buffer)

    def reset(self) -> None:
        """Discard any partially accumulated audio."""
        with self._lock:
            self._buffer = np.zeros(0, dtype=np.float32)

    def reconfigure(self, **changes) -> ProcessorConfig:
        """
        Replace the session configuration, e.g. with the negotiated device format.

        The buffer is cleared, since samples already held were captured under
        the old format.

        Returns:
            The new configuration
        """
        with self._lock:
            self.config = dataclasses.replace(self.config, **changes)
            self._buffer = np.zeros(0, dtype=np.float32)
        logger.info(
            f"Processor configured: {self.config.source_sample_rate}Hz/{self.config.source_channels}ch -> "
            f"{self.config.target_sample_rate}Hz/{self.config.target_channels}ch"
        )
        return self.config

    def process(self, chunk) -> Optional[np.ndarray]:
        """
        Add a chunk to the buffer and return a segment once enough audio is held.

        If the buffer grows past ``max_buffer_size`` only the most recent
        ``min_samples_for_processing`` samples are kept. When the buffer holds
        at least ``min_samples_for_processing`` samples, all of them are
        returned (converted to the target format) and the buffer is emptied.

        Args:
            chunk: Interleaved float samples at the source format

        Returns:
            A segment ready for transcription, or None if more audio is needed
        """
        samples = as_samples(chunk)
        config = self.config

        with self._lock:
            buffer = np.concatenate((self._buffer, samples))

            if len(buffer) > config.max_buffer_size:
                # Keep only the most recent portion
                logger.warning(
                    f"Buffer too large ({len(buffer)} samples), trimmed to the most recent "
                    f"{config.min_samples_for_processing}"
                )
                buffer = buffer[-config.min_samples_for_processing :].copy()

            if len(buffer) < config.min_samples_for_processing:
                self._buffer = buffer
                return None

            self._buffer = np.zeros(0, dtype=np.float32)

        if not config.needs_conversion:
            return buffer

        return self._convert(buffer, config)

    @staticmethod
    def _convert(samples: np.ndarray, config: ProcessorConfig) -> np.ndarray:
        """Convert a segment from the source layout to the target layout."""
        channels = config.source_channels
        if config.source_channels != config.target_channels:
            samples = convert_channels(samples, config.source_channels, config.target_channels)
            channels = config.target_channels

        if config.source_sample_rate != config.target_sample_rate:
            samples = resample(samples, config.source_sample_rate, config.target_sample_rate, channels)

        return samples
