"""
Optional WAV recording of the captured session.

Samples are collected in memory while the session runs and written as 16-bit
PCM when it ends.
"""

import logging
import os
import threading
import wave
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .utils import as_samples, convert_channels, float_to_int16, resample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageConfig:
    output_path: str = "output.wav"
    save_to_file: bool = False
    output_sample_rate: int = 44100
    output_channels: int = 1
    output_bits_per_sample: int = 16


class AudioStorage:
    """Collects raw captured samples and saves them as a WAV file."""

    def __init__(self, config: Optional[StorageConfig] = None):
        self.config = config or StorageConfig()
        self._lock = threading.Lock()
        self._chunks: list = []
        # Format of the samples passed to add_samples; converted to the output format on save
        self.source_sample_rate = self.config.output_sample_rate
        self.source_channels = self.config.output_channels

    def set_source_format(self, sample_rate: int, channels: int) -> None:
        with self._lock:
            self.source_sample_rate = sample_rate
            self.source_channels = channels

    @property
    def sample_count(self) -> int:
        with self._lock:
            return sum(len(c) for c in self._chunks)

    def add_samples(self, samples) -> None:
        if not self.config.save_to_file:
            return
        with self._lock:
            self._chunks.append(as_samples(samples).copy())

    def clear(self) -> None:
        with self._lock:
            self._chunks = []

    def save(self) -> bool:
        """
        Write the collected samples to ``output_path``.

        Returns:
            True if a file was written, False if saving is disabled

        Raises:
            ValueError: If the configured bit depth is not 16
            OSError: If the file cannot be written
        """
        if not self.config.save_to_file:
            return False

        if self.config.output_bits_per_sample != 16:
            raise ValueError(f"Only 16-bit output is supported, got {self.config.output_bits_per_sample}")

        with self._lock:
            audio = np.concatenate(self._chunks) if self._chunks else np.zeros(0, dtype=np.float32)
            source_rate = self.source_sample_rate
            source_channels = self.source_channels

        if source_channels != self.config.output_channels:
            audio = convert_channels(audio, source_channels, self.config.output_channels)
        if source_rate != self.config.output_sample_rate:
            audio = resample(audio, source_rate, self.config.output_sample_rate, self.config.output_channels)

        directory = os.path.dirname(self.config.output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with wave.open(self.config.output_path, "wb") as wf:
            wf.setnchannels(self.config.output_channels)
            wf.setsampwidth(2)
            wf.setframerate(self.config.output_sample_rate)
            wf.writeframes(float_to_int16(audio).tobytes())

        duration = len(audio) / float(self.config.output_sample_rate * self.config.output_channels)
        logger.info(f"WAV file written to {self.config.output_path} ({duration:.1f}s)")
        return True
