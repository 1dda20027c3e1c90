"""
Transcription service: duration gate in front of the speech-to-text engine.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..errors import EngineInitError
from .engine import SpeechEngine, WhisperEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriptionConfig:
    """Settings for the transcription service."""

    language: str = "en"
    min_duration_seconds: float = 1.0
    sample_rate: int = 16000
    model_path: str = "tiny.en"

    @property
    def min_samples(self) -> int:
        """Shortest segment, in samples, that is worth sending to the engine."""
        return int(self.min_duration_seconds * self.sample_rate)


class TranscriptionService:
    """Front end to a speech-to-text engine."""

    def __init__(self, config: Optional[TranscriptionConfig] = None, engine: Optional[SpeechEngine] = None):
        """
        Initialize the service.

        Args:
            config: Transcription settings
            engine: Engine instance (defaults to a WhisperEngine for ``config.language``)
        """
        self.config = config or TranscriptionConfig()
        self.engine = engine or WhisperEngine(language=self.config.language)

    @property
    def is_initialized(self) -> bool:
        return self.engine.is_initialized

    def initialize(self) -> None:
        """
        Load the engine from ``config.model_path``.

        Raises:
            EngineInitError: If the model cannot be loaded
        """
        self.engine.initialize(self.config.model_path)

    def transcribe(self, samples: np.ndarray) -> Optional[str]:
        """
        Transcribe a segment.

        Segments shorter than ``min_duration_seconds`` are skipped without
        touching the engine. Engine failures are logged and produce no text.

        Args:
            samples: Mono samples at ``config.sample_rate``

        Returns:
            Recognized text, or None

        Raises:
            EngineInitError: If called before ``initialize``
        """
        min_samples = self.config.min_samples
        if len(samples) < min_samples:
            logger.debug(
                f"Less than {self.config.min_duration_seconds}s of audio "
                f"({len(samples)} < {min_samples} samples). Skipping..."
            )
            return None

        if not self.engine.is_initialized:
            raise EngineInitError("Transcription engine used before initialize()")

        logger.debug(f"Transcribing {len(samples) / self.config.sample_rate:.2f}s of audio")
        try:
            return self.engine.transcribe(samples)
        except Exception as e:
            logger.error(f"Failed to transcribe audio: {e}")
            return None
