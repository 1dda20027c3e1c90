"""
Speech-to-text engine backed by OpenAI Whisper.

The engine is an explicitly owned object: it is created by the application,
loaded once with ``initialize`` and then handed to the transcription service.
It holds the model weights and is not safe for concurrent decoding, so every
call goes through the orchestrator's single consumption thread.

Key features:
- Whisper model loading by name (``tiny.en``, ``base``...) or checkpoint path
- Decoding of 16kHz mono float32 arrays
- Hallucination detection and filtering on silent or near-silent audio

Important: whisper (and torch) are imported inside ``initialize``, not at
module level, so importing the pipeline stays cheap.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from ..errors import EngineInitError

logger = logging.getLogger(__name__)

# Whisper output on silence or background noise, compared lowercased
HALLUCINATIONS = frozenset(
    ["1.5%", "2.5%", "3.5%", "subscribe", "you", "thank you.", "thanks for watching!", "[blank_audio]", "(blank)"]
)


class SpeechEngine(ABC):
    """Interface of a speech-to-text engine."""

    @property
    @abstractmethod
    def is_initialized(self) -> bool: ...

    @abstractmethod
    def initialize(self, model_path: str) -> None:
        """Load the model. Raises ``EngineInitError`` on failure."""

    @abstractmethod
    def transcribe(self, samples: np.ndarray) -> Optional[str]:
        """Decode mono samples at the engine's fixed rate. Raises on engine failure."""


class WhisperEngine(SpeechEngine):
    """
    Whisper model wrapper.

    Loads the model once and decodes float32 mono audio at 16kHz, filtering
    segments that look like hallucinations.
    """

    SAMPLE_RATE = 16000

    def __init__(self, language: Optional[str] = "en", device: Optional[str] = None, no_speech_threshold: float = 0.6):
        """
        Initialize the engine (the model is loaded by ``initialize``).

        Args:
            language: Language code, None to auto-detect
            device: Torch device ("cpu", "cuda"), None lets Whisper choose
            no_speech_threshold: Segments above this no-speech probability are dropped
        """
        self.language = language
        self.device = device
        self.no_speech_threshold = no_speech_threshold
        self.model = None
        self.model_path: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self.model is not None

    def initialize(self, model_path: str) -> None:
        """
        Load the Whisper model.

        Args:
            model_path: Whisper model name or path to a checkpoint file

        Raises:
            EngineInitError: If whisper is not installed or the model fails to load
        """
        with self._lock:
            if self.model is not None:
                return

            try:
                import whisper
            except ImportError as e:
                raise EngineInitError(f"openai-whisper is not installed: {e}")

            logger.info(f"Loading Whisper model: {model_path}")
            try:
                self.model = whisper.load_model(model_path, device=self.device)
            except Exception as e:
                raise EngineInitError(f"Failed to load Whisper model '{model_path}': {e}")

            self.model_path = model_path
            logger.info(f"Loaded Whisper model: {model_path}")

    def transcribe(self, samples: np.ndarray) -> Optional[str]:
        """
        Transcribe mono 16kHz audio.

        Args:
            samples: Float32 samples in [-1, 1]

        Returns:
            Text of all segments that pass the hallucination filter, or None if
            nothing usable was recognized

        Raises:
            EngineInitError: If the model has not been loaded
        """
        if self.model is None:
            raise EngineInitError("Whisper model not initialized")

        audio = np.asarray(samples, dtype=np.float32)

        with self._lock:
            result = self.model.transcribe(audio, language=self.language, fp16=False, verbose=None)

        segments = result.get("segments", [])
        kept = [segment["text"].strip() for segment in segments if self._keep_segment(segment)]
        if len(kept) < len(segments):
            logger.debug(f"Dropped {len(segments) - len(kept)} of {len(segments)} segment(s) as non-speech")

        return " ".join(kept) or None

    def _keep_segment(self, segment: dict) -> bool:
        """Keep a decoded segment unless Whisper scored it as silence or it is filler output."""
        if segment.get("no_speech_prob", 0.0) > self.no_speech_threshold:
            return False
        text = segment["text"].strip().lower()
        if text in HALLUCINATIONS:
            return False
        # Punctuation-only output such as "..." or a music symbol
        return any(c.isalnum() for c in text)
