"""
Speech-to-text for captured audio segments.

Main components:
- WhisperEngine: Explicitly owned Whisper model with hallucination filtering
- TranscriptionService: Minimum-duration gate in front of the engine
"""

from .engine import SpeechEngine, WhisperEngine
from .service import TranscriptionConfig, TranscriptionService

__all__ = [
    "SpeechEngine",
    "WhisperEngine",
    "TranscriptionConfig",
    "TranscriptionService",
]
