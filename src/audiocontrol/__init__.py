"""
Live microphone transcription.

Captured audio flows one way through the pipeline:

    Recorder -> AudioChannel -> AudioProcessor -> TranscriptionService -> on_text

and is controlled through a single ``Orchestrator.start`` / ``Orchestrator.stop``
surface.

Example usage:
    from audiocontrol import build_orchestrator, load_config

    orchestrator = build_orchestrator(load_config())
    orchestrator.transcription_service.initialize()
    orchestrator.start(print)
    ...
    orchestrator.stop()
"""

from .app import build_orchestrator
from .config import AppConfig, ConfigManager, load_config
from .errors import (
    AudioControlError,
    ChannelClosed,
    ChannelFull,
    ConfigError,
    DeviceError,
    EngineInitError,
)
from .orchestrator import Orchestrator

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "AudioControlError",
    "ChannelClosed",
    "ChannelFull",
    "ConfigError",
    "ConfigManager",
    "DeviceError",
    "EngineInitError",
    "Orchestrator",
    "build_orchestrator",
    "load_config",
]
