"""
Exception types raised by the capture and transcription pipeline.

Only setup failures (no input device, model that cannot be loaded, unreadable
config) reach the caller. Channel conditions are raised between components and
handled inside the pipeline.
"""


class AudioControlError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(AudioControlError):
    """Configuration file could not be read or holds invalid values."""


class DeviceError(AudioControlError):
    """No input device, unsupported format, or the capture stream failed to start."""


class EngineInitError(AudioControlError):
    """The speech-to-text engine could not be loaded or was used before loading."""


class ChannelFull(AudioControlError):
    """A non-blocking send found the audio channel at capacity."""


class ChannelClosed(AudioControlError):
    """The audio channel was closed and holds no more chunks."""
