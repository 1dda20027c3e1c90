"""
Configuration management with three-tier precedence system:
1. Values from the YAML config file (or codebase defaults when absent)
2. Environment variables from .env
3. Explicit overrides (command-line options)

Precedence: Overrides > Environment Variables > Config File > Defaults
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .audio.processor import ProcessorConfig
from .audio.recorder import RecorderConfig
from .audio.storage import StorageConfig
from .commands.detector import CommandDetectorConfig
from .errors import ConfigError
from .transcription.service import TranscriptionConfig

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")


@dataclass
class RecordingConfig:
    """Capture format and optional WAV output."""

    capture_sample_rate: int = 44100
    capture_channels: int = 1
    output_path: str = "output.wav"
    save_to_file: bool = False
    output_sample_rate: int = 44100
    output_bits_per_sample: int = 16
    output_channels: int = 1


@dataclass
class TranscriptionSettings:
    """Whisper model and segment sizing."""

    path_to_model: str = "tiny.en"
    language: str = "en"
    min_duration_seconds: float = 1.0
    whisper_sample_rate: int = 16000
    # Buffered capture samples per segment (about 1 second at 44.1kHz)
    min_transcription_samples: int = 44100
    max_buffer_samples: int = 441000


@dataclass
class PerformanceConfig:
    channel_buffer_size: int = 128


@dataclass
class AudioConfig:
    recording: RecordingConfig = field(default_factory=RecordingConfig)
    transcription: TranscriptionSettings = field(default_factory=TranscriptionSettings)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)


@dataclass
class CommandSettings:
    trigger_word: str = "hey computer"


@dataclass
class AppConfig:
    """Complete application configuration."""

    audio: AudioConfig = field(default_factory=AudioConfig)
    commands: CommandSettings = field(default_factory=CommandSettings)

    def recorder_config(self) -> RecorderConfig:
        recording = self.audio.recording
        return RecorderConfig(sample_rate=recording.capture_sample_rate, channels=recording.capture_channels)

    def processor_config(self) -> ProcessorConfig:
        recording = self.audio.recording
        transcription = self.audio.transcription
        return ProcessorConfig(
            target_sample_rate=transcription.whisper_sample_rate,
            target_channels=1,
            source_sample_rate=recording.capture_sample_rate,
            source_channels=recording.capture_channels,
            min_samples_for_processing=transcription.min_transcription_samples,
            max_buffer_size=transcription.max_buffer_samples,
        )

    def transcription_config(self) -> TranscriptionConfig:
        transcription = self.audio.transcription
        return TranscriptionConfig(
            language=transcription.language,
            min_duration_seconds=transcription.min_duration_seconds,
            sample_rate=transcription.whisper_sample_rate,
            model_path=transcription.path_to_model,
        )

    def storage_config(self) -> StorageConfig:
        recording = self.audio.recording
        return StorageConfig(
            output_path=recording.output_path,
            save_to_file=recording.save_to_file,
            output_sample_rate=recording.output_sample_rate,
            output_channels=recording.output_channels,
            output_bits_per_sample=recording.output_bits_per_sample,
        )

    def command_config(self) -> CommandDetectorConfig:
        return CommandDetectorConfig(trigger_word=self.commands.trigger_word)


class ConfigManager:
    """Manages configuration with three-tier precedence."""

    # Setting key -> (environment variable, config section path, attribute)
    SETTINGS = {
        "model_path": ("AUDIOCONTROL_MODEL_PATH", "audio.transcription", "path_to_model"),
        "language": ("AUDIOCONTROL_LANGUAGE", "audio.transcription", "language"),
        "channel_buffer_size": ("AUDIOCONTROL_CHANNEL_BUFFER_SIZE", "audio.performance", "channel_buffer_size"),
        "output_path": ("AUDIOCONTROL_OUTPUT_PATH", "audio.recording", "output_path"),
    }

    @staticmethod
    def get_display_value(key: str, base_value: Any, override: Optional[Any] = None) -> tuple[Any, str]:
        """
        Get configuration value and its source.

        Args:
            key: Setting key (one of ``SETTINGS``)
            base_value: Value from the config file or defaults
            override: Explicit override (highest priority)

        Returns:
            Tuple of (value, source) where source is 'override', 'env', or 'file'
        """
        # Check explicit override
        if override is not None and override != "":
            return override, "override"

        # Check environment variable
        env_name = ConfigManager.SETTINGS[key][0]
        env_value = os.getenv(env_name)
        if env_value is not None and env_value != "":
            return env_value, "env"

        return base_value, "file"

    @staticmethod
    def get(key: str, base_value: Any, override: Optional[Any] = None) -> Any:
        """Get configuration value from the highest priority source, cast to the type of ``base_value``."""
        value, source = ConfigManager.get_display_value(key, base_value, override)
        if source == "file" or isinstance(value, type(base_value)):
            return value
        try:
            return type(base_value)(value)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid value for {key} from {source}: {value!r}")

    @staticmethod
    def resolve(config: AppConfig, overrides: Optional[Dict[str, Any]] = None) -> AppConfig:
        """
        Apply environment variables and overrides on top of ``config``.

        Args:
            config: Configuration loaded from file or defaults
            overrides: Setting key -> value, e.g. from command-line options

        Returns:
            New AppConfig with every resolvable setting applied
        """
        overrides = overrides or {}
        resolved = dataclasses.replace(
            config,
            audio=dataclasses.replace(
                config.audio,
                recording=dataclasses.replace(config.audio.recording),
                transcription=dataclasses.replace(config.audio.transcription),
                performance=dataclasses.replace(config.audio.performance),
            ),
        )

        for key, (_, section_path, attribute) in ConfigManager.SETTINGS.items():
            section = resolved
            for part in section_path.split("."):
                section = getattr(section, part)
            value = ConfigManager.get(key, getattr(section, attribute), overrides.get(key))
            setattr(section, attribute, value)

        return resolved


def _section(cls, data: Optional[Dict[str, Any]], name: str):
    """Build a config section from a mapping, ignoring unknown keys."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")

    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.debug(f"Ignoring unknown keys in '{name}': {', '.join(unknown)}")

    try:
        return cls(**{key: value for key, value in data.items() if key in known})
    except TypeError as e:
        raise ConfigError(f"Invalid config section '{name}': {e}")


def _parse_config(data: Dict[str, Any]) -> AppConfig:
    """Parse config dictionary into AppConfig."""
    audio_data = data.get("audio") or {}
    if not isinstance(audio_data, dict):
        raise ConfigError("Config section 'audio' must be a mapping")

    audio = AudioConfig(
        recording=_section(RecordingConfig, audio_data.get("recording"), "audio.recording"),
        transcription=_section(TranscriptionSettings, audio_data.get("transcription"), "audio.transcription"),
        performance=_section(PerformanceConfig, audio_data.get("performance"), "audio.performance"),
    )
    commands = _section(CommandSettings, data.get("commands"), "commands")

    return AppConfig(audio=audio, commands=commands)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from file.

    Args:
        config_path: Path to config file. Uses ``config.yaml`` in the working
            directory if not specified.

    Returns:
        AppConfig instance (defaults if the file does not exist)

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.info(f"Config file not found at {path}, using defaults")
        return AppConfig()

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    config = _parse_config(data)
    logger.info(f"Loaded config from {path}")
    return config
