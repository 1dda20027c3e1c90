import pytest

from audiocontrol.config import AppConfig, ConfigManager, load_config
from audiocontrol.errors import ConfigError

SAMPLE_CONFIG = """
audio:
  recording:
    capture_sample_rate: 48000
    capture_channels: 2
    save_to_file: true
    output_path: recordings/out.wav
  transcription:
    path_to_model: base.en
    min_transcription_samples: 48000
    max_buffer_samples: 480000
    beam_size: 5
  performance:
    channel_buffer_size: 64
commands:
  trigger_word: okay house
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env_name, _, _ in ConfigManager.SETTINGS.values():
        monkeypatch.delenv(env_name, raising=False)


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


def test_missing_file_yields_defaults(tmp_path):
    config = load_config(tmp_path / "absent.yaml")

    assert config == AppConfig()
    assert config.audio.transcription.path_to_model == "tiny.en"
    assert config.audio.performance.channel_buffer_size == 128


def test_file_values_and_unknown_keys(tmp_path):
    config = load_config(_write(tmp_path, SAMPLE_CONFIG))

    assert config.audio.recording.capture_sample_rate == 48000
    assert config.audio.recording.capture_channels == 2
    assert config.audio.transcription.path_to_model == "base.en"
    assert config.audio.performance.channel_buffer_size == 64
    assert config.commands.trigger_word == "okay house"
    # Untouched settings keep their defaults
    assert config.audio.transcription.whisper_sample_rate == 16000


def test_component_configs_follow_file_values(tmp_path):
    config = load_config(_write(tmp_path, SAMPLE_CONFIG))

    processor = config.processor_config()
    assert processor.source_sample_rate == 48000
    assert processor.source_channels == 2
    assert processor.target_sample_rate == 16000
    assert processor.min_samples_for_processing == 48000

    assert config.recorder_config().sample_rate == 48000
    assert config.transcription_config().model_path == "base.en"
    assert config.storage_config().save_to_file is True
    assert config.command_config().trigger_word == "okay house"


def test_invalid_yaml_raises_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, "audio: [unclosed"))


def test_non_mapping_file_raises_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, "- just\n- a list\n"))


def test_non_mapping_section_raises_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, "audio:\n  recording: 44100\n"))


def test_empty_file_yields_defaults(tmp_path):
    assert load_config(_write(tmp_path, "")) == AppConfig()


def test_precedence_override_env_file(monkeypatch):
    monkeypatch.setenv("AUDIOCONTROL_MODEL_PATH", "small.en")

    assert ConfigManager.get_display_value("model_path", "tiny.en") == ("small.en", "env")
    assert ConfigManager.get_display_value("model_path", "tiny.en", "base") == ("base", "override")

    monkeypatch.delenv("AUDIOCONTROL_MODEL_PATH")
    assert ConfigManager.get_display_value("model_path", "tiny.en") == ("tiny.en", "file")


def test_empty_override_falls_through():
    assert ConfigManager.get_display_value("language", "en", "") == ("en", "file")


def test_env_values_are_cast_to_setting_type(monkeypatch):
    monkeypatch.setenv("AUDIOCONTROL_CHANNEL_BUFFER_SIZE", "32")

    assert ConfigManager.get("channel_buffer_size", 128) == 32


def test_invalid_env_value_raises_config_error(monkeypatch):
    monkeypatch.setenv("AUDIOCONTROL_CHANNEL_BUFFER_SIZE", "lots")

    with pytest.raises(ConfigError):
        ConfigManager.get("channel_buffer_size", 128)


def test_resolve_returns_new_config(monkeypatch):
    monkeypatch.setenv("AUDIOCONTROL_LANGUAGE", "de")
    base = AppConfig()

    resolved = ConfigManager.resolve(base, {"model_path": "medium", "output_path": None})

    assert resolved.audio.transcription.path_to_model == "medium"
    assert resolved.audio.transcription.language == "de"
    assert resolved.audio.recording.output_path == "output.wav"
    assert base.audio.transcription.path_to_model == "tiny.en"
    assert base.audio.transcription.language == "en"
