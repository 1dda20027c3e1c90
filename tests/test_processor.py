import numpy as np
import pytest

from audiocontrol.audio import processor as processor_mod
from audiocontrol.audio.processor import AudioProcessor, ProcessorConfig


def _identity_config(min_samples: int = 10, max_size: int = 20) -> ProcessorConfig:
    return ProcessorConfig(
        target_sample_rate=16000,
        target_channels=1,
        source_sample_rate=16000,
        source_channels=1,
        min_samples_for_processing=min_samples,
        max_buffer_size=max_size,
    )


def test_config_rejects_max_buffer_below_minimum():
    with pytest.raises(ValueError):
        ProcessorConfig(min_samples_for_processing=100, max_buffer_size=99)


def test_process_buffers_until_minimum_reached():
    processor = AudioProcessor(_identity_config(min_samples=10))

    assert processor.process(np.ones(4, dtype=np.float32)) is None
    assert processor.buffered_samples == 4
    assert processor.process(np.ones(3, dtype=np.float32)) is None
    assert processor.buffered_samples == 7


def test_segment_contains_all_buffered_samples_and_clears_buffer():
    processor = AudioProcessor(_identity_config(min_samples=10))
    first = np.arange(6, dtype=np.float32)
    second = np.arange(6, 12, dtype=np.float32)

    assert processor.process(first) is None
    segment = processor.process(second)

    assert segment is not None
    np.testing.assert_array_equal(segment, np.arange(12, dtype=np.float32))
    assert processor.buffered_samples == 0


def test_identity_configuration_passes_samples_through_unchanged(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("resample must not be called for identical formats")

    monkeypatch.setattr(processor_mod, "resample", fail)
    monkeypatch.setattr(processor_mod, "convert_channels", fail)

    processor = AudioProcessor(_identity_config(min_samples=5))
    chunk = np.array([0.1, -0.2, 0.3333333, 0.25, -1.0], dtype=np.float32)

    segment = processor.process(chunk)

    assert segment.dtype == np.float32
    np.testing.assert_array_equal(segment, chunk)


def test_oversized_append_keeps_most_recent_samples():
    processor = AudioProcessor(_identity_config(min_samples=10, max_size=20))
    chunk = np.arange(25, dtype=np.float32)

    segment = processor.process(chunk)

    np.testing.assert_array_equal(segment, np.arange(15, 25, dtype=np.float32))
    assert processor.buffered_samples == 0


def test_buffer_never_exceeds_max_for_random_chunk_sizes():
    config = _identity_config(min_samples=50, max_size=120)
    processor = AudioProcessor(config)
    rng = np.random.default_rng(1234)
    total_in = 0
    total_out = 0

    for _ in range(500):
        size = int(rng.integers(0, 200))
        before = processor.buffered_samples
        segment = processor.process(rng.standard_normal(size).astype(np.float32))
        total_in += size

        assert processor.buffered_samples <= config.max_buffer_size
        if segment is None:
            assert before + size < config.min_samples_for_processing
            assert processor.buffered_samples == before + size
        else:
            assert processor.buffered_samples == 0
            assert len(segment) >= config.min_samples_for_processing
            total_out += len(segment)

    # Only trimmed samples may be missing from the output
    assert total_out + processor.buffered_samples <= total_in


def test_segment_is_resampled_to_target_rate():
    config = ProcessorConfig(
        target_sample_rate=16000,
        source_sample_rate=44100,
        min_samples_for_processing=44100,
        max_buffer_size=441000,
    )
    processor = AudioProcessor(config)
    segment = None
    for _ in range(10):
        segment = processor.process(np.zeros(4410, dtype=np.float32))

    assert segment is not None
    assert len(segment) == 16000


def test_stereo_source_is_downmixed_to_mono():
    config = ProcessorConfig(
        target_sample_rate=16000,
        target_channels=1,
        source_sample_rate=16000,
        source_channels=2,
        min_samples_for_processing=8,
        max_buffer_size=80,
    )
    processor = AudioProcessor(config)
    interleaved = np.array([1.0, 0.0, 0.5, 0.5, -1.0, 1.0, 0.2, 0.4], dtype=np.float32)

    segment = processor.process(interleaved)

    np.testing.assert_allclose(segment, [0.5, 0.5, 0.0, 0.3], atol=1e-6)


def test_reconfigure_replaces_source_format_and_clears_buffer():
    processor = AudioProcessor(_identity_config(min_samples=10))
    processor.process(np.ones(5, dtype=np.float32))

    config = processor.reconfigure(source_sample_rate=48000, source_channels=2)

    assert config.source_sample_rate == 48000
    assert config.source_channels == 2
    assert config.min_samples_for_processing == 10
    assert processor.buffered_samples == 0
