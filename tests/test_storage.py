import wave

import numpy as np
import pytest

from audiocontrol.audio.storage import AudioStorage, StorageConfig


def _read(path):
    with wave.open(str(path), "rb") as wf:
        frames = np.frombuffer(wf.readframes(wf.getnframes()), dtype=np.int16)
        return wf.getnchannels(), wf.getframerate(), wf.getsampwidth(), frames


def test_disabled_storage_collects_nothing(tmp_path):
    storage = AudioStorage(StorageConfig(output_path=str(tmp_path / "out.wav"), save_to_file=False))

    storage.add_samples(np.ones(100, dtype=np.float32))

    assert storage.sample_count == 0
    assert storage.save() is False
    assert not (tmp_path / "out.wav").exists()


def test_save_writes_16_bit_pcm(tmp_path):
    path = tmp_path / "nested" / "out.wav"
    storage = AudioStorage(StorageConfig(output_path=str(path), save_to_file=True, output_sample_rate=16000))

    storage.add_samples(np.array([0.0, 0.5], dtype=np.float32))
    storage.add_samples(np.array([-0.5, 1.0, 2.0], dtype=np.float32))

    assert storage.save() is True
    channels, rate, width, frames = _read(path)
    assert (channels, rate, width) == (1, 16000, 2)
    np.testing.assert_array_equal(frames, [0, 16383, -16383, 32767, 32767])


def test_source_format_is_converted_on_save(tmp_path):
    path = tmp_path / "out.wav"
    storage = AudioStorage(StorageConfig(output_path=str(path), save_to_file=True, output_sample_rate=16000))
    storage.set_source_format(32000, 2)

    storage.add_samples(np.zeros(3200 * 2, dtype=np.float32))
    storage.save()

    channels, rate, _, frames = _read(path)
    assert (channels, rate) == (1, 16000)
    assert len(frames) == 1600


def test_clear_discards_collected_audio(tmp_path):
    storage = AudioStorage(StorageConfig(output_path=str(tmp_path / "out.wav"), save_to_file=True))
    storage.add_samples(np.ones(10, dtype=np.float32))

    storage.clear()

    assert storage.sample_count == 0


def test_unsupported_bit_depth_is_rejected(tmp_path):
    storage = AudioStorage(
        StorageConfig(output_path=str(tmp_path / "out.wav"), save_to_file=True, output_bits_per_sample=24)
    )

    with pytest.raises(ValueError):
        storage.save()
