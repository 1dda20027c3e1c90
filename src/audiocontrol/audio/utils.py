"""
Utility functions for audio sample manipulation.

This module provides the numeric helpers shared by the processor, the storage
writer and the command-line front end. All functions operate on interleaved
float32 PCM held in numpy arrays.

Key features:
- Linear-interpolation sample-rate conversion
- Channel down-mixing and up-mixing
- Float to 16-bit PCM quantization
- Timestamp formatting for display
"""

import numpy as np


def as_samples(data) -> np.ndarray:
    """Return ``data`` as a flat float32 array. A 1-D float32 array is returned as is."""
    audio = np.asarray(data, dtype=np.float32)
    if audio.ndim == 1:
        return audio
    return audio.reshape(-1)


def _frames(samples: np.ndarray, channels: int) -> np.ndarray:
    """View interleaved samples as a (frames, channels) matrix, dropping a trailing partial frame."""
    usable = (len(samples) // channels) * channels
    return samples[:usable].reshape(-1, channels)


def resample(samples: np.ndarray, source_rate: int, target_rate: int, channels: int = 1) -> np.ndarray:
    """
    Convert interleaved samples from one sample rate to another.

    Each channel is interpolated linearly onto the target time grid. The
    output holds ``int(frames * target_rate / source_rate)`` frames with the
    same channel count as the input.

    Args:
        samples: Interleaved audio samples
        source_rate: Sample rate of ``samples`` in Hz
        target_rate: Desired sample rate in Hz
        channels: Number of interleaved channels

    Returns:
        Resampled interleaved samples (float32). When the rates are equal the
        input array is returned unchanged.

    Raises:
        ValueError: If a rate or the channel count is not positive
    """
    if source_rate <= 0 or target_rate <= 0:
        raise ValueError(f"Sample rates must be positive, got {source_rate} -> {target_rate}")
    if channels <= 0:
        raise ValueError(f"Channel count must be positive, got {channels}")

    audio = as_samples(samples)
    if source_rate == target_rate or audio.size == 0:
        return audio

    frames = _frames(audio, channels)
    num_frames = frames.shape[0]
    target_length = int(num_frames * target_rate / source_rate)
    if target_length == 0:
        return np.zeros(0, dtype=np.float32)

    source_positions = np.arange(num_frames, dtype=np.float64)
    target_positions = np.arange(target_length, dtype=np.float64) * (source_rate / target_rate)

    resampled = np.empty((target_length, channels), dtype=np.float32)
    for channel in range(channels):
        resampled[:, channel] = np.interp(target_positions, source_positions, frames[:, channel])

    return resampled.reshape(-1)


def convert_channels(samples: np.ndarray, source_channels: int, target_channels: int) -> np.ndarray:
    """
    Change the channel count of interleaved samples.

    Multi-channel input is averaged down to mono first; a multi-channel target
    then receives that mono signal on every channel.

    Args:
        samples: Interleaved audio samples
        source_channels: Channel count of ``samples``
        target_channels: Desired channel count

    Returns:
        Interleaved samples with ``target_channels`` channels
    """
    if source_channels <= 0 or target_channels <= 0:
        raise ValueError(f"Channel counts must be positive, got {source_channels} -> {target_channels}")

    audio = as_samples(samples)
    if source_channels == target_channels:
        return audio

    mono = _frames(audio, source_channels).mean(axis=1).astype(np.float32)
    if target_channels == 1:
        return mono

    return np.repeat(mono[:, np.newaxis], target_channels, axis=1).reshape(-1)


def float_to_int16(audio: np.ndarray) -> np.ndarray:
    """
    Quantize float samples in [-1, 1] to 16-bit PCM.

    Values outside the range are clamped rather than wrapped.
    """
    scaled = as_samples(audio) * 32767.0
    return np.clip(scaled, -32768.0, 32767.0).astype(np.int16)


def format_timestamp(seconds: float) -> str:
    """
    Format seconds as MM:SS or HH:MM:SS.

    Args:
        seconds: Time in seconds

    Returns:
        Formatted time string
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"
