"""
Audio capture and processing for live speech-to-text transcription.

This package records from the default microphone on a background thread,
passes captured blocks through a bounded channel, and turns them into
fixed-format segments ready for the speech-to-text engine.

Main components:
- Recorder: Capture lifecycle with idempotent start/stop and drop-on-full backpressure
- AudioChannel: Bounded FIFO between the capture callback and the consumer
- AudioProcessor: Buffering, trimming and resampling into segments
- AudioStorage: Optional WAV copy of the session
- PyAudioCaptureSource: PortAudio backend for the recorder

Example usage:
    from audiocontrol.audio import AudioChannel, AudioProcessor, Recorder

    channel = AudioChannel(capacity=128)
    recorder = Recorder()
    recorder.start(channel)
    segment = AudioProcessor().process(channel.recv(timeout=1.0))
    recorder.stop()
"""

from .capture import CaptureSource, CaptureStream, InputDevice, PyAudioCaptureSource, StreamFormat
from .channel import AudioChannel
from .processor import AudioProcessor, ProcessorConfig
from .recorder import Recorder, RecorderConfig, RecordingState
from .storage import AudioStorage, StorageConfig
from .utils import convert_channels, float_to_int16, format_timestamp, resample

__all__ = [
    "AudioChannel",
    "AudioProcessor",
    "AudioStorage",
    "CaptureSource",
    "CaptureStream",
    "InputDevice",
    "ProcessorConfig",
    "PyAudioCaptureSource",
    "Recorder",
    "RecorderConfig",
    "RecordingState",
    "StorageConfig",
    "StreamFormat",
    "convert_channels",
    "float_to_int16",
    "format_timestamp",
    "resample",
]
