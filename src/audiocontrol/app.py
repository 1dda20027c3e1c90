"""
Command-line front end for live transcription.

Usage:
    python -m audiocontrol
    python -m audiocontrol --config config.yaml --verbose
    python -m audiocontrol --model base --language en --duration 30
    python -m audiocontrol --list-devices
"""

import argparse
import logging
import queue
import sys
import time
from pathlib import Path
from typing import List, Optional

from .audio.capture import CaptureSource, PyAudioCaptureSource, default_input_name
from .audio.processor import AudioProcessor
from .audio.recorder import Recorder
from .audio.storage import AudioStorage
from .audio.utils import format_timestamp
from .commands.detector import CommandDetector
from .config import DEFAULT_CONFIG_PATH, AppConfig, ConfigManager, load_config
from .errors import AudioControlError, ConfigError, DeviceError, EngineInitError
from .orchestrator import Orchestrator
from .transcription.engine import SpeechEngine, WhisperEngine
from .transcription.service import TranscriptionService

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="audiocontrol",
        description="Live microphone transcription with Whisper",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--model", "-m", type=str, default=None, help="Whisper model name or checkpoint path")
    parser.add_argument("--language", "-l", type=str, default=None, help="Transcription language code")
    parser.add_argument("--output", "-o", type=str, default=None, help="WAV output path (enables saving)")
    parser.add_argument(
        "--duration",
        "-d",
        type=float,
        default=None,
        help="Stop after this many seconds (default: until Ctrl+C)",
    )
    parser.add_argument("--list-devices", action="store_true", help="List input devices and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_orchestrator(
    config: AppConfig,
    engine: Optional[SpeechEngine] = None,
    capture_source: Optional[CaptureSource] = None,
) -> Orchestrator:
    """
    Assemble the pipeline described by ``config``.

    The transcription service is created but not initialized; call
    ``orchestrator.transcription_service.initialize()`` before ``start``.

    Raises:
        ConfigError: If the settings describe an impossible pipeline
    """
    try:
        processor = AudioProcessor(config.processor_config())
    except ValueError as e:
        raise ConfigError(str(e))

    transcription_config = config.transcription_config()
    service = TranscriptionService(
        transcription_config,
        engine=engine or WhisperEngine(language=transcription_config.language),
    )

    storage_config = config.storage_config()
    storage = AudioStorage(storage_config) if storage_config.save_to_file else None

    return Orchestrator(
        recorder=Recorder(config.recorder_config(), capture_source=capture_source),
        processor=processor,
        transcription_service=service,
        channel_buffer_size=config.audio.performance.channel_buffer_size,
        storage=storage,
    )


def list_devices() -> int:
    try:
        devices = PyAudioCaptureSource.list_devices()
    except DeviceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    default_name = default_input_name()
    for device in devices:
        marker = "*" if device["name"] == default_name else " "
        print(f"{marker} [{device['index']:2d}] {device['name']}  ({device['channels']}ch, {device['sample_rate']}Hz)")
    return 0


def run(orchestrator: Orchestrator, detector: CommandDetector, duration: Optional[float] = None) -> None:
    """Record and print transcribed text until interrupted or ``duration`` elapses."""
    texts: queue.Queue = queue.Queue()
    started_at = time.monotonic()

    orchestrator.start(texts.put)
    print("Listening... press Ctrl+C to stop.", file=sys.stderr)

    try:
        while duration is None or time.monotonic() - started_at < duration:
            try:
                text = texts.get(timeout=0.2)
            except queue.Empty:
                continue

            print(f"[{format_timestamp(time.monotonic() - started_at)}] {text}", flush=True)

            command = detector.detect(text)
            if command is not None:
                print(f"  -> command: {command.name}", flush=True)
    except KeyboardInterrupt:
        pass
    finally:
        orchestrator.stop()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.list_devices:
        return list_devices()

    try:
        config = load_config(args.config)
        if args.output:
            config.audio.recording.save_to_file = True
        config = ConfigManager.resolve(
            config,
            {"model_path": args.model, "language": args.language, "output_path": args.output},
        )
        orchestrator = build_orchestrator(config)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    try:
        orchestrator.transcription_service.initialize()
    except EngineInitError as e:
        logger.error(f"Cannot start without a transcription engine: {e}")
        return 1

    try:
        run(orchestrator, CommandDetector(config.command_config()), duration=args.duration)
    except AudioControlError as e:
        logger.error(f"Recording failed: {e}")
        return 1

    return 0
