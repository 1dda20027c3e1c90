"""Trigger-word command detection over transcribed text."""

from .detector import Command, CommandDetector, CommandDetectorConfig

__all__ = ["Command", "CommandDetector", "CommandDetectorConfig"]
