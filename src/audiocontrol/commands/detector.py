"""
Voice command detection over transcribed text.

A command is recognized when the text contains the trigger phrase and one of
the phrasings registered for a command. Matching is case-insensitive substring
search.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_COMMANDS = {
    "volume up": ["increase volume", "louder", "turn it up"],
    "volume down": ["decrease volume", "quieter", "turn it down"],
}


@dataclass
class Command:
    """A detected command."""

    name: str
    parameters: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CommandDetectorConfig:
    trigger_word: str = "hey computer"


class CommandDetector:
    """Detects registered commands in transcribed text."""

    def __init__(self, config: Optional[CommandDetectorConfig] = None, register_defaults: bool = True):
        self.config = config or CommandDetectorConfig()
        self.command_patterns: Dict[str, List[str]] = {}

        if register_defaults:
            for name, patterns in DEFAULT_COMMANDS.items():
                self.register_command(name, patterns)

    def register_command(self, command: str, patterns: List[str]) -> None:
        """
        Register a command and the phrasings that trigger it.

        Registering an existing command replaces its patterns.
        """
        self.command_patterns[command] = [p.lower() for p in patterns]

    def detect(self, text: str) -> Optional[Command]:
        """
        Detect a command in ``text``.

        Args:
            text: Transcribed text

        Returns:
            The first matching command in registration order, or None
        """
        text = text.lower()

        if self.config.trigger_word.lower() not in text:
            return None

        for name, patterns in self.command_patterns.items():
            for pattern in patterns:
                if pattern in text:
                    logger.info(f"Detected command '{name}' (matched '{pattern}')")
                    return Command(name=name)

        return None
