"""Assemble books and run configuration from files or literal text."""

import logging
from pathlib import Path
from typing import Optional, Union

from ..core.book import Book
from ..core.config import BookConfig
from ..core.errors import ConfigurationError
from .file_handler import FileHandler

logger = logging.getLogger(__name__)


class BookLoader:
    """Handles loading the outline, instructions and configuration."""

    def __init__(self, file_handler: Optional[FileHandler] = None):
        self.file_handler = file_handler or FileHandler()

    def load_book(self, outline: str, instructions: Optional[str] = None, genre: str = "") -> Book:
        """Build a ``Book`` from outline and instructions given as text or file paths."""
        outline_text = self.file_handler.read_text_or_path(outline).strip()
        if not outline_text:
            raise ConfigurationError("An outline is required")
        instructions_text = self.file_handler.read_text_or_path(instructions or "").strip()
        logger.info(f"Loaded outline ({len(outline_text)} chars), instructions ({len(instructions_text)} chars)")
        return Book(outline=outline_text, instructions=instructions_text, genre=genre)

    def load_config(self, config_file: Optional[Union[str, Path]] = None) -> BookConfig:
        """Read YAML overrides on top of the defaults."""
        if config_file is None:
            return BookConfig()
        data = self.file_handler.read_yaml(config_file)
        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_file} must contain a mapping")
        logger.info(f"Loaded configuration from {config_file}")
        return BookConfig.from_dict(data)
