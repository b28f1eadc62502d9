"""File I/O and data handling modules."""

from .book_loader import BookLoader
from .file_handler import FileHandler

__all__ = [
    "BookLoader",
    "FileHandler",
]
