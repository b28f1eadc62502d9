"""File handling utilities."""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import yaml

from ..core.book import Book

# An H1 chapter heading on its own line
CHAPTER_HEADING = re.compile(r"^#[ \t]+(chapter[ \t]+\d+\b[^\n]*)$", re.IGNORECASE | re.MULTILINE)


class FileHandler:
    """Handles reading and writing text, YAML and JSON files."""

    def read_file(self, file_path: Union[str, Path]) -> str:
        """Read a UTF-8 text file, replacing undecodable bytes."""
        path = Path(file_path)
        return path.read_bytes().decode("utf-8", errors="replace")

    def read_text_or_path(self, value: str) -> str:
        """Return the contents of ``value`` if it names a file, else ``value`` itself."""
        if not value:
            return ""
        try:
            path = Path(value)
            if "\n" not in value and path.is_file():
                return self.read_file(path)
        except (OSError, ValueError):
            # Too long or otherwise invalid as a path: treat as literal text
            pass
        return value

    def write_file(self, file_path: Union[str, Path], content: str) -> None:
        """Write content to file."""
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')

    def write_json(self, file_path: Union[str, Path], data: Any) -> None:
        """Write JSON file."""
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open('w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def read_yaml(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Read YAML file. An empty file reads as an empty mapping."""
        path = Path(file_path)
        with path.open('r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def write_yaml(self, file_path: Union[str, Path], data: Dict[str, Any]) -> None:
        """Write YAML file."""
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open('w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    def write_book(self, file_path: Union[str, Path], book: Book) -> None:
        """Write every chapter, in order, separated by a blank line."""
        chapters = [chapter.content for chapter in book.chapters if chapter.content]
        self.write_file(file_path, "\n\n".join(chapters) + "\n")

    def split_chapters(self, content: str) -> List[Tuple[str, str]]:
        """
        Split a book into (title, text) pairs at H1 chapter headings.
        Text before the first heading is dropped if blank; a book without
        headings comes back as a single untitled chapter.
        """
        headings = list(CHAPTER_HEADING.finditer(content))
        if not headings:
            return [("", content.strip())]

        chapters = []
        preface = content[:headings[0].start()].strip()
        if preface:
            chapters.append(("", preface))
        for i, heading in enumerate(headings):
            end = headings[i + 1].start() if i + 1 < len(headings) else len(content)
            chapters.append((heading.group(1).strip(), content[heading.start():end].strip()))
        return chapters
