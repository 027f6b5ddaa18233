import json
import os
import sys
from typing import Iterable, List, Optional, TextIO

from rich.console import Console
from rich.text import Text

from hogwarts_archive.config import settings

# Environment variable controlling how blocks are rendered
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "ARCHIVE_OUTPUT_MODE"
OUTPUT_MODES = {"plain", "json", "rich"}


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in OUTPUT_MODES:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    mode = os.environ.get(OUTPUT_MODE_ENV, settings.output_mode).lower()
    return mode if mode in OUTPUT_MODES else "plain"


class BlockWriter:
    """Writes command responses as tagged blocks.

    - plain: blocks separated by one blank line, first line prefixed with the tag
    - json: one ``{"lines": [...]}`` object per line, no tag
    - rich: plain layout printed through a Rich console with a styled tag
    """

    def __init__(self, stream: Optional[TextIO] = None, tag: Optional[str] = None, mode: Optional[str] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.tag = settings.output_tag if tag is None else tag
        self.mode = mode or get_output_mode()
        self.printed_any_block = False
        self._console: Optional[Console] = None
        if self.mode == "rich":
            self._console = Console(file=self.stream, highlight=False, markup=False, emoji=False, soft_wrap=True)

    def write(self, text: str) -> None:
        lines = text.split("\n")
        if self.mode == "json":
            self.stream.write(json.dumps({"lines": lines}, ensure_ascii=False) + "\n")
        elif self._console is not None:
            if self.printed_any_block:
                self._console.print()
            self._console.print(Text(self.tag, style="bold cyan") + Text(lines[0]))
            for line in lines[1:]:
                self._console.print(Text(line))
        else:
            if self.printed_any_block:
                print(file=self.stream)
            print(self.tag + lines[0], file=self.stream)
            for line in lines[1:]:
                print(line, file=self.stream)
        self.printed_any_block = True

    def flush(self) -> None:
        self.stream.flush()


# ------------------------- Formatting helpers ------------------------- #
def format_spellbooks(books: Iterable, long_form: bool = False) -> str:
    """Short forms one per line, or long forms separated by a blank line."""
    if long_form:
        return "\n\n".join(b.long_format() for b in books)
    return "\n".join(b.short_format() for b in books)


def format_lines(values: Iterable) -> str:
    return "\n".join(str(v) for v in values)


def format_copy_counts(counts: List[tuple]) -> str:
    return "\n".join(f"{book.short_format()}: {count}" for book, count in counts)


def format_added_count(added: int) -> str:
    if added == 0:
        return "No spellbooks have been added to the system."
    if added == 1:
        return "1 spellbook successfully added."
    return f"{added} spellbooks successfully added."
