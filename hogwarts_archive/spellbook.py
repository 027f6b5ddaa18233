from __future__ import annotations

from typing import List, NamedTuple, Optional, Tuple


class TitleKey(NamedTuple):
    """Case-insensitive (title, inventor) key used to group copies of a spellbook."""

    title: str
    inventor: str

    @classmethod
    def of(cls, book: "SpellBook") -> "TitleKey":
        return cls(book.title.lower(), book.inventor.lower())


class SpellBook:
    """Represents a single spellbook in the archive catalog."""

    def __init__(self, serial_number: int, title: str, inventor: str, category: str) -> None:
        self.serial_number = serial_number
        self.title = title.strip()
        self.inventor = inventor.strip()
        self.category = category.strip()
        # None means the spellbook is on the shelf
        self.rented_by: Optional[int] = None
        self._history: List[int] = []

    @property
    def history(self) -> Tuple[int, ...]:
        """Student ids of completed loans, oldest first."""
        return tuple(self._history)

    @property
    def is_available(self) -> bool:
        return self.rented_by is None

    def add_history(self, student_id: int) -> None:
        self._history.append(student_id)

    def short_format(self) -> str:
        return f"{self.title} ({self.inventor})"

    def long_format(self) -> str:
        header = f"{self.serial_number}: {self.title} ({self.inventor}, {self.category})"
        if self.rented_by is None:
            status = "Currently available."
        else:
            status = f"Rented by: {self.rented_by}."
        return f"{header}\n{status}"

    def to_csv_row(self) -> str:
        return f"{self.serial_number},{self.title},{self.inventor},{self.category}"

    @staticmethod
    def from_record(record) -> "SpellBook":
        """Build a spellbook from a parsed catalog record."""
        return SpellBook(
            serial_number=record.serial_number,
            title=record.title,
            inventor=record.inventor,
            category=record.category,
        )
