from __future__ import annotations

from typing import FrozenSet, List, Set, Tuple


class Student:
    """A registered student who can rent spellbooks.

    ``current_books`` holds the serials on loan right now; ``history`` records
    each serial once it has been returned, in return order.
    """

    def __init__(self, student_id: int, name: str) -> None:
        self.student_id = student_id
        self.name = name
        self._current_books: Set[int] = set()
        self._history: List[int] = []

    @property
    def current_books(self) -> FrozenSet[int]:
        return frozenset(self._current_books)

    @property
    def history(self) -> Tuple[int, ...]:
        return tuple(self._history)

    def is_renting(self, serial_number: int) -> bool:
        return serial_number in self._current_books

    def rent_book(self, serial_number: int) -> None:
        self._current_books.add(serial_number)

    def return_book(self, serial_number: int) -> bool:
        """Move a serial from the held set to the history. No-op if it was not held."""
        if serial_number not in self._current_books:
            return False
        self._current_books.remove(serial_number)
        self._history.append(serial_number)
        return True

    def __str__(self) -> str:
        return f"{self.student_id}: {self.name}"
