import logging
from contextlib import closing
from typing import Dict, List, Optional, Sequence, Tuple

from hogwarts_archive import catalog_io
from hogwarts_archive.config import settings
from hogwarts_archive.spellbook import SpellBook, TitleKey
from hogwarts_archive.student import Student
from hogwarts_archive.validators import TextValidator

logger = logging.getLogger(__name__)

NO_STUDENTS = "No students in system."
NO_SUCH_STUDENT = "No such student in system."
NO_SPELLBOOKS = "No spellbooks in system."
NO_SUCH_SPELLBOOK = "No such spellbook in system."
SPELLBOOK_EXISTS = "Spellbook already exists in system."
NOT_IN_FILE = "No such spellbook in file."
NO_SUCH_FILE = "No such file."
NO_SUCH_COLLECTION = "No such collection."
UNAVAILABLE = "Spellbook is currently unavailable."
UNABLE_TO_RETURN = "Unable to return spellbook."


class Archive:
    """Owns the spellbook catalog, the student registry and all rental state.

    Every public operation either applies its whole change or raises an
    ``ArchiveError`` before touching anything.
    """

    def __init__(self, first_student_id: Optional[int] = None) -> None:
        # Insertion order is kept so "first seen" casing is stable
        self.spellbooks: Dict[int, SpellBook] = {}
        self.students: Dict[int, Student] = {}
        self.next_student_id: int = settings.first_student_id if first_student_id is None else first_student_id

    # ------------------------- Students ------------------------- #
    def add_student(self, name: str) -> Student:
        name = name.strip()
        if not name:
            raise ValueError("Student name cannot be empty.")
        student = Student(self.next_student_id, name)
        self.students[student.student_id] = student
        self.next_student_id += 1
        logger.info(f"Student added: {student}")
        return student

    def get_student(self, student_id: int) -> Student:
        if not self.students:
            raise NotFoundError(NO_STUDENTS)
        student = self.students.get(student_id)
        if student is None:
            raise NotFoundError(NO_SUCH_STUDENT)
        return student

    def student_spellbooks(self, student_id: int) -> List[SpellBook]:
        """Spellbooks currently rented by the student, ordered by serial."""
        student = self.get_student(student_id)
        return [self.spellbooks[s] for s in sorted(student.current_books) if s in self.spellbooks]

    def student_history(self, student_id: int) -> List[SpellBook]:
        """Returned spellbooks in the order they came back."""
        student = self.get_student(student_id)
        return [self.spellbooks[s] for s in student.history if s in self.spellbooks]

    # ------------------------- Catalog import/export ------------------------- #
    def add_spellbook(self, filename: str, serial_number: int) -> SpellBook:
        """Import the single record with ``serial_number`` from ``filename``.

        The first record carrying that serial decides the outcome; a record with
        an empty field is reported as missing rather than skipped.
        """
        if serial_number in self.spellbooks:
            raise ConflictError(SPELLBOOK_EXISTS)
        try:
            with closing(catalog_io.read_records(filename)) as records:
                record = next((r for r in records if r.serial_number == serial_number), None)
        except OSError as e:
            logger.debug(f"Could not read {filename}: {e}")
            raise CatalogFileError(NO_SUCH_FILE) from e

        if record is None or not TextValidator.all_present(record.title, record.inventor, record.category):
            raise NotFoundError(NOT_IN_FILE)
        book = SpellBook.from_record(record)
        self.spellbooks[book.serial_number] = book
        logger.info(f"Spellbook {book.serial_number} imported from {filename}")
        return book

    def add_collection(self, filename: str) -> int:
        """Import every new record after the header line. Returns how many were added."""
        try:
            # Collected first so a read failure part way through adds nothing
            records = list(catalog_io.read_records(filename, skip_header=True))
        except OSError as e:
            logger.debug(f"Could not read {filename}: {e}")
            raise CatalogFileError(NO_SUCH_COLLECTION) from e

        added = 0
        for record in records:
            if record.serial_number in self.spellbooks:
                continue
            self.spellbooks[record.serial_number] = SpellBook.from_record(record)
            added += 1
        logger.info(f"Collection {filename}: {added} spellbooks added")
        return added

    def save_collection(self, filename: str) -> int:
        if not self.spellbooks:
            raise NotFoundError(NO_SPELLBOOKS)
        try:
            return catalog_io.write_collection(filename, self.spellbooks.values())
        except OSError as e:
            logger.debug(f"Could not write {filename}: {e}")
            raise CatalogFileError(NO_SUCH_FILE) from e

    # ------------------------- Catalog queries ------------------------- #
    def _require_spellbooks(self) -> None:
        if not self.spellbooks:
            raise NotFoundError(NO_SPELLBOOKS)

    def list_spellbooks(self, available_only: bool = False) -> List[SpellBook]:
        self._require_spellbooks()
        books = sorted(self.spellbooks.values(), key=lambda b: b.serial_number)
        if available_only:
            books = [b for b in books if b.is_available]
        return books

    def get_spellbook(self, serial_number: int) -> SpellBook:
        self._require_spellbooks()
        book = self.spellbooks.get(serial_number)
        if book is None:
            raise NotFoundError(NO_SUCH_SPELLBOOK)
        return book

    def spellbook_history(self, serial_number: int) -> Tuple[int, ...]:
        book = self.spellbooks.get(serial_number)
        if book is None:
            raise NotFoundError(NO_SUCH_SPELLBOOK)
        return book.history

    def list_categories(self) -> List[str]:
        self._require_spellbooks()
        return self._distinct_ignoring_case(b.category for b in self.spellbooks.values())

    def list_inventors(self) -> List[str]:
        self._require_spellbooks()
        return self._distinct_ignoring_case(b.inventor for b in self.spellbooks.values())

    def count_copies(self) -> List[Tuple[SpellBook, int]]:
        """One (representative, count) pair per distinct title and inventor."""
        self._require_spellbooks()
        groups: Dict[TitleKey, List[SpellBook]] = {}
        for book in self.spellbooks.values():
            groups.setdefault(TitleKey.of(book), []).append(book)
        return [(groups[key][0], len(groups[key])) for key in sorted(groups)]

    def spellbooks_of_category(self, category: str) -> List[SpellBook]:
        self._require_spellbooks()
        wanted = category.lower()
        matches = [b for b in self.spellbooks.values() if b.category.lower() == wanted]
        return sorted(matches, key=lambda b: b.short_format().lower())

    def spellbooks_by_inventor(self, fragment: str) -> List[SpellBook]:
        self._require_spellbooks()
        wanted = fragment.lower()
        matches = [b for b in self.spellbooks.values() if wanted in b.inventor.lower()]
        return sorted(matches, key=lambda b: b.short_format().lower())

    # ------------------------- Rentals ------------------------- #
    def _resolve_rental(self, student_id: int, serial_number: int) -> Tuple[Student, SpellBook]:
        student = self.get_student(student_id)
        book = self.get_spellbook(serial_number)
        return student, book

    def rent(self, student_id: int, serial_number: int) -> None:
        student, book = self._resolve_rental(student_id, serial_number)
        if not book.is_available:
            raise ConflictError(UNAVAILABLE)
        book.rented_by = student_id
        student.rent_book(serial_number)
        logger.info(f"Spellbook {serial_number} rented to {student_id}")

    def relinquish(self, student_id: int, serial_number: int) -> None:
        student, book = self._resolve_rental(student_id, serial_number)
        if not student.is_renting(serial_number) or book.rented_by != student_id:
            raise ConflictError(UNABLE_TO_RETURN)
        self._complete_loan(student, book)

    def relinquish_all(self, student_id: int) -> int:
        """Return everything the student holds, lowest serial first."""
        student = self.get_student(student_id)
        returned = 0
        for serial_number in sorted(student.current_books):
            book = self.spellbooks.get(serial_number)
            if book is not None and book.rented_by == student_id:
                self._complete_loan(student, book)
                returned += 1
        return returned

    def _complete_loan(self, student: Student, book: SpellBook) -> None:
        student.return_book(book.serial_number)
        book.rented_by = None
        book.add_history(student.student_id)
        logger.info(f"Spellbook {book.serial_number} returned by {student.student_id}")

    def common_spellbooks(self, student_ids: Sequence[int]) -> List[SpellBook]:
        """Spellbooks (by title and inventor) found in every listed student's history.

        Each result is the earliest catalogued copy with that title and inventor.
        """
        if not self.students:
            raise NotFoundError(NO_STUDENTS)
        self._require_spellbooks()
        if any(sid not in self.students for sid in student_ids):
            raise NotFoundError(NO_SUCH_STUDENT)

        key_sets = []
        for sid in student_ids:
            keys = {TitleKey.of(self.spellbooks[s]) for s in self.students[sid].history if s in self.spellbooks}
            key_sets.append(keys)
        common = set.intersection(*key_sets) if key_sets else set()

        representatives: Dict[TitleKey, SpellBook] = {}
        for book in self.spellbooks.values():
            key = TitleKey.of(book)
            if key in common and key not in representatives:
                representatives[key] = book
        return sorted(representatives.values(), key=lambda b: b.short_format().lower())

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _distinct_ignoring_case(values) -> List[str]:
        """Deduplicate ignoring case (first spelling wins) and sort ignoring case."""
        seen: Dict[str, str] = {}
        for value in values:
            seen.setdefault(value.lower(), value)
        return [seen[k] for k in sorted(seen)]


class ArchiveError(Exception):
    """A failure reported back to the user as a single output block."""


class NotFoundError(ArchiveError, LookupError):
    pass


class ConflictError(ArchiveError, ValueError):
    pass


class CatalogFileError(ArchiveError):
    pass
