"""Line-oriented command dispatcher.

Each input line is matched case-insensitively against a fixed set of command
words, its arguments are parsed, and exactly one block (or nothing) is written.
Malformed arguments drop the line silently; lookup and conflict failures come
back from the archive as ``ArchiveError`` and are written as the block text.
"""

import logging
from typing import Callable, List, Optional, TextIO, Tuple

from hogwarts_archive.archive import NO_SUCH_STUDENT, Archive, ArchiveError
from hogwarts_archive.ui_helpers import (
    BlockWriter,
    format_added_count,
    format_copy_counts,
    format_lines,
    format_spellbooks,
)
from hogwarts_archive.validators import ArgumentParser, TextValidator

logger = logging.getLogger(__name__)

HELP_TEXT = "\n".join([
    "EXIT ends the archive process",
    "COMMANDS outputs this help string",
    "",
    "LIST ALL [LONG] outputs either the short or long string for all spellbooks",
    "LIST AVAILABLE [LONG] outputs either the short or long string for all available spellbooks",
    "NUMBER COPIES outputs the number of copies of each spellbook",
    "LIST TYPES outputs the name of every type in the system",
    "LIST INVENTORS outputs the name of every inventor in the system",
    "",
    "TYPE <type> outputs the short string of every spellbook with the specified type",
    "INVENTOR <inventor> outputs the short string of every spellbook by the specified inventor",
    "",
    "SPELLBOOK <serialNumber> [LONG] outputs either the short or long string for the specified spellbook",
    "SPELLBOOK HISTORY <serialNumber> outputs the rental history of the specified spellbook",
    "",
    "STUDENT <studentNumber> outputs the information of the specified student",
    "STUDENT SPELLBOOKS <studentNumber> outputs the spellbooks currently rented by the specified student",
    "STUDENT HISTORY <studentNumber> outputs the rental history of the specified student",
    "",
    "RENT <studentNumber> <serialNumber> loans out the specified spellbook to the given student",
    "RELINQUISH <studentNumber> <serialNumber> returns the specified spellbook from the student",
    "RELINQUISH ALL <studentNumber> returns all spellbooks rented by the specified student",
    "",
    "ADD STUDENT <name> adds a student to the system",
    "ADD SPELLBOOK <filename> <serialNumber> adds a spellbook to the system",
    "",
    "ADD COLLECTION <filename> adds a collection of spellbooks to the system",
    "SAVE COLLECTION <filename> saves the system to a csv file",
    "",
    "COMMON <studentNumber1> <studentNumber2> ... outputs the common spellbooks in students' history",
])

FAREWELL = "Ending Archive process."
SUCCESS = "Success."

Handler = Callable[[str, str], None]


class CommandDispatcher:
    """Reads commands, applies them to an ``Archive`` and writes the responses."""

    def __init__(self, archive: Optional[Archive] = None, writer: Optional[BlockWriter] = None) -> None:
        self.archive = archive if archive is not None else Archive()
        self.writer = writer if writer is not None else BlockWriter()
        self._exact = {
            "COMMANDS": self._help,
            "LIST TYPES": self._list_types,
            "LIST INVENTORS": self._list_inventors,
            "NUMBER COPIES": self._number_copies,
        }
        # Order matters: longer prefixes sharing a first word come first
        self._prefixes: List[Tuple[str, Handler]] = [
            ("ADD STUDENT ", self._add_student),
            ("ADD SPELLBOOK ", self._add_spellbook),
            ("ADD COLLECTION ", self._add_collection),
            ("SAVE COLLECTION ", self._save_collection),
            ("LIST ALL", self._list_all),
            ("LIST AVAILABLE", self._list_available),
            ("TYPE ", self._type),
            ("INVENTOR ", self._inventor),
            ("SPELLBOOK HISTORY ", self._spellbook_history),
            ("SPELLBOOK ", self._spellbook),
            ("STUDENT HISTORY ", self._student_history),
            ("STUDENT SPELLBOOKS ", self._student_spellbooks),
            ("STUDENT ", self._student),
            ("RENT ", self._rent),
            ("RELINQUISH ALL ", self._relinquish_all),
            ("RELINQUISH ", self._relinquish),
            ("COMMON ", self._common),
        ]

    # ------------------------- Read loop ------------------------- #
    def run(self, stream: TextIO) -> None:
        """Process ``stream`` until it is exhausted or an EXIT command is read."""
        try:
            for raw in stream:
                if not self.handle(raw):
                    break
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Input stream failed, stopping: {e}")
        finally:
            self.writer.flush()

    def handle(self, raw: str) -> bool:
        """Process one input line. Returns False once the session should end."""
        line = raw.strip()
        if not line:
            return True
        upper = line.upper()

        if upper == "EXIT":
            self.writer.write(FAREWELL)
            self.writer.flush()
            return False

        handler = self._exact.get(upper)
        if handler is not None:
            self._dispatch(handler, line, "")
            return True

        for prefix, handler in self._prefixes:
            if upper.startswith(prefix):
                self._dispatch(handler, line, line[len(prefix):].strip())
                return True

        logger.debug(f"Ignoring unknown command: {line!r}")
        return True

    def _dispatch(self, handler: Handler, line: str, rest: str) -> None:
        try:
            handler(line, rest)
        except ArchiveError as e:
            self.writer.write(str(e))

    def _drop(self, line: str) -> None:
        logger.debug(f"Dropping malformed command: {line!r}")

    # ------------------------- Commands ------------------------- #
    def _help(self, line: str, rest: str) -> None:
        self.writer.write(HELP_TEXT)

    def _add_student(self, line: str, rest: str) -> None:
        if TextValidator.is_blank(rest):
            return self._drop(line)
        self.archive.add_student(rest)
        self.writer.write(SUCCESS)

    def _add_spellbook(self, line: str, rest: str) -> None:
        args = ArgumentParser.split_args(rest)
        if len(args) != 2:
            return self._drop(line)
        serial = ArgumentParser.parse_int(args[1])
        if serial is None:
            return self._drop(line)
        book = self.archive.add_spellbook(args[0], serial)
        self.writer.write(f"Successfully added: {book.short_format()}.")

    def _add_collection(self, line: str, rest: str) -> None:
        if TextValidator.is_blank(rest):
            return self._drop(line)
        added = self.archive.add_collection(rest)
        self.writer.write(format_added_count(added))

    def _save_collection(self, line: str, rest: str) -> None:
        if TextValidator.is_blank(rest):
            return self._drop(line)
        self.archive.save_collection(rest)
        self.writer.write(SUCCESS)

    def _list_all(self, line: str, rest: str) -> None:
        books = self.archive.list_spellbooks()
        self.writer.write(format_spellbooks(books, self._wants_long(line)))

    def _list_available(self, line: str, rest: str) -> None:
        books = self.archive.list_spellbooks(available_only=True)
        if not books:
            self.writer.write("No spellbooks available.")
            return
        self.writer.write(format_spellbooks(books, self._wants_long(line)))

    @staticmethod
    def _wants_long(line: str) -> bool:
        return line.upper().endswith(" LONG")

    def _list_types(self, line: str, rest: str) -> None:
        self.writer.write(format_lines(self.archive.list_categories()))

    def _list_inventors(self, line: str, rest: str) -> None:
        self.writer.write(format_lines(self.archive.list_inventors()))

    def _number_copies(self, line: str, rest: str) -> None:
        self.writer.write(format_copy_counts(self.archive.count_copies()))

    def _type(self, line: str, rest: str) -> None:
        books = self.archive.spellbooks_of_category(rest)
        if not books:
            self.writer.write(f"No spellbooks with type {rest}.")
            return
        self.writer.write(format_spellbooks(books))

    def _inventor(self, line: str, rest: str) -> None:
        books = self.archive.spellbooks_by_inventor(rest)
        if not books:
            self.writer.write(f"No spellbooks by {rest}.")
            return
        self.writer.write(format_spellbooks(books))

    def _spellbook(self, line: str, rest: str) -> None:
        args = ArgumentParser.split_args(rest)
        serial = ArgumentParser.parse_int(args[0])
        if serial is None:
            return self._drop(line)
        long_form = len(args) >= 2 and args[1].upper() == "LONG"
        book = self.archive.get_spellbook(serial)
        self.writer.write(book.long_format() if long_form else book.short_format())

    def _spellbook_history(self, line: str, rest: str) -> None:
        serial = ArgumentParser.parse_int(rest)
        if serial is None:
            return self._drop(line)
        history = self.archive.spellbook_history(serial)
        if not history:
            self.writer.write("No rental history.")
            return
        self.writer.write(format_lines(history))

    def _student(self, line: str, rest: str) -> None:
        student_id = ArgumentParser.parse_int(rest)
        if student_id is None:
            return self._drop(line)
        self.writer.write(str(self.archive.get_student(student_id)))

    def _student_spellbooks(self, line: str, rest: str) -> None:
        student_id = ArgumentParser.parse_int(rest)
        if student_id is None:
            return self._drop(line)
        books = self.archive.student_spellbooks(student_id)
        if not books:
            self.writer.write("Student not currently renting.")
            return
        self.writer.write(format_spellbooks(books))

    def _student_history(self, line: str, rest: str) -> None:
        student_id = ArgumentParser.parse_int(rest)
        if student_id is None:
            return self._drop(line)
        books = self.archive.student_history(student_id)
        if not books:
            self.writer.write("No rental history for student.")
            return
        self.writer.write(format_spellbooks(books))

    def _rental_args(self, rest: str) -> Optional[List[int]]:
        args = ArgumentParser.split_args(rest)
        if len(args) != 2:
            return None
        return ArgumentParser.parse_ints(args)

    def _rent(self, line: str, rest: str) -> None:
        ids = self._rental_args(rest)
        if ids is None:
            return self._drop(line)
        self.archive.rent(ids[0], ids[1])
        self.writer.write(SUCCESS)

    def _relinquish(self, line: str, rest: str) -> None:
        ids = self._rental_args(rest)
        if ids is None:
            return self._drop(line)
        self.archive.relinquish(ids[0], ids[1])
        self.writer.write(SUCCESS)

    def _relinquish_all(self, line: str, rest: str) -> None:
        student_id = ArgumentParser.parse_int(rest)
        if student_id is None:
            return self._drop(line)
        self.archive.relinquish_all(student_id)
        self.writer.write(SUCCESS)

    def _common(self, line: str, rest: str) -> None:
        args = ArgumentParser.split_args(rest)
        if len(args) < 2:
            return self._drop(line)

        # Unlike the other commands, a bad id here is reported, and a repeated
        # id is reported before anything else
        ids: List[int] = []
        parse_failed = False
        for token in args:
            student_id = ArgumentParser.parse_int(token)
            if student_id is None:
                parse_failed = True
            elif student_id in ids:
                self.writer.write("Duplicate students provided.")
                return
            else:
                ids.append(student_id)
        if parse_failed:
            self.writer.write(NO_SUCH_STUDENT)
            return

        books = self.archive.common_spellbooks(ids)
        if not books:
            self.writer.write("No common spellbooks.")
            return
        self.writer.write(format_spellbooks(books))
