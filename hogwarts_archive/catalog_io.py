"""Reading and writing catalog CSV files.

Records are four unquoted comma-separated fields:
``serial,title,inventor,type``. Embedded commas are not escaped, so a line with
more or fewer than four fields is simply not a record. Undecodable bytes are
replaced rather than failing the whole file.
"""

import csv
import logging
from typing import Iterable, Iterator, List, NamedTuple, Optional

from hogwarts_archive.config import settings
from hogwarts_archive.validators import ArgumentParser

logger = logging.getLogger(__name__)

FIELD_COUNT = 4


class CatalogRecord(NamedTuple):
    serial_number: int
    title: str
    inventor: str
    category: str


def _reader(lines: Iterable[str]):
    # Quotes are ordinary characters: every comma splits
    return csv.reader(lines, delimiter=",", quoting=csv.QUOTE_NONE)


def parse_fields(fields: List[str]) -> Optional[CatalogRecord]:
    """Build a record from already split fields, or return None if they are not one."""
    if len(fields) != FIELD_COUNT:
        return None
    serial = ArgumentParser.parse_int(fields[0].strip())
    if serial is None:
        return None
    return CatalogRecord(serial, fields[1].strip(), fields[2].strip(), fields[3].strip())


def parse_record(line: str) -> Optional[CatalogRecord]:
    """Parse one catalog line, or return None if it is not a valid record."""
    return parse_fields(next(_reader([line]), []))


def read_records(path: str, skip_header: bool = False, encoding: Optional[str] = None) -> Iterator[CatalogRecord]:
    """Yield every valid record in ``path``.

    The file is closed when the generator is exhausted or discarded. Errors
    opening or reading the file propagate to the caller.
    """
    with open(path, "r", encoding=encoding or settings.file_encoding,
              errors=settings.file_errors, newline="") as f:
        reader = _reader(f)
        if skip_header:
            next(reader, None)
        for fields in reader:
            record = parse_fields(fields)
            if record is None:
                logger.debug(f"Skipping malformed catalog line {reader.line_num} in {path}")
                continue
            yield record


def write_collection(path: str, spellbooks: Iterable, encoding: Optional[str] = None) -> int:
    """Write the header and one row per spellbook, ordered by serial number."""
    rows = sorted(spellbooks, key=lambda b: b.serial_number)
    with open(path, "w", encoding=encoding or settings.file_encoding, newline="\n") as f:
        f.write(settings.collection_header + "\n")
        for book in rows:
            f.write(book.to_csv_row() + "\n")
    logger.info(f"Saved {len(rows)} spellbooks to {path}")
    return len(rows)
