import re
from typing import List, Optional

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")

INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1


class ArgumentParser:
    """Parsing helpers for command arguments and catalog fields.

    Every parser returns None for malformed input instead of raising, so callers
    can drop the offending line with an early return.
    """

    @staticmethod
    def parse_int(raw: Optional[str]) -> Optional[int]:
        """Parse a signed 32-bit decimal integer.

        Only ASCII digits with an optional sign are accepted; underscores,
        inner whitespace and out-of-range values are rejected.
        """
        if raw is None:
            return None
        if not _INT_PATTERN.fullmatch(raw):
            return None
        value = int(raw)
        if value < INT_MIN or value > INT_MAX:
            return None
        return value

    @staticmethod
    def split_args(text: str) -> List[str]:
        """Split on runs of whitespace; an empty string yields a single empty token."""
        return re.split(r"\s+", text)

    @staticmethod
    def parse_ints(tokens: List[str]) -> Optional[List[int]]:
        values = []
        for token in tokens:
            value = ArgumentParser.parse_int(token)
            if value is None:
                return None
            values.append(value)
        return values


class TextValidator:
    """Basic text checks shared by the importer and the command parser."""

    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        return text is None or not text.strip()

    @staticmethod
    def all_present(*fields: Optional[str]) -> bool:
        return not any(TextValidator.is_blank(f) for f in fields)
