"""Finds image references in raw markup text."""

import re
from typing import Iterator

from .config import DEFAULT_PATTERN


class ReferenceScanner:
    """
    Iterable over the matches of `pattern` in `text`, left to right and
    non-overlapping. Each iteration scans again from the start.
    """

    def __init__(self, text: str, pattern: re.Pattern = DEFAULT_PATTERN):
        if not isinstance(text, str):
            raise TypeError(f"Expected markup text, got {type(text).__name__}")
        self.text = text
        self.pattern = pattern

    def __iter__(self) -> Iterator:
        for m in self.pattern.finditer(self.text):
            if m.group(0):
                yield m


def scan(text: str, pattern: re.Pattern = DEFAULT_PATTERN) -> ReferenceScanner:
    return ReferenceScanner(text, pattern)
