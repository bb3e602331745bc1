"""Exceptions and per-reference notices."""

from dataclasses import dataclass
from typing import Optional

MALFORMED = "malformed"
INVALID_PARAMETER = "invalid-parameter"
GENERATION = "generation"
COLLISION = "collision"


class HtmlImagesError(Exception):
    pass


class ConfigError(HtmlImagesError):
    pass


class MalformedReference(HtmlImagesError):
    """Matched text that has no usable path component."""


class CodecError(HtmlImagesError):
    """Pillow or filesystem failure while reading or writing an image."""


@dataclass(frozen=True)
class Notice:
    """Problem found while handling a single reference. Never fatal."""

    category: str
    message: str
    reference: Optional[str] = None

    def __str__(self) -> str:
        if self.reference:
            return f"{self.message} [{self.reference}]"
        return self.message
