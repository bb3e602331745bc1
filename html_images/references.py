"""Splits a matched reference into its path and transformation parameters."""

from dataclasses import dataclass, field
from typing import Dict, Tuple
from urllib.parse import parse_qsl, unquote, urlsplit

from .errors import MalformedReference

QUOTE_CHARS = "\"'"


@dataclass(frozen=True)
class ImageReference:
    raw: str                      # exact matched text
    span: Tuple[int, int]         # offsets of `raw` in the scanned text
    stripped: str                 # `raw` without quote characters
    path: str                     # decoded, relative to the source root
    params: Dict[str, str] = field(default_factory=dict)


def parse_reference(raw: str, span: Tuple[int, int] = (0, 0)) -> ImageReference:
    """
    Parse one matched reference such as 'img/photo.jpg?width=100"'.
    Raises MalformedReference when there is no path component.
    """
    stripped = raw
    for ch in QUOTE_CHARS:
        stripped = stripped.replace(ch, "")
    # split on the first "?" so a literal "#" stays inside a parameter value
    location, _, query = stripped.partition("?")
    path = unquote(urlsplit(location).path).lstrip("/")
    if not path:
        raise MalformedReference(f"Image reference {raw!r} has no path component.")

    params: Dict[str, str] = {}
    for key, value in parse_qsl(query):
        # first occurrence wins
        params.setdefault(key, value)
    return ImageReference(raw=raw, span=span, stripped=stripped, path=path, params=params)


def reference_from_match(m) -> ImageReference:
    return parse_reference(m.group(0), m.span())
