"""
Per-format encoder option records.

Each supported output format gets its own frozen record. `quality` and
`background` are shared by all of them; the remaining fields map onto
Pillow's `Image.save()` keyword arguments for that format.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Type

from .errors import ConfigError


@dataclass(frozen=True)
class FormatOptions:
    quality: Optional[int] = None
    background: Optional[str] = None

    def save_kwargs(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class JpegOptions(FormatOptions):
    progressive: bool = False
    optimize: bool = False

    def save_kwargs(self) -> Dict[str, Any]:
        return {"progressive": self.progressive, "optimize": self.optimize}


@dataclass(frozen=True)
class PngOptions(FormatOptions):
    compress_level: int = 6
    optimize: bool = False

    def save_kwargs(self) -> Dict[str, Any]:
        return {"compress_level": self.compress_level, "optimize": self.optimize}


@dataclass(frozen=True)
class WebpOptions(FormatOptions):
    method: int = 4
    lossless: bool = False

    def save_kwargs(self) -> Dict[str, Any]:
        return {"method": self.method, "lossless": self.lossless}


@dataclass(frozen=True)
class GifOptions(FormatOptions):
    optimize: bool = False

    def save_kwargs(self) -> Dict[str, Any]:
        return {"optimize": self.optimize}


OPTION_TYPES: Dict[str, Type[FormatOptions]] = {
    "jpeg": JpegOptions,
    "png": PngOptions,
    "webp": WebpOptions,
    "gif": GifOptions,
}

# optimize+progressive is the closest Pillow gets to mozjpeg
DEFAULT_FORMAT_OPTIONS: Dict[str, FormatOptions] = {
    "jpeg": JpegOptions(quality=81, progressive=True, optimize=True),
    "png": PngOptions(quality=81, compress_level=9),
}


def normalize_format(fmt: str) -> str:
    """Lookup name for a requested format token (jpg -> jpeg)."""
    fmt = fmt.lower()
    return "jpeg" if fmt == "jpg" else fmt


def options_for(fmt: str, values: Mapping[str, Any]) -> FormatOptions:
    """Build the option record for `fmt` from a plain mapping (config file)."""
    fmt = normalize_format(fmt)
    cls = OPTION_TYPES.get(fmt, FormatOptions)
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown {fmt} option(s): {', '.join(unknown)}")
    try:
        return cls(**dict(values))
    except TypeError as e:
        raise ConfigError(f"Invalid {fmt} options: {e}") from e


def merge_options(
    base: FormatOptions,
    quality: Optional[int] = None,
    background: Optional[str] = None,
) -> FormatOptions:
    overrides: Dict[str, Any] = {}
    if quality is not None:
        overrides["quality"] = quality
    if background is not None:
        overrides["background"] = background
    return dataclasses.replace(base, **overrides) if overrides else base


def base_options(fmt: str, configured: Mapping[str, FormatOptions]) -> FormatOptions:
    fmt = normalize_format(fmt)
    found = configured.get(fmt)
    if found is not None:
        return found
    return OPTION_TYPES.get(fmt, FormatOptions)()
