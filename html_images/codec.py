"""
Pillow-backed image codec.

A handle only records the requested operations; pixels are decoded and the
result encoded in `write_to()`. Planning can therefore ask a handle what it
would do (alpha present? which quality applies?) without paying for a decode.
"""

import os
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

from PIL import Image, ImageOps

from .errors import CodecError
from .fsutil import atomic_output_path
from .options import FormatOptions, normalize_format

# Quality Pillow uses when save() gets none
DEFAULT_QUALITY = {"jpeg": 75, "webp": 80}

JPEG_MODES = {"RGB", "L", "CMYK"}

_supported: Optional[FrozenSet[str]] = None


def supported_formats() -> FrozenSet[str]:
    global _supported
    if _supported is None:
        Image.init()
        _supported = frozenset(fmt.lower() for fmt in Image.SAVE)
    return _supported


def _resize(im: Image.Image, width: Optional[int], height: Optional[int]) -> Image.Image:
    if width and height:
        # both given: cover the box and crop the overflow
        return ImageOps.fit(im, (width, height), method=Image.Resampling.LANCZOS)
    if width:
        height = max(1, round(im.height * width / im.width))
    elif height:
        width = max(1, round(im.width * height / im.height))
    else:
        return im
    return im.resize((width, height), Image.Resampling.LANCZOS)


def _flatten(im: Image.Image, color: str) -> Image.Image:
    rgba = im.convert("RGBA")
    canvas = Image.new("RGBA", rgba.size, color)
    canvas.alpha_composite(rgba)
    return canvas.convert("RGB")


class ImageHandle:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._info: Optional[Tuple[str, bool]] = None
        self._size: Optional[Tuple[Optional[int], Optional[int]]] = None
        self._background: Optional[str] = None
        self._format: Optional[str] = None
        self._save_kwargs: Dict[str, Any] = {}

    def _probe(self) -> Tuple[str, bool]:
        if self._info is None:
            try:
                with Image.open(self.path) as im:
                    fmt = normalize_format(im.format or "")
                    has_alpha = ("A" in im.mode) or (im.info.get("transparency") is not None)
            except OSError as e:
                raise CodecError(f"Cannot read image {self.path}: {e}") from e
            self._info = (fmt, has_alpha)
        return self._info

    @property
    def source_format(self) -> str:
        return self._probe()[0]

    @property
    def has_alpha(self) -> bool:
        return self._probe()[1]

    def resize(self, width: Optional[int] = None, height: Optional[int] = None) -> None:
        self._size = (width, height)

    def set_background(self, color: str) -> bool:
        """Flatten transparency onto `color`. Returns False when there is nothing to flatten."""
        if not self.has_alpha:
            return False
        self._background = color
        return True

    def encode(self, fmt: str, options: FormatOptions) -> Dict[str, Any]:
        """Select the output encoder. Returns the save options that will be applied."""
        fmt = normalize_format(fmt)
        if fmt not in supported_formats():
            raise CodecError(f"Image format {fmt} is not supported.")
        applied = dict(options.save_kwargs())
        default = DEFAULT_QUALITY.get(fmt)
        if default is not None:
            applied["quality"] = options.quality if options.quality is not None else default
        self._format = fmt
        self._save_kwargs = applied
        return dict(applied)

    def write_to(self, target: Path) -> None:
        target = Path(target)
        tmp = atomic_output_path(target)
        try:
            with Image.open(self.path) as src:
                src.load()
                fmt = self._format or normalize_format(src.format or "")
                im = src
                if self._size:
                    im = _resize(im, *self._size)
                if self._background:
                    im = _flatten(im, self._background)
                if fmt == "jpeg" and im.mode not in JPEG_MODES:
                    im = im.convert("RGB")
                im.save(tmp, format=fmt.upper(), **self._save_kwargs)
            os.replace(tmp, target)
        except Exception as e:
            if tmp.exists():
                tmp.unlink()
            raise CodecError(f"Failed to write {target.name}: {e}") from e


class PillowCodec:
    def open(self, path: Path) -> ImageHandle:
        return ImageHandle(path)

    @property
    def supported_formats(self) -> FrozenSet[str]:
        return supported_formats()

    def default_quality(self, fmt: str) -> Optional[int]:
        return DEFAULT_QUALITY.get(normalize_format(fmt))
