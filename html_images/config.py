"""Pipeline settings, optional JSON config file and source root resolution."""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError
from .options import DEFAULT_FORMAT_OPTIONS, FormatOptions, normalize_format, options_for

TRANSFORM = "transform"
SKIP = "skip"
FORMAT_ONLY = "formatOnly"
MODES = (TRANSFORM, SKIP, FORMAT_ONLY)

DEFAULT_TEMP_DIRNAME = ".img"

# URL is the whole match; a query string is required so plain references are left alone
DEFAULT_PATTERN = re.compile(
    r"img/[^\s\"'()<>?]+\.(?:jpg|jpeg|png|gif|webp)\?[^\s\"'()<>]+",
    re.IGNORECASE,
)


@dataclass
class ImageOptions:
    temp_dirname: str = DEFAULT_TEMP_DIRNAME
    pattern: re.Pattern = DEFAULT_PATTERN
    mode: str = TRANSFORM
    format_options: Dict[str, FormatOptions] = field(
        default_factory=lambda: dict(DEFAULT_FORMAT_OPTIONS)
    )
    threads: Optional[int] = None

    def __post_init__(self):
        if self.mode not in MODES:
            raise ConfigError(f"Unknown operating mode {self.mode!r}. Expected one of: {', '.join(MODES)}")
        if not isinstance(self.temp_dirname, str) or not self.temp_dirname or Path(self.temp_dirname).is_absolute():
            raise ConfigError(f"tempDirectoryName must be a relative directory name, got {self.temp_dirname!r}")
        if isinstance(self.pattern, str):
            self.pattern = compile_pattern(self.pattern)


def compile_pattern(source: str) -> re.Pattern:
    try:
        return re.compile(source, re.IGNORECASE)
    except re.error as e:
        raise ConfigError(f"Invalid referencePattern {source!r}: {e}") from e


def effective_mode(mode: str, interactive: bool) -> str:
    """Modes only apply to interactive hosts; one-shot builds always transform."""
    return mode if interactive else TRANSFORM


def resolve_source_root(root: Path) -> Path:
    root = Path(root).resolve()
    if root.name != "src" and (root / "src").is_dir():
        return root / "src"
    return root


def _read_format_options(data: Any) -> Dict[str, FormatOptions]:
    if not isinstance(data, dict):
        raise ConfigError("perFormatOptions must be an object keyed by format name")
    merged = dict(DEFAULT_FORMAT_OPTIONS)
    for fmt, values in data.items():
        if not isinstance(fmt, str) or not isinstance(values, dict):
            raise ConfigError(f"perFormatOptions[{fmt!r}] must be an object")
        merged[normalize_format(fmt)] = options_for(fmt, values)
    return merged


def load_config(path: Path) -> ImageOptions:
    """
    Read a JSON config file and overlay it on the defaults.
    Example:
      {
        "tempDirectoryName": ".img",
        "operatingMode": "formatOnly",
        "perFormatOptions": {"webp": {"quality": 70, "method": 6}}
      }
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except (OSError, ValueError) as e:
        raise ConfigError(f"Could not read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a JSON object")

    kwargs: Dict[str, Any] = {}
    if "tempDirectoryName" in data:
        kwargs["temp_dirname"] = data["tempDirectoryName"]
    if "referencePattern" in data:
        if not isinstance(data["referencePattern"], str):
            raise ConfigError("referencePattern must be a string")
        kwargs["pattern"] = compile_pattern(data["referencePattern"])
    if "operatingMode" in data:
        kwargs["mode"] = data["operatingMode"]
    if "perFormatOptions" in data:
        kwargs["format_options"] = _read_format_options(data["perFormatOptions"])
    if "threads" in data:
        threads = data["threads"]
        if not isinstance(threads, int) or isinstance(threads, bool) or threads < 1:
            raise ConfigError("threads must be a positive integer")
        kwargs["threads"] = threads

    unknown = sorted(set(data) - {"tempDirectoryName", "referencePattern", "operatingMode", "perFormatOptions", "threads"})
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")
    return ImageOptions(**kwargs)
