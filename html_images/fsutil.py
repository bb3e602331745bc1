"""Filesystem helpers shared by the cache, codec and CLI."""

import os
import shutil
from pathlib import Path

# Transient and editor artefacts to ignore
TRANSIENT_SUFFIXES = {".swp", ".tmp", ".bak"}


def is_transient(p: Path) -> bool:
    n = p.name
    return (
        n.startswith(".#")         # Emacs lockfiles
        or n.endswith("~")         # backup files
        or n == ".DS_Store"
        or p.suffix.lower() in TRANSIENT_SUFFIXES
    )


def exists(path: Path) -> bool:
    return Path(path).exists()


def size_in_kb(path: Path) -> int:
    """File size in KiB, rounded."""
    return round(Path(path).stat().st_size / 1024)


def ensure_directory(path: Path) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def remove_recursive(path: Path) -> None:
    path = Path(path)
    if path.is_dir():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()


def atomic_output_path(target: Path) -> Path:
    """Sibling temp path used while `target` is being written."""
    target = Path(target)
    return target.with_name(f".{target.name}.{os.getpid()}.tmp")


def write_text_atomic(target: Path, text: str) -> None:
    tmp = atomic_output_path(target)
    try:
        with open(tmp, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp, target)
    except BaseException:
        if tmp.exists():
            tmp.unlink()
        raise
