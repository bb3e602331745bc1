"""
In-process cache of generated artifacts, keyed by absolute output path.

Each key gets one Future. The first caller claims the key and schedules
the generator; everyone else joins the same Future. The lock only covers
the claim, never the generation.
"""

import concurrent.futures as cf
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from . import fsutil


@dataclass(frozen=True)
class Artifact:
    path: Path
    generated: bool                      # False when the file was already on disk
    started: Optional[float] = None
    finished: Optional[float] = None
    original_kb: Optional[int] = None
    new_kb: Optional[int] = None

    @property
    def seconds(self) -> float:
        if self.started is None or self.finished is None:
            return 0.0
        return self.finished - self.started


class ArtifactCache:
    def __init__(self, executor: Optional[cf.Executor] = None):
        self._executor = executor
        self._lock = threading.Lock()
        self._entries: Dict[Path, cf.Future] = {}
        self._sources: Dict[Path, Optional[Path]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key) -> bool:
        with self._lock:
            return Path(key).resolve() in self._entries

    def claim(self, key: Path, source: Optional[Path] = None) -> Tuple[cf.Future, bool]:
        """Return (future, True) for the first caller of `key`, (existing future, False) after that."""
        key = Path(key).resolve()
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                return existing, False
            future: cf.Future = cf.Future()
            self._entries[key] = future
            self._sources[key] = source
            return future, True

    def obtain(
        self,
        key: Path,
        generator: Callable[[Path], None],
        source: Optional[Path] = None,
    ) -> Tuple[cf.Future, bool]:
        """
        Future resolving to the Artifact at `key`, plus whether this call owns it.
        `generator(path)` runs at most once per key for the life of the cache,
        and not at all if the file is already on disk.
        """
        future, owner = self.claim(key, source)
        if not owner:
            return future, False
        path = Path(key).resolve()
        if self._executor is None:
            self._produce(future, path, generator, source)
        else:
            try:
                work = self._executor.submit(self._produce, future, path, generator, source)
            except RuntimeError as e:
                # executor already shut down
                future.set_exception(e)
            else:
                # work dropped by the pool (shutdown with cancel_futures) cancels the slot
                work.add_done_callback(lambda w: w.cancelled() and future.cancel())
        return future, True

    def source_of(self, key: Path) -> Optional[Path]:
        """Source recorded by whoever claimed `key`."""
        with self._lock:
            return self._sources.get(Path(key).resolve())

    def abandon(self) -> None:
        """Cancel every slot whose generation has not started. Waiters get CancelledError."""
        with self._lock:
            slots = list(self._entries.values())
        for future in slots:
            future.cancel()

    @staticmethod
    def _produce(
        future: cf.Future,
        path: Path,
        generator: Callable[[Path], None],
        source: Optional[Path],
    ) -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            if fsutil.exists(path):
                future.set_result(Artifact(path=path, generated=False))
                return
            original_kb = fsutil.size_in_kb(source) if source is not None else None
            started = time.time()
            generator(path)
            finished = time.time()
            future.set_result(Artifact(
                path=path,
                generated=True,
                started=started,
                finished=finished,
                original_kb=original_kb,
                new_kb=fsutil.size_in_kb(path),
            ))
        except Exception as e:
            future.set_exception(e)
