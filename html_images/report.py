"""Console status lines for generated artifacts, batches and notices."""

import sys
from typing import Optional, TextIO

from .errors import GENERATION, Notice

MAX_LABEL_LENGTH = 30


def short_label(name: str) -> str:
    if len(name) > MAX_LABEL_LENGTH:
        return name[:MAX_LABEL_LENGTH - 1] + "…"
    return name


class Reporter:
    def __init__(self, quiet: bool = False, out: Optional[TextIO] = None, err: Optional[TextIO] = None):
        self.quiet = quiet
        self.out = out
        self.err = err

    def _print(self, line: str, stream: Optional[TextIO]) -> None:
        print(line, file=stream or sys.stdout)

    def notice(self, notice: Notice) -> None:
        prefix = "ERR   " if notice.category == GENERATION else "WARN  "
        self._print(f"{prefix}{notice}", self.err or sys.stderr)

    def generated(self, name: str, original_kb: Optional[int], new_kb: Optional[int], seconds: float) -> None:
        if self.quiet:
            return
        sizes = f"({original_kb} kB -> {new_kb} kB)"
        self._print(f"GEN   {short_label(name):<40}{sizes:<30} in {seconds:.2f}s", self.out)

    def batch(self, generated: int, total: int, seconds: float) -> None:
        if self.quiet:
            return
        self._print(f"DONE  generated {generated} of {total} image reference(s) in {seconds:.2f}s", self.out)

    def info(self, message: str) -> None:
        if not self.quiet:
            self._print(message, self.out)
