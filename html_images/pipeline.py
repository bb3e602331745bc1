"""
Rewrites image references in one blob of markup.

scan -> parse -> plan (all references, synchronously) -> claim/join the
artifact for every plan -> wait for artifacts in match order -> substitute.
Generation runs on a shared worker pool, so blobs transformed from several
threads at once still generate each output file only once.
"""

import concurrent.futures as cf
import functools
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from . import fsutil
from .cache import Artifact, ArtifactCache
from .codec import PillowCodec
from .config import ImageOptions, effective_mode
from .errors import COLLISION, GENERATION, MALFORMED, MalformedReference, Notice
from .generate import generate
from .planner import GENERATE, SUBSTITUTE, TransformPlanner
from .references import ImageReference, reference_from_match
from .report import Reporter
from .scanner import ReferenceScanner


@dataclass
class PipelineStats:
    generated: int = 0
    total: int = 0
    seconds: float = 0.0
    artifacts: List[Artifact] = field(default_factory=list)


@dataclass
class TransformResult:
    text: str
    rewritten: bool               # False: nothing matched, text is the input verbatim
    stats: PipelineStats
    notices: List[Notice] = field(default_factory=list)


@dataclass
class _Job:
    ref: ImageReference
    replacement: str
    future: Optional[cf.Future] = None
    owner: bool = False


class ImagePipeline:
    def __init__(
        self,
        source_root: Path,
        options: Optional[ImageOptions] = None,
        interactive: bool = False,
        codec: Optional[PillowCodec] = None,
        reporter: Optional[Reporter] = None,
        cache: Optional[ArtifactCache] = None,
    ):
        self.options = options or ImageOptions()
        self.source_root = Path(source_root).resolve()
        self.interactive = interactive
        self.mode = effective_mode(self.options.mode, interactive)
        self.temp_path = self.source_root / self.options.temp_dirname
        self.codec = codec or PillowCodec()
        self.reporter = reporter or Reporter(quiet=not interactive)
        self.planner = TransformPlanner(
            source_root=self.source_root,
            temp_dirname=self.options.temp_dirname,
            format_options=self.options.format_options,
            mode=self.mode,
            codec=self.codec,
        )
        self._pool: Optional[cf.ThreadPoolExecutor] = None
        if cache is None:
            self._pool = cf.ThreadPoolExecutor(max_workers=self.options.threads or os.cpu_count() or 4)
            cache = ArtifactCache(self._pool)
        self.cache = cache
        fsutil.ensure_directory(self.temp_path)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)

    def shutdown(self) -> None:
        """Abandon pending generation and remove the temp directory."""
        if self._pool is not None:
            self._pool.shutdown(wait=False, cancel_futures=True)
        self.cache.abandon()
        fsutil.remove_recursive(self.temp_path)

    def transform(self, text: str) -> TransformResult:
        start = time.perf_counter()
        matches = list(ReferenceScanner(text, self.options.pattern))
        if not matches:
            return TransformResult(text=text, rewritten=False, stats=PipelineStats())

        stats = PipelineStats(total=len(matches))
        notices: List[Notice] = []
        jobs: List[_Job] = []
        for m in matches:
            try:
                ref = reference_from_match(m)
            except MalformedReference as e:
                notices.append(Notice(MALFORMED, str(e), m.group(0)))
                continue
            result = self.planner.plan(ref)
            notices.extend(result.notices)
            if result.action == SUBSTITUTE:
                jobs.append(_Job(ref, result.replacement))
            elif result.action == GENERATE:
                plan = result.plan
                future, owner = self.cache.obtain(
                    self.temp_path / plan.output_name,
                    functools.partial(generate, self.codec, plan),
                    source=plan.source,
                )
                claimed_from = self.cache.source_of(self.temp_path / plan.output_name)
                if not owner and claimed_from is not None and claimed_from != plan.source:
                    notices.append(Notice(
                        COLLISION,
                        f"{plan.output_name} is already generated from {claimed_from}; reusing it for {plan.source}",
                        ref.stripped,
                    ))
                jobs.append(_Job(ref, result.replacement, future, owner))

        pieces: List[str] = []
        cursor = 0
        for job in jobs:
            if job.future is not None:
                try:
                    artifact = job.future.result()
                except cf.CancelledError:
                    notices.append(Notice(GENERATION, "Image generation abandoned at shutdown", job.ref.stripped))
                    continue
                except Exception as e:
                    notices.append(Notice(GENERATION, f"Failed to generate image: {e}", job.ref.stripped))
                    continue
                if job.owner and artifact.generated:
                    stats.generated += 1
                    stats.artifacts.append(artifact)
            begin, end = job.ref.span
            pieces.append(text[cursor:begin])
            pieces.append(job.replacement)
            cursor = end
        pieces.append(text[cursor:])
        stats.seconds = time.perf_counter() - start

        self._report(stats, notices)
        return TransformResult(text="".join(pieces), rewritten=True, stats=stats, notices=notices)

    def _report(self, stats: PipelineStats, notices: List[Notice]) -> None:
        for notice in notices:
            self.reporter.notice(notice)
        for artifact in stats.artifacts:
            self.reporter.generated(artifact.path.name, artifact.original_kb, artifact.new_kb, artifact.seconds)
        self.reporter.batch(stats.generated, stats.total, stats.seconds)
