#!/usr/bin/env python3
"""
Rewrite image references in HTML files into optimised, transformed copies.

    <img src="img/photo.jpg?width=720&format=webp&quality=70">
becomes
    <img src=".img/photo.w720.q70.webp">

and .img/photo.w720.q70.webp is generated once from src/img/photo.jpg.

Supported query parameters: width, height, format, quality, background.
"""

import argparse
import concurrent.futures as cf
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from . import fsutil
from .config import MODES, ImageOptions, load_config, resolve_source_root
from .errors import ConfigError
from .pipeline import ImagePipeline
from .report import Reporter


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate transformed images referenced from HTML and rewrite the references.")
    parser.add_argument("files", nargs="*", type=Path, help="HTML files to rewrite (default: every *.html under the source root)")
    parser.add_argument("--root", default=".", help="Project root; its src/ directory is used when present")
    parser.add_argument("--config", default=None, help="JSON config file (tempDirectoryName, referencePattern, operatingMode, perFormatOptions, threads)")
    parser.add_argument("--mode", choices=MODES, default=None, help="Operating mode, only honoured with --dev")
    parser.add_argument("--dev", action="store_true", help="Interactive mode: honour --mode, print stats, remove the temp directory on Ctrl-C")
    parser.add_argument("--threads", type=int, default=None, help="Worker threads for image generation")
    parser.add_argument("--output", default=None, help="Write rewritten HTML here instead of in place")
    parser.add_argument("--dry-run", action="store_true", help="Generate images and report, but do not write HTML")
    parser.add_argument("--clean", action="store_true", help="Remove the temp directory and exit")
    parser.add_argument("--quiet", action="store_true", help="Only print warnings and errors")
    return parser.parse_args(argv)


def collect_html(source_root: Path, temp_dirname: str) -> List[Path]:
    temp_path = source_root / temp_dirname
    return sorted(
        p for p in source_root.rglob("*.html")
        if p.is_file() and not fsutil.is_transient(p) and temp_path not in p.parents
    )


def install_shutdown_handler(pipeline: ImagePipeline) -> None:
    def handler(signum, frame):
        pipeline.shutdown()
        sys.exit(0)

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, handler)


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return path.read_text(encoding="latin-1")


def destination_for(path: Path, source_root: Path, output_dir: Optional[Path]) -> Path:
    if output_dir is None:
        return path
    try:
        return output_dir / path.relative_to(source_root)
    except ValueError:
        return output_dir / path.name


def process_file(
    pipeline: ImagePipeline,
    path: Path,
    output_dir: Optional[Path],
    dry_run: bool,
) -> str:
    label = path.name
    try:
        text = read_text(path)
    except FileNotFoundError:
        return f"SKIP  {label}  vanished during scan"
    except OSError as e:
        return f"SKIP  {label}  read error: {e}"

    result = pipeline.transform(text)
    if not result.rewritten:
        return f"SKIP  {label}  no image references"
    if result.text == text and output_dir is None:
        return f"SKIP  {label}  nothing to rewrite"

    target = destination_for(path, pipeline.source_root, output_dir)
    if not dry_run:
        try:
            fsutil.ensure_directory(target.parent)
            fsutil.write_text_atomic(target, result.text)
        except OSError as e:
            return f"ERR   {label}: {e}"
    action = "DRY   " if dry_run else "EDIT  "
    return f"{action}{label}  references: {result.stats.total}, generated: {result.stats.generated}"


def build_options(args: argparse.Namespace) -> ImageOptions:
    options = load_config(Path(args.config)) if args.config else ImageOptions()
    if args.mode:
        options.mode = args.mode
    if args.threads is not None:
        if args.threads < 1:
            raise ConfigError("--threads must be a positive integer")
        options.threads = args.threads
    return options


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        options = build_options(args)
    except ConfigError as e:
        print(f"ERR   {e}", file=sys.stderr)
        return 1

    source_root = resolve_source_root(Path(args.root))
    if not source_root.is_dir():
        print(f"ERR   source root not found: {source_root}", file=sys.stderr)
        return 1

    if args.clean:
        fsutil.remove_recursive(source_root / options.temp_dirname)
        print(f"Removed {source_root / options.temp_dirname}")
        return 0

    files = [f.resolve() for f in args.files] or collect_html(source_root, options.temp_dirname)
    output_dir = Path(args.output).resolve() if args.output else None
    reporter = Reporter(quiet=args.quiet)

    with ImagePipeline(source_root, options, interactive=args.dev, reporter=reporter) as pipeline:
        if args.dev:
            install_shutdown_handler(pipeline)
        reporter.info(f"Source root: {source_root}")
        reporter.info(f"Found {len(files)} HTML file(s), mode={pipeline.mode}, temp={pipeline.temp_path}")
        # one thread per blob; image generation has its own pool inside the pipeline
        with cf.ThreadPoolExecutor(max_workers=options.threads or os.cpu_count() or 4) as ex:
            futures = [ex.submit(process_file, pipeline, f, output_dir, args.dry_run) for f in files]
            for fut in cf.as_completed(futures):
                reporter.info(fut.result())
    return 0


if __name__ == "__main__":
    sys.exit(main())
