"""
Turns a parsed reference into a transformation plan and its output name.

Output names follow:

    <stem>[.w<width>][.h<height>][.x<background>][.q<quality>].<format>

Planning never touches pixels. It may read an image header (to find out
whether a background would be applied), and it never reports problems
itself: every problem is returned as a Notice on the PlanResult.
"""

import dataclasses
import os
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Tuple, Union

from .codec import PillowCodec
from .config import FORMAT_ONLY, SKIP, TRANSFORM
from .errors import GENERATION, INVALID_PARAMETER, CodecError, Notice
from .options import FormatOptions, base_options, merge_options, normalize_format
from .references import ImageReference

GENERATE = "generate"
SUBSTITUTE = "substitute"
UNCHANGED = "unchanged"

FORMAT_PARAMS = ("format", "quality", "background")

INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
HEX_COLOR_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class ResizeStep:
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class FormatStep:
    target: str                   # format token as requested; used in the file name
    options: FormatOptions

    @property
    def codec_format(self) -> str:
        return normalize_format(self.target)


Step = Union[ResizeStep, FormatStep]


@dataclass(frozen=True)
class TransformPlan:
    source: Path
    steps: Tuple[Step, ...]
    fragments: Tuple[str, ...]
    base_name: str
    extension: str

    @property
    def output_name(self) -> str:
        return self.base_name + self.extension


@dataclass
class PlanResult:
    reference: ImageReference
    action: str
    plan: Optional[TransformPlan] = None
    replacement: Optional[str] = None
    notices: List[Notice] = field(default_factory=list)


def parse_int(value: str) -> Optional[int]:
    """Leading integer of `value`, like '100px' -> 100. None when there is none."""
    m = INT_PREFIX_RE.match(value or "")
    return int(m.group(1)) if m else None


def normalize_background(value: str) -> Optional[str]:
    """'#abc', 'abc' -> '#aabbcc'; '#aabbcc' unchanged; anything else -> None."""
    m = HEX_COLOR_RE.match((value or "").strip())
    if not m:
        return None
    digits = m.group(1).lower()
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return "#" + digits


def output_reference(temp_dirname: str, output_name: str) -> str:
    return (PurePosixPath(temp_dirname.replace("\\", "/")) / output_name).as_posix()


class TransformPlanner:
    def __init__(
        self,
        source_root: Path,
        temp_dirname: str,
        format_options: Dict[str, FormatOptions],
        mode: str = TRANSFORM,
        codec: Optional[PillowCodec] = None,
    ):
        self.source_root = Path(source_root)
        self.temp_dirname = temp_dirname
        self.format_options = format_options
        self.mode = mode
        self.codec = codec or PillowCodec()

    def plan(self, ref: ImageReference) -> PlanResult:
        result = PlanResult(reference=ref, action=UNCHANGED)
        if self.mode == SKIP:
            result.action = SUBSTITUTE
            result.replacement = ref.path
            return result

        source = self.source_root / ref.path
        stem, ext = os.path.splitext(PurePosixPath(ref.path).name)
        if self.mode == FORMAT_ONLY:
            built = self._plan_format_only(ref, stem, result)
        else:
            built = self._plan_transform(ref, source, stem, ext, result)
        if built is None:
            return result

        steps, fragments, base_name, extension = built
        plan = TransformPlan(
            source=source,
            steps=tuple(steps),
            fragments=tuple(fragments),
            base_name=base_name,
            extension=extension,
        )
        if not plan.steps or plan.output_name == ref.stripped:
            return result
        result.action = GENERATE
        result.plan = plan
        result.replacement = output_reference(self.temp_dirname, plan.output_name)
        return result

    # ---------- modes ----------

    def _plan_format_only(self, ref, stem, result):
        fmt = ref.params.get("format")
        ext = os.path.splitext(ref.path)[1]
        if not fmt or normalize_format(fmt) == normalize_format(ext.lstrip(".")):
            # nothing to rename; serve the original file
            result.action = SUBSTITUTE
            result.replacement = ref.path
            return None
        if normalize_format(fmt) not in self.codec.supported_formats:
            self._warn(result, f"Image format {normalize_format(fmt)} is not supported.")
            return None
        return [FormatStep(fmt, FormatOptions())], [], stem, f".{fmt}"

    def _plan_transform(self, ref, source, stem, ext, result):
        params = ref.params
        steps: List[Step] = []
        fragments: List[str] = []
        base_name = stem
        extension = ext

        if "width" in params or "height" in params:
            width = self._dimension(result, params, "width")
            height = self._dimension(result, params, "height")
            steps.append(ResizeStep(width, height))
            if width is not None:
                fragments.append(f".w{width}")
            if height is not None:
                fragments.append(f".h{height}")
            base_name += "".join(fragments)

        if any(name in params for name in FORMAT_PARAMS):
            built = self._format_step(result, source, params.get("format") or ext.lstrip("."))
            if built is None:
                return None
            step, format_fragments = built
            steps.append(step)
            fragments.extend(format_fragments)
            extension = "".join(format_fragments) + f".{step.target}"

        return steps, fragments, base_name, extension

    # ---------- steps ----------

    def _format_step(self, result: PlanResult, source: Path, fmt: str) -> Optional[Tuple[FormatStep, List[str]]]:
        params = result.reference.params
        if not fmt:
            self._warn(result, "Cannot determine the output format.")
            return None
        lookup = normalize_format(fmt)
        if lookup not in self.codec.supported_formats:
            self._warn(result, f"Image format {lookup} is not supported.")
            return None

        quality = None
        if "quality" in params:
            quality = parse_int(params["quality"])
            if quality is None or not 1 <= quality <= 100:
                self._warn(result, f"Image quality {params['quality']} is not valid integer.")
                quality = None

        base = base_options(lookup, self.format_options)
        requested_bg = params.get("background", base.background)
        background = None
        if requested_bg is not None:
            background = normalize_background(requested_bg)
            if background is None:
                self._warn(result, f"Background {requested_bg} is not a 3 or 6 digit hex color.")

        handle = self.codec.open(source)
        fragments: List[str] = []
        try:
            if background and handle.set_background(background):
                fragments.append(f".x{background[1:]}")
            else:
                background = None
            options = dataclasses.replace(merge_options(base, quality=quality), background=background)
            applied = handle.encode(lookup, options)
        except CodecError as e:
            result.notices.append(Notice(GENERATION, str(e), result.reference.stripped))
            return None

        applied_quality = applied.get("quality")
        if quality is not None and applied_quality is None:
            self._warn(result, f"Quality is not applicable to {lookup} output.")
        if applied_quality is not None and applied_quality != self.codec.default_quality(lookup):
            fragments.append(f".q{applied_quality}")
        return FormatStep(fmt, options), fragments

    def _dimension(self, result: PlanResult, params: Dict[str, str], name: str) -> Optional[int]:
        if name not in params:
            return None
        value = parse_int(params[name])
        if value is None or value <= 0:
            self._warn(result, f"Parameter {name} with value {params[name]} is not parsable to integer.")
            return None
        return value

    def _warn(self, result: PlanResult, message: str) -> None:
        result.notices.append(Notice(INVALID_PARAMETER, message, result.reference.stripped))
