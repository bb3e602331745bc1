"""Realizes a TransformPlan with the codec and writes the artifact."""

from pathlib import Path

from .codec import ImageHandle, PillowCodec
from .planner import FormatStep, ResizeStep, TransformPlan


def apply_plan(handle: ImageHandle, plan: TransformPlan) -> ImageHandle:
    # resize always precedes format/quality/background in a plan
    for step in plan.steps:
        if isinstance(step, ResizeStep):
            handle.resize(step.width, step.height)
        elif isinstance(step, FormatStep):
            if step.options.background:
                handle.set_background(step.options.background)
            handle.encode(step.codec_format, step.options)
        else:
            raise TypeError(f"Unknown transform step {step!r}")
    return handle


def generate(codec: PillowCodec, plan: TransformPlan, target: Path) -> None:
    """Write the plan's output to `target`. Raises CodecError; never leaves a partial file."""
    handle = apply_plan(codec.open(plan.source), plan)
    handle.write_to(target)
