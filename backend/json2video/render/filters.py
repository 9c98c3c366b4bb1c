"""
FFmpeg filter chain composition.

Builds the ``-vf`` chain that turns a looped still frame into the requested
output geometry. Everything here is pure and deterministic: the same job
parameters always yield the same chain.

Stage order:
1. ``format=yuv420p``   pixel-format normalization
2. ``crop`` or ``scale+pad``   only when input and output sizes differ
3. ``zoompan``           only when zoom != 0; works on the cropped/padded frame
4. ``scale=OW:OH``       guarantees exact output dimensions after zoom rounding
"""

import math
from dataclasses import dataclass, field
from fractions import Fraction

PIXEL_FORMAT = "yuv420p"

# Per-frame zoom rate at |zoom| == 100
MAX_ZOOM_RATE = 0.1
ZOOM_CEILING = 2.0
ZOOM_FLOOR = 1.0


@dataclass(frozen=True)
class FilterStage:
    """One ffmpeg filter, e.g. ``crop=400:400:200:100``."""

    name: str
    args: str = ""

    def __str__(self) -> str:
        return f"{self.name}={self.args}" if self.args else self.name


@dataclass(frozen=True)
class CropRegion:
    width: int
    height: int
    x: int
    y: int

    def to_stage(self) -> FilterStage:
        return FilterStage("crop", f"{self.width}:{self.height}:{self.x}:{self.y}")


@dataclass(frozen=True)
class PadLayout:
    """Aspect-preserving fit of the input into the output box (letterbox)."""

    scaled_width: int
    scaled_height: int
    x: int
    y: int
    width: int
    height: int

    def to_stages(self) -> list[FilterStage]:
        return [
            FilterStage("scale", f"{self.scaled_width}:{self.scaled_height}"),
            FilterStage("pad", f"{self.width}:{self.height}:{self.x}:{self.y}"),
        ]


@dataclass(frozen=True)
class ZoomStep:
    """Per-frame zoom increment.

    zoompan resets ``zoom`` for every input frame of a looped still, so the
    expression builds on ``pzoom`` (the previous output frame's zoom) to grow
    or shrink frame over frame until it reaches ``limit``.
    """

    rate: float
    magnify: bool
    width: int
    height: int

    @property
    def limit(self) -> float:
        return ZOOM_CEILING if self.magnify else ZOOM_FLOOR

    def to_stage(self) -> FilterStage:
        rate = _format_number(self.rate)
        limit = _format_number(self.limit)
        if self.magnify:
            expr = f"min(pzoom+{rate},{limit})"
        else:
            expr = f"max(pzoom-{rate},{limit})"
        return FilterStage("zoompan", f"z='{expr}':d=1:s={self.width}x{self.height}")


@dataclass(frozen=True)
class FilterChain:
    stages: tuple[FilterStage, ...] = field(default_factory=tuple)
    crop: CropRegion | None = None
    pad: PadLayout | None = None
    zoom: ZoomStep | None = None

    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    def __str__(self) -> str:
        return ",".join(str(stage) for stage in self.stages)


def _format_number(value: float) -> str:
    return format(value, ".6g")


def _even_floor(value: Fraction) -> int:
    # yuv420p chroma subsampling needs even dimensions
    return max(2, math.floor(value) // 2 * 2)


def compute_crop_region(input_w: int, input_h: int, output_w: int, output_h: int) -> CropRegion:
    """Centered crop of at most the output size."""
    crop_w = min(input_w, output_w)
    crop_h = min(input_h, output_h)
    return CropRegion(
        width=crop_w,
        height=crop_h,
        x=(input_w - crop_w) // 2,
        y=(input_h - crop_h) // 2,
    )


def compute_pad_layout(input_w: int, input_h: int, output_w: int, output_h: int) -> PadLayout:
    """Scale to fit inside the output box, then center with padding."""
    factor = min(Fraction(output_w, input_w), Fraction(output_h, input_h))
    scaled_w = min(_even_floor(input_w * factor), output_w)
    scaled_h = min(_even_floor(input_h * factor), output_h)
    return PadLayout(
        scaled_width=scaled_w,
        scaled_height=scaled_h,
        x=(output_w - scaled_w) // 2,
        y=(output_h - scaled_h) // 2,
        width=output_w,
        height=output_h,
    )


def compute_zoom_step(zoom: float, output_w: int, output_h: int) -> ZoomStep | None:
    """Map zoom in [-100, 100] to a per-frame rate; None when zoom is 0."""
    if zoom == 0:
        return None
    rate = abs(zoom) / 100 * MAX_ZOOM_RATE
    return ZoomStep(rate=rate, magnify=zoom > 0, width=output_w, height=output_h)


def compose_filter_chain(
    input_w: int,
    input_h: int,
    output_w: int,
    output_h: int,
    crop: bool,
    zoom: float,
) -> FilterChain:
    """Compose the full ``-vf`` chain for one job.

    Args:
        input_w: Probed source width
        input_h: Probed source height
        output_w: Requested output width
        output_h: Requested output height
        crop: Crop to fit when True, letterbox when False
        zoom: Zoom strength in [-100, 100]

    Returns:
        FilterChain whose ``str()`` is the ``-vf`` argument
    """
    if min(input_w, input_h, output_w, output_h) <= 0:
        raise ValueError("Input and output dimensions must be positive integers")

    stages: list[FilterStage] = [FilterStage("format", PIXEL_FORMAT)]
    crop_region = None
    pad_layout = None

    if (input_w, input_h) != (output_w, output_h):
        if crop:
            crop_region = compute_crop_region(input_w, input_h, output_w, output_h)
            stages.append(crop_region.to_stage())
        else:
            pad_layout = compute_pad_layout(input_w, input_h, output_w, output_h)
            stages.extend(pad_layout.to_stages())

    zoom_step = compute_zoom_step(zoom, output_w, output_h)
    if zoom_step is not None:
        stages.append(zoom_step.to_stage())

    stages.append(FilterStage("scale", f"{output_w}:{output_h}"))

    return FilterChain(stages=tuple(stages), crop=crop_region, pad=pad_layout, zoom=zoom_step)
