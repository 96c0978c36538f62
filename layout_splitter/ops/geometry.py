"""Display geometry for the section editor.

Pure functions, no Qt dependencies. Three coordinate spaces meet here:
natural image pixels, displayed pixels, and percent-of-image. The natural
aspect ratio is preserved by every computation.
"""

from __future__ import annotations

import math

from layout_splitter.errors import GeometryError
from layout_splitter.logger import get_logger
from layout_splitter.models import DisplayGeometry

_logger = get_logger("geometry")

MIN_DISPLAY_SIZE: tuple[int, int] = (600, 400)

# Width presets (px). "fit" uses the available container width.
WIDTH_PRESETS: dict[str, int | None] = {
    "fit": None,
    "desktop": 1440,
    "laptop": 1024,
    "tablet": 768,
    "mobile": 600,
}


def height_budget(viewport_height: float, cap: float = 800, ratio: float = 0.7) -> float:
    """Max display height: `min(cap, floor(viewport_height * ratio))`."""
    return float(min(float(cap), math.floor(float(viewport_height) * float(ratio))))


def preset_container_width(preset: str | None, available_width: float) -> float:
    """Effective container width for a named width preset.

    A preset never widens past the available width; unknown presets behave like "fit".
    """
    key = (preset or "fit").lower()
    if key not in WIDTH_PRESETS:
        _logger.debug("unknown width preset %r, using fit", preset)
    width = WIDTH_PRESETS.get(key)
    if width is None:
        return float(available_width)
    return float(min(width, available_width))


def compute_display_geometry(
    natural_width: int,
    natural_height: int,
    container_width: float,
    max_height: float | None = None,
    *,
    min_size: tuple[int, int] = MIN_DISPLAY_SIZE,
) -> DisplayGeometry:
    """Fit the image to the container width, then to the height budget.

    Args:
        natural_width: Decoded image width in pixels
        natural_height: Decoded image height in pixels
        container_width: Width available for the image (padding already removed)
        max_height: Height budget; None means unbounded
        min_size: (min_width, min_height) floor for the displayed image

    Returns:
        DisplayGeometry with the aspect ratio of the natural image

    Raises:
        GeometryError: natural size unavailable or non-positive
    """
    try:
        nw = int(natural_width)
        nh = int(natural_height)
    except (TypeError, ValueError) as e:
        raise GeometryError(f"natural size unavailable: {natural_width!r}x{natural_height!r}") from e
    if nw <= 0 or nh <= 0:
        raise GeometryError(f"natural size unavailable: {nw}x{nh}")

    r = nw / nh
    w = max(0.0, float(container_width))
    h = w / r
    if max_height is not None and h > max_height:
        h = float(max_height)
        w = h * r

    # Enforce minimums by recomputing the other dimension from the enforced one.
    min_w, min_h = float(min_size[0]), float(min_size[1])
    if w < min_w:
        w = min_w
        h = w / r
    if h < min_h:
        h = min_h
        w = h * r

    geometry = DisplayGeometry(natural_width=nw, natural_height=nh, display_width=w, display_height=h)
    _logger.debug(
        "geometry: natural=%dx%d container=%.1f budget=%s -> display=%.1fx%.1f scale=%.4f",
        nw,
        nh,
        float(container_width),
        max_height,
        w,
        h,
        geometry.scale_factor,
    )
    return geometry
