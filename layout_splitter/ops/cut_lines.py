"""Cut-line derivation, rescaling and dedup.

Cut lines are horizontal pixel offsets at the current display height.
Pure functions, no Qt dependencies.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from layout_splitter.logger import get_logger
from layout_splitter.models import Bounds, SectionSuggestion

_logger = get_logger("cut_lines")

# Boundaries closer than this (percentage points) are one boundary.
PERCENT_GAP = 0.5
# Minimum pixel distance between two committed cut lines.
PIXEL_GAP = 3.0


def _collapse(values: Iterable[float], gap: float) -> list[float]:
    """Sort and drop every value closer than `gap` to the last kept one."""
    out: list[float] = []
    for v in sorted(values):
        if not out or v - out[-1] >= gap:
            out.append(v)
    return out


def dedupe_pixel_lines(lines: Iterable[float], display_height: float | None = None, gap: float = PIXEL_GAP) -> list[float]:
    """Clamp to [0, display_height] (when known), sort, and enforce the minimum pixel gap."""
    values = [float(v) for v in lines]
    if display_height is not None:
        h = float(display_height)
        values = [max(0.0, min(h, v)) for v in values]
    return _collapse(values, gap)


def derive_cut_lines(sections: Sequence[SectionSuggestion], display_height: float) -> list[float]:
    """Build deduplicated pixel cut lines from section top/bottom boundaries.

    Boundaries closer than PERCENT_GAP are merged first, then merged
    boundaries on the image edges (within PERCENT_GAP of 0% or 100%) are dropped.
    """
    h = float(display_height)
    if h <= 0:
        return []

    boundaries: list[float] = []
    for s in sections:
        boundaries.append(s.bounds.y)
        boundaries.append(s.bounds.bottom)

    # Merge before dropping edges; a merged boundary keeps its topmost value.
    merged = _collapse(boundaries, PERCENT_GAP)
    percent = [p for p in merged if PERCENT_GAP <= p <= 100.0 - PERCENT_GAP]
    # Percent-space dedup does not guarantee pixel separation at small heights.
    pixels = _collapse((p / 100.0 * h for p in percent), PIXEL_GAP)
    _logger.debug(
        "derive: sections=%d boundaries=%d percent=%d pixels=%d height=%.1f",
        len(sections),
        len(boundaries),
        len(percent),
        len(pixels),
        h,
    )
    return pixels


def rescale_cut_lines(lines: Sequence[float], old_height: float, new_height: float) -> list[float]:
    """Proportionally remap cut lines from `old_height` to `new_height`.

    Raises:
        ValueError: old_height is not positive
    """
    old = float(old_height)
    if old <= 0:
        raise ValueError(f"cannot rescale from display height {old_height!r}")
    factor = float(new_height) / old
    return [float(v) * factor for v in lines]


def lines_to_sections(
    lines: Sequence[float],
    display_height: float,
    sections: Sequence[SectionSuggestion],
) -> list[SectionSuggestion]:
    """Turn committed cut lines into full-width sections, top to bottom.

    Each band inherits id/type/description/confidence from the original section it
    overlaps most; bands without overlap get a fresh `section_<n>` id.
    """
    h = float(display_height)
    if h <= 0:
        return [s.copy() for s in sections]

    cuts = [v / h * 100.0 for v in dedupe_pixel_lines(lines, h) if 0.0 < v < h]
    edges = [0.0, *cuts, 100.0]
    used: set[str] = set()
    taken_ids = {s.id for s in sections}
    out: list[SectionSuggestion] = []
    fresh = len(sections)

    for top, bottom in zip(edges, edges[1:], strict=False):
        if bottom - top <= 0:
            continue
        best: SectionSuggestion | None = None
        best_overlap = 0.0
        for s in sections:
            if s.id in used:
                continue
            overlap = min(bottom, s.bounds.bottom) - max(top, s.bounds.y)
            if overlap > best_overlap:
                best, best_overlap = s, overlap
        band = Bounds(0.0, top, 100.0, bottom - top)
        if best is not None:
            used.add(best.id)
            section = best.copy()
            section.bounds = band
        else:
            fresh += 1
            while f"section_{fresh}" in taken_ids:
                fresh += 1
            taken_ids.add(f"section_{fresh}")
            section = SectionSuggestion(id=f"section_{fresh}", index=0, bounds=band)
        section.index = len(out)
        out.append(section)
    return out
