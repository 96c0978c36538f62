"""Crop request building.

Section bounds reach this point either as percent (0..100) or as fractions
(0..1), depending on where they came from. Requests always go out in
percent, clamped to [0, 100].
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from layout_splitter.logger import get_logger
from layout_splitter.models import Bounds, CropRequest, SectionSuggestion, num

_logger = get_logger("crop_requests")


def percent_bounds(bounds: Bounds) -> Bounds:
    """Return bounds in percent, treating an all-<=1 rect as fractional."""
    b = Bounds(num(bounds.x), num(bounds.y), num(bounds.width), num(bounds.height))
    if b.max_value <= 1:
        return b.scaled(100.0)
    return b


def build_crop_request(section: SectionSuggestion | dict[str, Any], index: int) -> CropRequest:
    if isinstance(section, dict):
        section = SectionSuggestion.from_dict(section, index)
    raw = section.bounds if isinstance(section.bounds, Bounds) else Bounds.from_dict(section.bounds)
    bounds = percent_bounds(raw).clamped(0.0, 100.0)
    if bounds != raw:
        _logger.debug("crop request %s: bounds %s -> %s", section.id, raw, bounds)
    return CropRequest(id=section.id, index=index, bounds=bounds)


def build_crop_requests(sections: Iterable[SectionSuggestion | dict[str, Any]]) -> list[CropRequest]:
    """One percent-unit request per section, `index` following section order.

    A section with unusable bounds yields a zero-area request instead of failing the batch.
    """
    return [build_crop_request(s, i) for i, s in enumerate(sections)]
