from __future__ import annotations

import math

import pytest

from layout_splitter.models import Bounds, SectionSuggestion
from layout_splitter.ops.crop_requests import build_crop_request, build_crop_requests, percent_bounds


def _section(bounds: Bounds, sid: str = "hero") -> SectionSuggestion:
    return SectionSuggestion(id=sid, index=0, bounds=bounds)


def test_fractional_bounds_become_percent() -> None:
    req = build_crop_request(_section(Bounds(0.1, 0.2, 0.3, 0.1)), 0)

    assert req.unit == "percent"
    assert req.bounds.x == pytest.approx(10)
    assert req.bounds.y == pytest.approx(20)
    assert req.bounds.width == pytest.approx(30)
    assert req.bounds.height == pytest.approx(10)


def test_percent_bounds_pass_through_and_are_idempotent() -> None:
    first = build_crop_request(_section(Bounds(0, 12.5, 100, 30)), 3)
    again = build_crop_request(_section(first.bounds), 3)

    assert first.bounds == Bounds(0, 12.5, 100, 30)
    assert again.bounds == first.bounds
    assert first.index == 3


def test_garbage_numbers_become_zero() -> None:
    req = build_crop_request({"id": "x", "bounds": {"x": float("nan"), "y": "abc", "width": 50, "height": None}}, 0)

    assert req.bounds == Bounds(0, 0, 50, 0)
    assert not any(math.isnan(v) for v in req.bounds.to_dict().values())


def test_out_of_range_values_are_clamped() -> None:
    req = build_crop_request(_section(Bounds(-5, 90, 150, 20)), 0)

    assert req.bounds == Bounds(0, 90, 100, 20)


def test_dict_sections_get_default_ids_and_order() -> None:
    reqs = build_crop_requests(
        [
            {"bounds": {"x": 0, "y": 0, "width": 100, "height": 50}},
            {"id": "footer", "bounds": {"x": 0, "y": 50, "width": 100, "height": 50}},
        ]
    )

    assert [r.id for r in reqs] == ["section_1", "footer"]
    assert [r.index for r in reqs] == [0, 1]
    assert reqs[1].to_dict()["unit"] == "percent"


def test_percent_bounds_treats_all_small_values_as_fractions() -> None:
    assert percent_bounds(Bounds(0, 0.5, 1, 0.25)) == Bounds(0, 50, 100, 25)
    assert percent_bounds(Bounds(0, 5, 1, 0.25)) == Bounds(0, 5, 1, 0.25)
