from __future__ import annotations

import pytest

from layout_splitter.ops.cut_lines import (
    PIXEL_GAP,
    dedupe_pixel_lines,
    derive_cut_lines,
    lines_to_sections,
    rescale_cut_lines,
)
from tests.helpers.fakes import make_sections


def test_derive_three_stacked_sections() -> None:
    sections = make_sections((0, 40), (40, 30), (70, 30))

    assert derive_cut_lines(sections, 1600) == pytest.approx([640.0, 1120.0])


def test_image_edges_are_not_cut_lines() -> None:
    assert derive_cut_lines(make_sections((0, 100)), 1600) == []
    assert derive_cut_lines(make_sections((0.2, 99.6)), 1600) == []


def test_boundaries_merge_before_edges_are_dropped() -> None:
    # 0.3 and 0.7 merge into 0.3, which sits on the top edge.
    assert derive_cut_lines(make_sections((0.3, 0.4), (0.7, 99.3)), 1600) == []


def test_near_identical_boundaries_collapse() -> None:
    # 40.0 and 40.3 are one boundary (gap below half a percent).
    sections = make_sections((0, 40), (40.3, 29.7), (70, 30))

    assert derive_cut_lines(sections, 1000) == pytest.approx([400.0, 700.0])


def test_pixel_gap_enforced_at_small_heights() -> None:
    # 1% apart survives percent dedup but is 1px apart at 100px.
    sections = make_sections((0, 40), (41, 59))

    assert derive_cut_lines(sections, 100) == pytest.approx([40.0])


def test_derived_lines_are_strictly_ascending_with_gap() -> None:
    sections = make_sections((0, 12), (12.2, 8), (20, 30.5), (50, 0.4), (50.6, 30), (81, 19))
    lines = derive_cut_lines(sections, 480)

    assert lines == sorted(lines)
    assert all(b - a >= PIXEL_GAP for a, b in zip(lines, lines[1:], strict=False))
    assert all(0 <= v <= 480 for v in lines)


def test_zero_height_derives_nothing() -> None:
    assert derive_cut_lines(make_sections((0, 40), (40, 60)), 0) == []


def test_dedupe_clamps_and_sorts() -> None:
    assert dedupe_pixel_lines([900, -5, 100, 101, 50], 600) == [0.0, 50.0, 100.0, 600.0]


def test_rescale_is_proportional_and_reversible() -> None:
    lines = [640.0, 1120.0]
    doubled = rescale_cut_lines(lines, 1600, 3200)

    assert doubled == pytest.approx([1280.0, 2240.0])
    assert rescale_cut_lines(doubled, 3200, 1600) == pytest.approx(lines)


def test_rescale_from_unknown_height_raises() -> None:
    with pytest.raises(ValueError):
        rescale_cut_lines([10.0], 0, 100)


def test_lines_to_sections_inherit_overlapping_section() -> None:
    sections = make_sections((0, 40), (40, 30), (70, 30))
    sections[2].description = "footer"

    out = lines_to_sections([640.0, 1120.0], 1600, sections)

    assert [s.id for s in out] == ["s1", "s2", "s3"]
    assert [s.index for s in out] == [0, 1, 2]
    assert out[1].bounds.y == pytest.approx(40.0)
    assert out[1].bounds.height == pytest.approx(30.0)
    assert out[2].description == "footer"
    assert all(s.bounds.x == 0.0 and s.bounds.width == 100.0 for s in out)


def test_extra_band_gets_a_fresh_id() -> None:
    sections = make_sections((0, 40), (40, 30), (70, 30))

    out = lines_to_sections([640.0, 1120.0, 1400.0], 1600, sections)

    assert [s.id for s in out] == ["s1", "s2", "s3", "section_4"]
    assert out[3].bounds.y == pytest.approx(87.5)
    assert out[3].bounds.bottom == pytest.approx(100.0)
