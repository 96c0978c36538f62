from __future__ import annotations

from layout_splitter.models import (
    Bounds,
    CropAsset,
    RecentSplit,
    SectionSuggestion,
    SectionType,
    SignedUrl,
    SplitSummary,
    extract_sections,
)


def test_section_from_loose_payload() -> None:
    s = SectionSuggestion.from_dict({"type": "Banner", "aiConfidence": 1.7}, 2)

    assert s.id == "section_3"
    assert s.type is SectionType.OTHER
    assert s.bounds == Bounds()
    assert s.confidence == 1.0
    assert s.description == ""


def test_section_type_coercion() -> None:
    assert SectionType.coerce(" Hero ") is SectionType.HERO
    assert SectionType.coerce(None) is SectionType.OTHER
    assert SectionType.coerce(SectionType.CTA) is SectionType.CTA


def test_extract_sections_searches_known_paths() -> None:
    item = {"id": "a", "type": "header", "bounds": {"x": 0, "y": 0, "width": 100, "height": 10}}

    assert [s.id for s in extract_sections({"detectedSections": [item]})] == ["a"]
    assert [s.id for s in extract_sections({"data": {"sections": [item]}})] == ["a"]
    assert [s.id for s in extract_sections({"enhancedAnalysis": {"sections": [item]}})] == ["a"]
    assert [s.id for s in extract_sections([item, "junk"])] == ["a"]
    assert extract_sections({"sections": []}) == []
    assert extract_sections(None) == []


def test_crop_asset_reads_meta() -> None:
    asset = CropAsset.from_dict(
        {"storageUrl": "s3://b/k.png", "order": 2, "meta": {"sectionId": "hero", "width": 1200, "height": "400"}}
    )

    assert asset.storage_key == "s3://b/k.png"
    assert asset.signing_key == "s3://b/k.png"
    assert asset.section_id == "hero"
    assert (asset.width, asset.height, asset.order) == (1200, 400, 2)

    keyed = CropAsset.from_dict({"meta": {"key": "crops/1.png"}})
    assert keyed.storage_key == "crops/1.png"
    assert keyed.section_id is None


def test_signed_url_expiry_is_milliseconds_on_the_wire() -> None:
    signed = SignedUrl.from_dict({"url": "https://cdn.test/a", "exp": 1_700_000_000_000})

    assert signed.expires_at == 1_700_000_000
    assert signed.is_valid(1_699_999_999)
    assert not signed.is_valid(1_700_000_000)
    assert signed.to_dict()["exp"] == 1_700_000_000_000


def test_split_summary_and_recent_split() -> None:
    summary = SplitSummary.from_dict(
        {"designSplitId": "sp1", "imageUrl": "layouts/u1.png", "sections": [{"id": "a"}, {"id": "b"}]}
    )
    recent = RecentSplit.from_dict({"designSplitId": "sp1", "designUploadId": 7, "sectionCount": "3"})

    assert summary.design_split_id == "sp1"
    assert [s.index for s in summary.sections] == [0, 1]
    assert recent.design_upload_id == "7"
    assert recent.section_count == 3
