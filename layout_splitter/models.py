"""Data model shared by the editor, the crop pipeline, and the API client.

All types are plain dataclasses with tolerant `from_dict` constructors:
collaborator payloads are loosely shaped, so missing or non-numeric fields
degrade to defaults per field instead of failing the whole payload.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class SectionType(str, Enum):
    HEADER = "header"
    HERO = "hero"
    CONTENT = "content"
    SIDEBAR = "sidebar"
    FOOTER = "footer"
    NAVIGATION = "navigation"
    FORM = "form"
    GALLERY = "gallery"
    TESTIMONIAL = "testimonial"
    CTA = "cta"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Any) -> SectionType:
        if isinstance(value, SectionType):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.OTHER


def num(value: Any, default: float = 0.0) -> float:
    """Return `value` as a finite float, or `default` when missing/NaN/garbage."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(v) or math.isinf(v):
        return default
    return v


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


@dataclass(frozen=True, slots=True)
class Bounds:
    """Rect in (x, y, width, height) form.

    Usually percent-of-image (0..100); detector output may also be fractional (0..1).
    """

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def max_value(self) -> float:
        return max(self.x, self.y, self.width, self.height)

    def scaled(self, factor: float) -> Bounds:
        f = float(factor)
        return Bounds(self.x * f, self.y * f, self.width * f, self.height * f)

    def clamped(self, lo: float = 0.0, hi: float = 100.0) -> Bounds:
        return Bounds(
            _clamp(self.x, lo, hi),
            _clamp(self.y, lo, hi),
            _clamp(self.width, lo, hi),
            _clamp(self.height, lo, hi),
        )

    @classmethod
    def from_dict(cls, data: Any) -> Bounds:
        if not isinstance(data, dict):
            return cls()
        return cls(num(data.get("x")), num(data.get("y")), num(data.get("width")), num(data.get("height")))

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(slots=True)
class SectionSuggestion:
    id: str
    index: int
    type: SectionType = SectionType.CONTENT
    bounds: Bounds = field(default_factory=Bounds)
    confidence: float = 0.0
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int) -> SectionSuggestion:
        sid = data.get("id")
        return cls(
            id=str(sid) if sid not in (None, "") else f"section_{index + 1}",
            index=int(index),
            type=SectionType.coerce(data.get("type")),
            bounds=Bounds.from_dict(data.get("bounds")),
            confidence=_clamp(num(data.get("confidence", data.get("aiConfidence"))), 0.0, 1.0),
            description=str(data.get("description") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "index": self.index,
            "type": self.type.value,
            "bounds": self.bounds.to_dict(),
            "confidence": self.confidence,
            "description": self.description,
        }

    def copy(self) -> SectionSuggestion:
        return replace(self)


_SECTION_PATHS: tuple[tuple[str, ...], ...] = (
    ("sections",),
    ("detectedSections",),
    ("data", "sections"),
    ("hybridSections",),
    ("enhancedAnalysis", "sections"),
)


def extract_sections(payload: Any) -> list[SectionSuggestion]:
    """Pick the first section list present in a detector/summary payload."""
    if isinstance(payload, list):
        raw = payload
    else:
        raw = None
        for path in _SECTION_PATHS:
            node: Any = payload
            for key in path:
                node = node.get(key) if isinstance(node, dict) else None
            if isinstance(node, list) and node:
                raw = node
                break
    if not raw:
        return []
    return [SectionSuggestion.from_dict(item, i) for i, item in enumerate(raw) if isinstance(item, dict)]


@dataclass(frozen=True, slots=True)
class DisplayGeometry:
    natural_width: int
    natural_height: int
    display_width: float
    display_height: float

    @property
    def scale_factor(self) -> float:
        return self.display_width / self.natural_width

    @property
    def aspect_ratio(self) -> float:
        return self.natural_width / self.natural_height


@dataclass(frozen=True, slots=True)
class CropRequest:
    id: str
    index: int
    bounds: Bounds
    unit: str = "percent"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "index": self.index, "unit": self.unit, "bounds": self.bounds.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CropRequest:
        return cls(
            id=str(data.get("id") or ""),
            index=int(num(data.get("index"))),
            bounds=Bounds.from_dict(data.get("bounds")),
            unit=str(data.get("unit") or "percent"),
        )


@dataclass(frozen=True, slots=True)
class CropAsset:
    storage_key: str
    section_id: str | None = None
    width: float = 0.0
    height: float = 0.0
    key: str | None = None
    order: float = 0.0

    @property
    def signing_key(self) -> str:
        return self.key or self.storage_key

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CropAsset:
        meta = data.get("meta") if isinstance(data.get("meta"), dict) else {}
        storage_key = data.get("storageKey") or data.get("storageUrl") or meta.get("key") or ""
        sid = meta.get("sectionId")
        key = meta.get("key")
        return cls(
            storage_key=str(storage_key),
            section_id=str(sid) if sid not in (None, "") else None,
            width=num(meta.get("width")),
            height=num(meta.get("height")),
            key=str(key) if key else None,
            order=num(data.get("order")),
        )

    def to_dict(self) -> dict[str, Any]:
        meta: dict[str, Any] = {"width": self.width, "height": self.height}
        if self.section_id is not None:
            meta["sectionId"] = self.section_id
        if self.key is not None:
            meta["key"] = self.key
        return {"storageKey": self.storage_key, "meta": meta, "order": self.order}


@dataclass(frozen=True, slots=True)
class SignedUrl:
    url: str
    expires_at: float  # epoch seconds

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SignedUrl:
        # `exp` is epoch milliseconds on the wire.
        return cls(url=str(data.get("url") or ""), expires_at=num(data.get("exp")) / 1000.0)

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "exp": round(self.expires_at * 1000.0)}


@dataclass(frozen=True, slots=True)
class SplitSummary:
    design_split_id: str
    image_url: str | None = None
    sections: tuple[SectionSuggestion, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SplitSummary:
        return cls(
            design_split_id=str(data.get("designSplitId") or ""),
            image_url=data.get("imageUrl") or None,
            sections=tuple(extract_sections(data)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "designSplitId": self.design_split_id,
            "imageUrl": self.image_url,
            "sections": [s.to_dict() for s in self.sections],
        }


@dataclass(frozen=True, slots=True)
class RecentSplit:
    design_split_id: str
    design_upload_id: str | None = None
    created_at: str = ""
    name: str | None = None
    section_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecentSplit:
        uid = data.get("designUploadId")
        return cls(
            design_split_id=str(data.get("designSplitId") or ""),
            design_upload_id=str(uid) if uid not in (None, "") else None,
            created_at=str(data.get("createdAt") or ""),
            name=data.get("name") or None,
            section_count=int(num(data.get("sectionCount"))),
        )


@dataclass(frozen=True, slots=True)
class GalleryItem:
    """One reviewable slot: an accepted asset and its resolved preview URL."""

    position: int
    asset: CropAsset
    url: str
    section_id: str | None = None
    thin: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "sectionId": self.section_id,
            "url": self.url,
            "thin": self.thin,
            "asset": self.asset.to_dict(),
        }
