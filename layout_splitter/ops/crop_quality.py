"""Detection and single-shot correction of degenerate ("thin") crops.

A batch where at least half of the crops are only a few pixels wide or tall
almost always means the bounds were sent in the wrong unit. The guard asks
for exactly one forced regeneration with re-normalized bounds, then reports.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from layout_splitter.errors import CropGenerationFailure, DegenerateCropWarning
from layout_splitter.logger import get_logger
from layout_splitter.metrics import metrics
from layout_splitter.models import CropAsset, CropRequest, SectionSuggestion

from .crop_requests import build_crop_requests

_logger = get_logger("crop_quality")

THIN_PIXELS = 6

# (requests, force) -> assets
RegenerateFn = Callable[[list[CropRequest], bool], list[CropAsset]]


def is_thin(asset: CropAsset, thin_pixels: float = THIN_PIXELS) -> bool:
    return asset.width < thin_pixels or asset.height < thin_pixels


def count_thin(assets: Sequence[CropAsset], thin_pixels: float = THIN_PIXELS) -> int:
    return sum(1 for a in assets if is_thin(a, thin_pixels))


def needs_regeneration(thin_count: int, section_count: int) -> bool:
    """True iff thin_count >= ceil(N / 2) for a non-empty section set."""
    if section_count <= 0:
        return False
    return thin_count >= math.ceil(section_count / 2)


@dataclass(frozen=True)
class QualityReport:
    assets: list[CropAsset]
    thin_count: int
    regenerated: bool = False
    warning: DegenerateCropWarning | None = None
    error: str | None = None


class CropQualityGuard:
    def __init__(self, regenerate: RegenerateFn, thin_pixels: float = THIN_PIXELS) -> None:
        self._regenerate = regenerate
        self._thin_pixels = float(thin_pixels)

    def _warning(self, assets: Sequence[CropAsset], section_count: int) -> DegenerateCropWarning:
        thin = [a for a in assets if is_thin(a, self._thin_pixels)]
        return DegenerateCropWarning(
            thin_keys=tuple(a.signing_key for a in thin),
            thin_count=len(thin),
            section_count=section_count,
        )

    def check(self, assets: Sequence[CropAsset], sections: Sequence[SectionSuggestion]) -> QualityReport:
        """Validate a crop batch, regenerating once with `force=True` if it is degenerate."""
        n = len(sections)
        thin_count = count_thin(assets, self._thin_pixels)
        if not needs_regeneration(thin_count, n):
            return QualityReport(assets=list(assets), thin_count=thin_count)

        _logger.info("degenerate crops: thin=%d sections=%d; regenerating once with force", thin_count, n)
        metrics.inc("quality_guard.regenerations")
        requests = build_crop_requests(sections)
        try:
            regenerated = list(self._regenerate(requests, True))
        except CropGenerationFailure as e:
            _logger.warning("corrective crop regeneration failed: %s", e)
            kept = e.assets or list(assets)
            return QualityReport(
                assets=kept,
                thin_count=count_thin(kept, self._thin_pixels),
                regenerated=True,
                warning=self._warning(kept, n),
                error=str(e),
            )

        thin_after = count_thin(regenerated, self._thin_pixels)
        warning = None
        if needs_regeneration(thin_after, n):
            # No second retry.
            metrics.inc("quality_guard.repeat_failures")
            warning = self._warning(regenerated, n)
            _logger.warning("crops still degenerate after regeneration: %s", warning.message)
        return QualityReport(assets=regenerated, thin_count=thin_after, regenerated=True, warning=warning)
