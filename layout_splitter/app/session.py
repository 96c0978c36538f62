"""Split session: the network side of one editing session.

Loads a split, generates crops, runs the quality guard and builds the
gallery. Work runs on a thread pool; results come back through Qt signals
only while the session is open and the request is still the latest of its
kind. Stale or post-close results are dropped.
"""

from __future__ import annotations

import contextlib
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from PySide6.QtCore import QObject, Signal

from layout_splitter.api.client import CROP_KIND, SplitApiClient
from layout_splitter.errors import ApiError, CropGenerationFailure
from layout_splitter.logger import get_logger
from layout_splitter.metrics import metrics
from layout_splitter.models import CropAsset, GalleryItem, SectionSuggestion, SplitSummary
from layout_splitter.ops.crop_quality import THIN_PIXELS, CropQualityGuard, QualityReport, count_thin
from layout_splitter.ops.crop_requests import build_crop_requests
from layout_splitter.ops.gallery import DEFAULT_TTL_MS, GallerySynchronizer, SignedUrlCache
from layout_splitter.settings_manager import SettingsManager

_logger = get_logger("session")


@dataclass(frozen=True)
class LoadedSplit:
    summary: SplitSummary
    image_url: str | None = None


@dataclass(frozen=True)
class PipelineResult:
    split_id: str
    report: QualityReport
    gallery: list[GalleryItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "splitId": self.split_id,
            "regenerated": self.report.regenerated,
            "thinCount": self.report.thin_count,
            "warning": self.report.warning.message if self.report.warning else None,
            "error": self.report.error,
            "gallery": [item.to_dict() for item in self.gallery],
        }


def covers_sections(assets: Sequence[CropAsset], sections: Sequence[SectionSuggestion]) -> bool:
    """True when the assets' section ids are exactly the section ids."""
    asset_ids = {a.section_id for a in assets if a.section_id}
    return bool(assets) and asset_ids == {s.id for s in sections}


class SplitSession(QObject):
    splitResolved = Signal(str)
    splitLoaded = Signal(object)  # LoadedSplit
    pipelineFinished = Signal(object)  # PipelineResult
    imageFetched = Signal(object)  # bytes
    errorOccurred = Signal(str, str)  # action, message
    busyChanged = Signal(bool)

    def __init__(
        self,
        client: SplitApiClient,
        *,
        settings: SettingsManager | None = None,
        executor: ThreadPoolExecutor | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._client = client
        ttl_ms = settings.signed_url_ttl_ms if settings else DEFAULT_TTL_MS
        self._thin_pixels = settings.thin_pixels if settings else THIN_PIXELS
        self._recent_limit = int(settings.get("recent_splits_limit")) if settings else 50
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=settings.max_workers if settings else 4)
        self.cache = SignedUrlCache(ttl_ms)
        self._gallery = GallerySynchronizer(
            client.get_signed_url, self.cache, ttl_ms=ttl_ms, thin_pixels=self._thin_pixels
        )
        self._lock = threading.Lock()
        self._closed = False
        self._next_id = 1
        self._latest_id: dict[str, int] = {}
        self._futures: set[Future] = set()
        self.split_id: str | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- synchronous operations (run on the pool) ----
    def resolve_split_id(self, upload_id: str) -> str | None:
        return self._client.resolve_split_id(upload_id, self._recent_limit)

    def fetch_split(self, split_id: str) -> LoadedSplit:
        summary = self._client.get_split_summary(split_id)
        image_url = summary.image_url
        if image_url:
            try:
                image_url = self._client.get_signed_url(image_url).url or image_url
            except ApiError as e:
                _logger.debug("signing layout image failed, using raw url: %s", e)
        return LoadedSplit(summary=summary, image_url=image_url)

    def generate_crops(self, split_id: str, sections: Sequence[SectionSuggestion]) -> QualityReport:
        """Reuse existing crops when they cover the sections; otherwise create them. Then guard."""
        try:
            existing = self._client.list_split_assets(split_id, CROP_KIND)
        except ApiError as e:
            _logger.warning("listing existing crops failed for %s: %s", split_id, e)
            existing = []

        if covers_sections(existing, sections):
            _logger.debug("reusing %d existing crops for %s", len(existing), split_id)
            assets = existing
        else:
            assets = self._client.create_crops(split_id, build_crop_requests(sections), False)

        guard = CropQualityGuard(
            lambda requests_, force: self._client.create_crops(split_id, requests_, force),
            thin_pixels=self._thin_pixels,
        )
        return guard.check(assets, sections)

    def build_gallery(self, assets: Sequence[CropAsset], sections: Sequence[SectionSuggestion]) -> list[GalleryItem]:
        return self._gallery.build(assets, sections, is_cancelled=lambda: self._closed)

    def run_pipeline(self, split_id: str, sections: Sequence[SectionSuggestion]) -> PipelineResult:
        """Crops -> quality guard -> gallery. A failed batch keeps its partial assets."""
        try:
            report = self.generate_crops(split_id, sections)
        except CropGenerationFailure as e:
            _logger.warning("crop generation failed for %s: %s (partial=%d)", split_id, e, len(e.assets))
            report = QualityReport(
                assets=list(e.assets),
                thin_count=count_thin(e.assets, self._thin_pixels),
                error=str(e),
            )
        gallery = self.build_gallery(report.assets, sections)
        return PipelineResult(split_id=split_id, report=report, gallery=gallery)

    # ---- async plumbing ----
    def _submit(self, action: str, fn: Callable[..., Any], *args: Any, emit: Callable[[Any], None]) -> Future | None:
        with self._lock:
            if self._closed:
                _logger.debug("submit %s skipped: session closed", action)
                return None
            req_id = self._next_id
            self._next_id += 1
            self._latest_id[action] = req_id
        _logger.debug("submit %s id=%s", action, req_id)
        future = self._executor.submit(fn, *args)
        with self._lock:
            self._futures.add(future)
        self.busyChanged.emit(True)
        future.add_done_callback(lambda f: self._on_done(action, req_id, emit, f))
        return future

    def _on_done(self, action: str, req_id: int, emit: Callable[[Any], None], future: Future) -> None:
        with self._lock:
            self._futures.discard(future)
            idle = not self._futures
            closed = self._closed
            stale = closed or self._latest_id.get(action) != req_id
        if idle and not closed:
            self.busyChanged.emit(False)
        if stale or future.cancelled():
            metrics.inc("session.stale_results")
            _logger.debug("%s id=%s dropped (closed=%s)", action, req_id, closed)
            return
        exc = future.exception()
        if exc is not None:
            _logger.warning("%s failed: %s", action, exc, exc_info=not isinstance(exc, ApiError))
            self.errorOccurred.emit(action, str(exc))
            return
        emit(future.result())

    def _emit_resolved(self, split_id: str | None) -> None:
        if not split_id:
            self.errorOccurred.emit("resolve", "No split found for this upload")
            return
        self.split_id = split_id
        self.splitResolved.emit(split_id)

    def _emit_loaded(self, loaded: LoadedSplit) -> None:
        self.split_id = loaded.summary.design_split_id or self.split_id
        self.splitLoaded.emit(loaded)

    def resolve_split_async(self, upload_id: str) -> Future | None:
        return self._submit("resolve", self.resolve_split_id, upload_id, emit=self._emit_resolved)

    def load_split_async(self, split_id: str) -> Future | None:
        return self._submit("load", self.fetch_split, split_id, emit=self._emit_loaded)

    def fetch_image_async(self, url: str) -> Future | None:
        return self._submit("image", self._client.download, url, emit=self.imageFetched.emit)

    def generate_async(self, sections: Sequence[SectionSuggestion], split_id: str | None = None) -> Future | None:
        sid = split_id or self.split_id
        if not sid:
            self.errorOccurred.emit("generate", "No split id; load a split first")
            return None
        return self._submit("generate", self.run_pipeline, sid, list(sections), emit=self.pipelineFinished.emit)

    def close(self) -> None:
        """Cancel outstanding work; nothing is delivered after this returns."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending = list(self._futures)
            self._futures.clear()
        for f in pending:
            f.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        with contextlib.suppress(Exception):
            self._client.close()
        self.cache.clear()
        _logger.debug("session closed (%d pending cancelled)", len(pending))
