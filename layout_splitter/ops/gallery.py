"""Gallery reconciliation and signed preview URLs.

The section list is ground truth for count, order and ids. Returned crop
assets are only loosely keyed to sections, so they are matched by
`meta.sectionId` when possible and by `order` otherwise.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Executor, ThreadPoolExecutor

from layout_splitter.errors import ApiError
from layout_splitter.logger import get_logger
from layout_splitter.metrics import metrics
from layout_splitter.models import CropAsset, GalleryItem, SectionSuggestion, SignedUrl

from .crop_quality import THIN_PIXELS, is_thin

_logger = get_logger("gallery")

DEFAULT_TTL_MS = 5 * 60 * 1000

# (key, ttl_ms) -> SignedUrl
SignFn = Callable[[str, int], SignedUrl]


class SignedUrlCache:
    """Signed URLs keyed by storage key, evicted on expiry.

    An entry expires at the earlier of the signer's `exp` and `now + ttl`.
    """

    def __init__(self, ttl_ms: int = DEFAULT_TTL_MS, clock: Callable[[], float] = time.time) -> None:
        self._ttl_s = max(0.0, int(ttl_ms) / 1000.0)
        self._clock = clock
        self._entries: dict[str, SignedUrl] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> str | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_valid(now):
                del self._entries[key]
                return None
            return entry.url

    def put(self, key: str, signed: SignedUrl) -> None:
        now = self._clock()
        limit = now + self._ttl_s
        expires_at = min(signed.expires_at, limit) if signed.expires_at > 0 else limit
        with self._lock:
            self._entries[key] = SignedUrl(url=signed.url, expires_at=expires_at)

    def evict_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [k for k, v in self._entries.items() if not v.is_valid(now)]
            for k in stale:
                del self._entries[k]
        if stale:
            _logger.debug("signed url cache: evicted %d expired entries", len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def with_position_marker(url: str, position: int) -> str:
    """Tag a URL with its gallery slot. Uses the fragment so signatures stay intact."""
    base, _, _ = url.partition("#")
    return f"{base}#slot={int(position)}"


def select_assets(assets: Sequence[CropAsset], sections: Sequence[SectionSuggestion]) -> tuple[list[CropAsset], bool]:
    """Filter, order and truncate assets to the section set.

    Returns:
        (accepted assets, matched_by_id). When no asset's sectionId is known the
        full input is used, ordered by `order`.
    """
    known = {s.id for s in sections}
    matched = [a for a in assets if a.section_id is not None and a.section_id in known]
    by_id = bool(matched)
    if not by_id:
        matched = list(assets)
        if assets:
            _logger.debug("no asset matched a section id; falling back to order (%d assets)", len(assets))
    matched.sort(key=lambda a: a.order)
    # Never pad: missing crops stay missing.
    return matched[: len(sections)], by_id


class GallerySynchronizer:
    def __init__(
        self,
        sign: SignFn,
        cache: SignedUrlCache | None = None,
        *,
        ttl_ms: int = DEFAULT_TTL_MS,
        executor: Executor | None = None,
        thin_pixels: float = THIN_PIXELS,
    ) -> None:
        self._sign = sign
        self._ttl_ms = int(ttl_ms)
        self.cache = cache if cache is not None else SignedUrlCache(ttl_ms)
        self._executor = executor
        self._thin_pixels = float(thin_pixels)

    def _resolve(self, asset: CropAsset, is_cancelled: Callable[[], bool]) -> str | None:
        key = asset.signing_key
        if not key:
            _logger.warning("asset without storage key skipped: %s", asset)
            return None
        cached = self.cache.get(key)
        if cached:
            return cached
        if is_cancelled():
            return None
        try:
            signed = self._sign(key, self._ttl_ms)
        except ApiError as e:
            metrics.inc("gallery.signing_failures")
            _logger.warning("signing failed for %s: %s", key, e)
            return None
        except Exception:
            metrics.inc("gallery.signing_failures")
            _logger.exception("unexpected signing error for %s", key)
            return None
        if not signed.url:
            metrics.inc("gallery.signing_failures")
            _logger.warning("signer returned no url for %s", key)
            return None
        self.cache.put(key, signed)
        return signed.url

    def build(
        self,
        assets: Sequence[CropAsset],
        sections: Sequence[SectionSuggestion],
        is_cancelled: Callable[[], bool] | None = None,
    ) -> list[GalleryItem]:
        """Reconcile assets against sections and resolve preview URLs.

        Signing runs in parallel; a failed asset is skipped, the rest of the gallery is kept.
        """
        cancelled = is_cancelled or (lambda: False)
        accepted, by_id = select_assets(assets, sections)
        if not accepted:
            return []

        self.cache.evict_expired()
        if self._executor is not None:
            urls = list(self._executor.map(lambda a: self._resolve(a, cancelled), accepted))
        else:
            with ThreadPoolExecutor(max_workers=max(1, min(8, len(accepted)))) as pool:
                urls = list(pool.map(lambda a: self._resolve(a, cancelled), accepted))

        if cancelled():
            _logger.debug("gallery build cancelled; dropping %d resolved urls", len(urls))
            return []

        items: list[GalleryItem] = []
        seen: set[str] = set()
        for position, (asset, url) in enumerate(zip(accepted, urls, strict=False)):
            if url is None:
                continue
            marked = with_position_marker(url, position)
            if marked in seen:
                continue
            seen.add(marked)
            section_id = asset.section_id if by_id else sections[position].id
            items.append(
                GalleryItem(
                    position=position,
                    asset=asset,
                    url=marked,
                    section_id=section_id,
                    thin=is_thin(asset, self._thin_pixels),
                )
            )
        skipped = len(accepted) - len(items)
        if skipped:
            _logger.info("gallery built with %d of %d assets (%d skipped)", len(items), len(accepted), skipped)
        return items
