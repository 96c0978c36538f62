"""HTTP client for the split/crop/signing collaborators.

Every call uses a short bounded timeout. Transport and protocol failures
are raised as `ApiError` subclasses so callers can decide per call site
whether to skip, surface, or fall back.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import requests

from layout_splitter.errors import ApiError, CropGenerationFailure, SigningFailure
from layout_splitter.logger import get_logger
from layout_splitter.metrics import metrics
from layout_splitter.models import CropAsset, CropRequest, RecentSplit, SignedUrl, SplitSummary

_logger = get_logger("api")

CROP_KIND = "image-crop"


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _parse_created_at(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return _EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class SplitApiClient:
    def __init__(self, base_url: str, timeout: float = 10.0, session: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self._session = session or requests.Session()
        self._session.headers.setdefault("Content-Type", "application/json")
        self._pending: dict[tuple[str, int, bool], Future] = {}
        self._pending_lock = threading.Lock()

    def close(self) -> None:
        self._session.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.request(method, url, params=params, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiError(f"{method} {path} failed: {e}", url=url) from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.ok:
            message = body.get("error") if isinstance(body, dict) else None
            raise ApiError(
                f"{method} {path} -> HTTP {resp.status_code}: {message or resp.reason}",
                status=resp.status_code,
                url=url,
                body=body,
            )
        if not isinstance(body, dict):
            raise ApiError(f"{method} {path}: response is not a JSON object", status=resp.status_code, url=url)
        if body.get("success") is False:
            raise ApiError(
                f"{method} {path}: {body.get('error') or 'request rejected'}",
                status=resp.status_code,
                url=url,
                body=body,
            )
        return body.get("data", body)

    # ---- crops ----
    def list_split_assets(self, split_id: str, kind: str | None = CROP_KIND) -> list[CropAsset]:
        data = self._request(
            "GET",
            f"/splits/{quote(str(split_id), safe='')}/assets",
            params={"kind": kind} if kind else None,
        )
        return [CropAsset.from_dict(a) for a in (data.get("assets") or []) if isinstance(a, dict)]

    def delete_split_asset(self, split_id: str, key: str) -> None:
        self._request("DELETE", f"/splits/{quote(str(split_id), safe='')}/assets", params={"key": key})

    def _clear_existing_crops(self, split_id: str) -> None:
        try:
            existing = self.list_split_assets(split_id, CROP_KIND)
        except ApiError as e:
            _logger.warning("force: could not list existing crops for %s: %s", split_id, e)
            return
        _logger.debug("force: deleting %d existing crops for %s", len(existing), split_id)
        for asset in existing:
            key = asset.signing_key
            if not key:
                continue
            try:
                self.delete_split_asset(split_id, key)
            except ApiError as e:
                _logger.warning("force: failed to delete crop %s: %s", key, e)

    def _post_crops(self, split_id: str, requests_: list[CropRequest], force: bool) -> list[CropAsset]:
        if force:
            self._clear_existing_crops(split_id)
        payload: dict[str, Any] = {"sections": [r.to_dict() for r in requests_]}
        if force:
            payload["force"] = "1"
        path = f"/splits/{quote(str(split_id), safe='')}/crops"
        try:
            with metrics.timed("api.create_crops"):
                data = self._request("POST", path, json=payload, params={"force": "1"} if force else None)
        except ApiError as e:
            body = e.body
            partial = []
            if isinstance(body, dict) and isinstance(body.get("data"), dict):
                partial = [CropAsset.from_dict(a) for a in body["data"].get("assets") or [] if isinstance(a, dict)]
            raise CropGenerationFailure(str(e), assets=partial, status=e.status, url=e.url) from e
        assets = [CropAsset.from_dict(a) for a in (data.get("assets") or []) if isinstance(a, dict)]
        _logger.info("created %d crops for split %s (force=%s)", len(assets), split_id, force)
        return assets

    def create_crops(self, split_id: str, requests_: list[CropRequest], force: bool = False) -> list[CropAsset]:
        """POST a crop batch. An identical in-flight call is joined instead of repeated.

        Raises:
            CropGenerationFailure: the batch failed; `assets` holds any partial result
        """
        req_key = (str(split_id), len(requests_), bool(force))
        with self._pending_lock:
            pending = self._pending.get(req_key)
            owner = pending is None
            if owner:
                pending = Future()
                self._pending[req_key] = pending
        if not owner:
            _logger.debug("create_crops dedupe(pending): split=%s n=%d force=%s", *req_key)
            return list(pending.result())

        try:
            assets = self._post_crops(split_id, requests_, force)
        except BaseException as e:
            pending.set_exception(e)
            raise
        else:
            pending.set_result(assets)
            return assets
        finally:
            with self._pending_lock:
                self._pending.pop(req_key, None)

    # ---- signing ----
    def get_signed_url(self, key: str, ttl_ms: int = 300_000) -> SignedUrl:
        try:
            data = self._request("GET", "/assets/signed", params={"key": key, "ttl": int(ttl_ms)})
        except ApiError as e:
            raise SigningFailure(key, str(e), status=e.status, url=e.url) from e
        signed = SignedUrl.from_dict(data)
        if not signed.url:
            raise SigningFailure(key, "signer returned no url")
        return signed

    # ---- splits ----
    def get_split_summary(self, split_id: str) -> SplitSummary:
        data = self._request("GET", f"/splits/{quote(str(split_id), safe='')}/summary")
        summary = SplitSummary.from_dict(data)
        if not summary.design_split_id:
            summary = SplitSummary(design_split_id=str(split_id), image_url=summary.image_url, sections=summary.sections)
        return summary

    def list_recent_splits(self, limit: int = 20) -> list[RecentSplit]:
        data = self._request("GET", "/splits/recent", params={"limit": int(limit)})
        return [RecentSplit.from_dict(it) for it in (data.get("items") or []) if isinstance(it, dict)]

    def resolve_split_id(self, upload_id: str, limit: int = 50) -> str | None:
        """Newest split produced from `upload_id`, looked up through recent splits.

        Only used when the split id is not known directly. Failure is not fatal.
        """
        try:
            items = self.list_recent_splits(limit)
        except ApiError as e:
            _logger.warning("recent splits lookup failed for upload %s: %s", upload_id, e)
            return None
        mine = [it for it in items if it.design_upload_id == str(upload_id) and it.design_split_id]
        if not mine:
            _logger.debug("no recent split for upload %s among %d items", upload_id, len(items))
            return None
        mine.sort(key=lambda it: _parse_created_at(it.created_at), reverse=True)
        return mine[0].design_split_id

    # ---- raw downloads ----
    def download(self, url: str) -> bytes:
        """Fetch raw bytes (the layout image) from an absolute or signed URL."""
        try:
            resp = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiError(f"GET {url} failed: {e}", url=url) from e
        if not resp.ok:
            raise ApiError(f"GET {url} -> HTTP {resp.status_code}", status=resp.status_code, url=url)
        return resp.content
