from __future__ import annotations

import json
import os
from typing import Any

from .logger import get_logger

_logger = get_logger("settings")

DEFAULT_SETTINGS_PATH = os.path.join(os.path.expanduser("~"), ".layout_splitter", "settings.json")


class SettingsManager:
    def __init__(self, settings_path: str = DEFAULT_SETTINGS_PATH):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    DEFAULTS: dict[str, Any] = {
        "api_base_url": "http://localhost:3009/api/ai-enhancement",
        "request_timeout_s": 10.0,
        "signed_url_ttl_ms": 300_000,
        "container_padding": 32,
        "max_display_height": 800,
        "viewport_height_ratio": 0.7,
        "min_display_width": 600,
        "min_display_height": 400,
        "thin_pixels": 6,
        "max_workers": 4,
        "recent_splits_limit": 50,
        "width_preset": "fit",
    }

    def load(self) -> None:
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = data
                        _logger.debug("settings loaded: %s", self.settings_path)
                        return
        except Exception as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = {}

    def save(self) -> None:
        try:
            os.makedirs(os.path.dirname(self.settings_path), exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except Exception as e:
            _logger.error("settings save failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    def set(self, key: str, value: Any) -> None:
        self._settings[key] = value
        self.save()

    @property
    def data(self) -> dict[str, Any]:
        return self._settings

    @property
    def api_base_url(self) -> str:
        env = (os.getenv("LAYOUT_SPLITTER_API_BASE") or "").strip()
        if env:
            return env.rstrip("/")
        return str(self.get("api_base_url")).rstrip("/")

    @property
    def request_timeout_s(self) -> float:
        try:
            return max(0.1, float(self.get("request_timeout_s")))
        except (TypeError, ValueError):
            _logger.warning("invalid request_timeout_s: %r", self.get("request_timeout_s"))
            return float(self.DEFAULTS["request_timeout_s"])

    @property
    def signed_url_ttl_ms(self) -> int:
        try:
            return max(1, int(self.get("signed_url_ttl_ms")))
        except (TypeError, ValueError):
            return int(self.DEFAULTS["signed_url_ttl_ms"])

    @property
    def min_display_size(self) -> tuple[int, int]:
        return int(self.get("min_display_width")), int(self.get("min_display_height"))

    @property
    def thin_pixels(self) -> int:
        return int(self.get("thin_pixels"))

    @property
    def max_workers(self) -> int:
        return max(1, int(self.get("max_workers")))
