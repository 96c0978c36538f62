from __future__ import annotations

import json
from pathlib import Path

from layout_splitter.settings_manager import SettingsManager


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    sm = SettingsManager(str(tmp_path / "settings.json"))

    assert sm.api_base_url == "http://localhost:3009/api/ai-enhancement"
    assert sm.request_timeout_s == 10.0
    assert sm.signed_url_ttl_ms == 300_000
    assert sm.min_display_size == (600, 400)
    assert sm.thin_pixels == 6
    assert sm.max_workers == 4
    assert not sm.has("thin_pixels")


def test_set_persists_and_reloads(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    sm = SettingsManager(str(path))

    sm.set("max_display_height", 640)

    assert json.loads(path.read_text(encoding="utf-8")) == {"max_display_height": 640}
    assert SettingsManager(str(path)).get("max_display_height") == 640


def test_env_overrides_api_base(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    sm = SettingsManager(str(tmp_path / "settings.json"))
    sm.set("api_base_url", "http://from-file.test/api/")
    assert sm.api_base_url == "http://from-file.test/api"

    monkeypatch.setenv("LAYOUT_SPLITTER_API_BASE", "http://from-env.test/api/")
    assert sm.api_base_url == "http://from-env.test/api"


def test_invalid_values_fall_back(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"request_timeout_s": "soon", "signed_url_ttl_ms": None, "max_workers": 0}), encoding="utf-8")
    sm = SettingsManager(str(path))

    assert sm.request_timeout_s == 10.0
    assert sm.signed_url_ttl_ms == 300_000
    assert sm.max_workers == 1


def test_corrupt_file_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    sm = SettingsManager(str(path))

    assert sm.data == {}
    assert sm.thin_pixels == 6
