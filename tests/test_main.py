from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

pytest.importorskip("PySide6")

from layout_splitter import main as main_mod
from layout_splitter.app.session import SplitSession
from layout_splitter.models import SplitSummary
from tests.helpers.fakes import FakeClient, make_asset, make_sections


def _patch_session(monkeypatch, client: FakeClient) -> None:  # noqa: ANN001
    monkeypatch.setattr(main_mod, "_make_session", lambda settings: SplitSession(client, settings=settings))


def test_target_is_required() -> None:
    with pytest.raises(SystemExit):
        main_mod.build_parser().parse_args(["--headless"])


def test_env_options_are_reflected_and_stripped(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.delenv("LAYOUT_SPLITTER_API_BASE", raising=False)
    monkeypatch.delenv("LAYOUT_SPLITTER_LOG_LEVEL", raising=False)

    rest = main_mod._apply_cli_env_options(["--api-base", "http://x.test/api", "--log-level", "debug", "--split-id", "a"])

    assert rest == ["--split-id", "a"]
    assert os.environ["LAYOUT_SPLITTER_API_BASE"] == "http://x.test/api"
    assert os.environ["LAYOUT_SPLITTER_LOG_LEVEL"] == "debug"
    monkeypatch.delenv("LAYOUT_SPLITTER_API_BASE")
    monkeypatch.delenv("LAYOUT_SPLITTER_LOG_LEVEL")


def test_headless_prints_gallery_json(monkeypatch, capsys, tmp_path: Path) -> None:  # noqa: ANN001
    client = FakeClient()
    client.summary = SplitSummary(design_split_id="sp1", sections=tuple(make_sections((0, 40), (40, 60))))
    client.create_results = [[make_asset("s1", 0), make_asset("s2", 1)]]
    _patch_session(monkeypatch, client)

    rc = main_mod.run(["layout-splitter", "--settings", str(tmp_path / "s.json"), "--split-id", "sp1", "--headless"])

    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["splitId"] == "sp1"
    assert [g["sectionId"] for g in out["gallery"]] == ["s1", "s2"]
    assert out["metrics"] == {}
    assert client.closed


def test_headless_unresolved_upload_exits_1(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    client = FakeClient()
    _patch_session(monkeypatch, client)

    rc = main_mod.run(["layout-splitter", "--settings", str(tmp_path / "s.json"), "--upload-id", "u404", "--headless"])

    assert rc == 1


def test_headless_resolves_upload(monkeypatch, capsys, tmp_path: Path) -> None:  # noqa: ANN001
    client = FakeClient()
    client.upload_splits = {"u1": "sp5"}
    client.summary = SplitSummary(design_split_id="sp5", sections=tuple(make_sections((0, 100))))
    client.create_results = [[make_asset("s1", 0)]]
    _patch_session(monkeypatch, client)

    rc = main_mod.run(["layout-splitter", "--settings", str(tmp_path / "s.json"), "--upload-id", "u1", "--headless"])

    assert rc == 0
    assert json.loads(capsys.readouterr().out)["splitId"] == "sp5"
