from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from research_twin.cli import app
from research_twin.core.settings import get_settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def _data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("EMBEDDING_PROVIDER", "dummy")
    monkeypatch.setenv("LLM_PROVIDER", "dummy")
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


def test_ingest_list_retrieve_delete(tmp_path: Path) -> None:
    paper = tmp_path / "paper_a.txt"
    paper.write_text("Paper A reports 81% accuracy on the benchmark.", encoding="utf-8")
    page = tmp_path / "about.html"
    page.write_text("<html><body><h1>About</h1><p>Our group studies adaptation.</p></body></html>")

    res = runner.invoke(app, ["ingest", str(paper), str(page), "--namespace", "t"])
    assert res.exit_code == 0, res.output
    assert "ACTIVE: paper_a.txt role=publication" in res.output

    res = runner.invoke(app, ["list", "--namespace", "t", "--json"])
    assert res.exit_code == 0, res.output
    listed = json.loads(res.stdout)
    assert sorted(d["fileName"] for d in listed) == ["about.html", "paper_a.txt"]

    res = runner.invoke(app, ["retrieve", "What results does paper_a report?", "-n", "t", "--json"])
    assert res.exit_code == 0, res.output
    payload = json.loads(res.stdout)
    assert payload["intent"] == "paper_specific"
    assert [c["marker"] for c in payload["chunks"]] == ["P1"]

    res = runner.invoke(app, ["delete", "paper_a.txt", "-n", "t"])
    assert res.exit_code == 0, res.output
    assert "deleted 1 document(s)" in res.output

    assert (tmp_path / "data" / "rag" / "t.json").exists()


def test_ask(tmp_path: Path) -> None:
    paper = tmp_path / "paper_a.txt"
    paper.write_text("Paper A reports 81% accuracy on the benchmark.", encoding="utf-8")
    runner.invoke(app, ["ingest", str(paper), "-n", "t"])

    res = runner.invoke(app, ["ask", "What results does paper_a report?", "-n", "t"])
    assert res.exit_code == 0, res.output
    assert "[P1]" in res.output
    assert "### Evidence" in res.output


def test_unknown_role_is_a_config_error(tmp_path: Path) -> None:
    paper = tmp_path / "x.txt"
    paper.write_text("text", encoding="utf-8")
    res = runner.invoke(app, ["ingest", str(paper), "--role", "novel"])
    assert res.exit_code != 0
