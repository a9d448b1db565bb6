"""Tests for the convert_bibtex command-line script."""

import importlib.util
import json
from pathlib import Path

import pytest


SCRIPT_PATH = Path(__file__).parent.parent / "scripts" / "convert_bibtex.py"


@pytest.fixture
def convert_main():
    spec = importlib.util.spec_from_file_location("convert_bibtex", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.main


@pytest.fixture
def bib_file(tmp_path, sample_bibtex):
    path = tmp_path / "refs.bib"
    path.write_text(sample_bibtex, encoding="utf-8")
    return path


@pytest.mark.unit
def test_json_output(convert_main, bib_file, capsys):
    assert convert_main([str(bib_file)]) == 0
    captured = capsys.readouterr()
    data = json.loads(captured.out)
    assert [item["id"] for item in data] == ["smith2020", "doe2019", "lee2021"]
    assert data[0]["type"] == "article-journal"
    assert "records: 3" in captured.err
    assert "errors: 0" in captured.err


@pytest.mark.unit
def test_biblatex_output_to_file(convert_main, bib_file, tmp_path):
    out = tmp_path / "out.bib"
    assert convert_main([str(bib_file), "--format", "biblatex", "--output", str(out)]) == 0
    text = out.read_text(encoding="utf-8")
    assert text.startswith("@article{smith2020,")
    assert "@inproceedings{lee2021," in text


@pytest.mark.unit
def test_text_output(convert_main, bib_file, capsys):
    assert convert_main([str(bib_file), "--format", "text", "--style", "ieee"]) == 0
    lines = capsys.readouterr().out.strip().split("\n")
    assert len(lines) == 3
    assert lines[1].startswith("[2] J. Doe, *The Book*")
    assert lines[1].endswith(f"[doe2019]({bib_file})")


@pytest.mark.unit
def test_strict_mode_fails_on_errors(convert_main, tmp_path, capsys):
    path = tmp_path / "bad.bib"
    path.write_text("@weirdtype{x1, title={T}}\n@misc{m1, title={M}}", encoding="utf-8")

    assert convert_main([str(path)]) == 0
    assert convert_main([str(path), "--strict"]) == 2
    err = capsys.readouterr().err
    assert "citekit.error.unsupported-entry-type" in err


@pytest.mark.unit
def test_missing_input(convert_main, tmp_path, capsys):
    assert convert_main([str(tmp_path / "missing.bib")]) == 1
    assert "Could not read" in capsys.readouterr().err
