"""Tests for the run_detection command-line script."""

import json
import sys
from pathlib import Path

import pytest

# Add scripts to path
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "scripts"))
import run_detection

from conftest import PAPER_1H, SCHEME_1H


@pytest.fixture
def corpus_dir(tmp_path: Path) -> Path:
    corpus = tmp_path / "corpus"
    corpus.mkdir()
    (corpus / "papers.jsonl").write_text(json.dumps(PAPER_1H) + "\n", encoding="utf-8")
    (corpus / "schemes.jsonl").write_text(json.dumps(SCHEME_1H) + "\n", encoding="utf-8")
    return corpus


class TestRunDetection:
    """Tests for run_detection.main()."""

    def test_main_when_text_then_prints_scheme_map(self, corpus_dir, monkeypatch, capsys):
        """A single --text query prints the scheme map as JSON."""
        monkeypatch.setattr(sys, "argv", [
            "run_detection.py", "--corpus", str(corpus_dir),
            "--text", "Find the value of x when 2x+3=7", "--question", "4",
        ])
        assert run_detection.main() == 0
        payload = json.loads(capsys.readouterr().out)
        assert list(payload["marking_schemes"]) == ["4_Pearson Edexcel_1MA1/1H"]

    def test_main_when_fragments_file_then_loaded(self, corpus_dir, tmp_path, monkeypatch, capsys):
        """Fragments are read from a {"questions": [...]} payload."""
        fragments = tmp_path / "page.json"
        fragments.write_text(json.dumps({"questions": [
            {"text": "Work out the area of the triangle ABC.", "questionNumber": "5b",
             "parentText": "Here is a right-angled triangle ABC with sides 6 cm and 8 cm."},
        ]}), encoding="utf-8")
        monkeypatch.setattr(sys, "argv", [
            "run_detection.py", "--corpus", str(corpus_dir), "--fragments", str(fragments),
        ])
        assert run_detection.main() == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["statistics"]["total_questions"] == 1

    def test_main_when_results_log_then_run_appended(self, corpus_dir, tmp_path, monkeypatch, capsys):
        """Each run adds one JSON line to the results log."""
        log_path = tmp_path / "runs" / "runs.jsonl"
        argv = [
            "run_detection.py", "--corpus", str(corpus_dir), "--text", "Find the value of x when 2x+3=7",
            "--question", "4", "--hint", "Edexcel 1MA1/1H", "--results-log", str(log_path),
        ]
        monkeypatch.setattr(sys, "argv", argv)
        assert run_detection.main() == 0
        assert run_detection.main() == 0
        capsys.readouterr()

        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        record = json.loads(lines[0])
        assert record["paper_hint"] == "Edexcel 1MA1/1H"
        assert list(record["marking_schemes"]) == ["4_Pearson Edexcel_1MA1/1H"]

    def test_main_when_corpus_missing_then_error_code(self, tmp_path, monkeypatch):
        """A missing corpus directory exits with 1."""
        monkeypatch.setattr(sys, "argv", [
            "run_detection.py", "--corpus", str(tmp_path / "nope"), "--text", "Solve 2x = 8",
        ])
        assert run_detection.main() == 1

    def test_load_fragments_when_list_then_fragments(self, tmp_path):
        """A bare JSON list is accepted too."""
        path = tmp_path / "fragments.json"
        path.write_text(json.dumps([{"text": "Solve 2x = 8", "question_number": "2"}]), encoding="utf-8")
        fragments = run_detection.load_fragments(path)
        assert fragments[0].question_number == "2"
