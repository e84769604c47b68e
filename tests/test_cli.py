"""Tests for the command-line entry point."""

import json

import pytest

from conftest import summary_entry
from webperf.cli import main


@pytest.fixture
def results_file(tmp_path, sample_run):
    path = tmp_path / "results.json"
    path.write_text(json.dumps(sample_run))
    return path


class TestMain:
    """Tests for webperf.cli.main."""

    def test_generates_reports(self, results_file, tmp_path, capsys):
        out = tmp_path / "reports"

        code = main([str(results_file), "-o", str(out), "-f", "json", "-g", "integration"])

        assert code == 0
        assert {p.name for p in out.iterdir()} == {"report.json", "cicd.json", "webhook.json"}
        assert "Wrote 3 reports (standard path)" in capsys.readouterr().out

    def test_streaming_threshold_and_history(self, tmp_path):
        results = tmp_path / "results.json"
        results.write_text(json.dumps([summary_entry(f"/p{i}") for i in range(4)]))
        history = tmp_path / "history.jsonl"

        code = main([
            str(results), "-o", str(tmp_path / "out"), "-f", "json", "-g", "executive",
            "--streaming-threshold", "2", "--history", str(history),
        ])

        assert code == 0
        assert len(history.read_text().splitlines()) == 1

    def test_missing_results_file(self, tmp_path):
        assert main([str(tmp_path / "absent.json"), "-o", str(tmp_path / "out")]) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "results.json"
        path.write_text("{not json")

        assert main([str(path), "-o", str(tmp_path / "out")]) == 1

    def test_rejects_unknown_format(self, results_file):
        with pytest.raises(SystemExit):
            main([str(results_file), "-f", "pdf"])
