"""Tests for configuration loading and validation."""

import json

import pytest

from webperf.config import ReportConfig, load_config
from webperf.exceptions import InvalidConfigError
from webperf.scoring import ScoringWeights


class TestReportConfig:
    """Tests for ReportConfig sources and validation."""

    def test_defaults(self):
        config = ReportConfig()

        assert config.output_formats == ["markdown", "json", "html", "csv"]
        assert config.streaming_threshold == 50
        assert config.chunk_size == 50
        assert config.compression_enabled is False
        assert config.scoring == ScoringWeights()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("WEBPERF_STREAMING_THRESHOLD", "100")
        monkeypatch.setenv("WEBPERF_MAX_MEMORY_MB", "256.5")
        monkeypatch.setenv("WEBPERF_COMPRESSION_ENABLED", "true")
        monkeypatch.setenv("WEBPERF_OUTPUT_FORMATS", "json, csv")
        monkeypatch.setenv("WEBPERF_SCORING_W_TIME", "0.6")
        monkeypatch.setenv("WEBPERF_SCORING_SEVERITY_CRITICAL", "5")

        config = ReportConfig.from_env()

        assert config.streaming_threshold == 100
        assert config.max_memory_mb == 256.5
        assert config.compression_enabled is True
        assert config.output_formats == ["json", "csv"]
        assert config.scoring.w_time == 0.6
        assert config.scoring.severity_weight("critical") == 5.0

    def test_from_env_rejects_bad_numbers(self, monkeypatch):
        monkeypatch.setenv("WEBPERF_CHUNK_SIZE", "many")

        with pytest.raises(InvalidConfigError) as exc_info:
            ReportConfig.from_env()

        assert exc_info.value.key == "chunk_size"

    def test_from_file(self, tmp_path):
        path = tmp_path / "webperf.json"
        path.write_text(json.dumps({
            "report": {
                "chunk_size": 10,
                "max_concurrent_writes": 2,
                "scoring": {"w_pages": 0.5, "severity_weights": {"critical": 8}},
            }
        }))

        config = ReportConfig.from_file(str(path))

        assert config.chunk_size == 10
        assert config.max_concurrent_writes == 2
        assert config.scoring.w_pages == 0.5
        assert config.scoring.severity_weight("critical") == 8.0
        assert config.scoring.severity_weight("low") == 1.0

    def test_missing_file_gives_defaults(self, tmp_path):
        assert ReportConfig.from_file(str(tmp_path / "absent.json")) == ReportConfig()

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "saved.json"
        config = ReportConfig(chunk_size=25, compression_enabled=True)

        config.save_to_file(str(path))

        assert load_config(str(path)) == config

    @pytest.mark.parametrize("overrides, key", [
        ({"output_formats": ["pdf"]}, "output_formats"),
        ({"chunk_size": 0}, "chunk_size"),
        ({"max_concurrent_writes": 0}, "max_concurrent_writes"),
        ({"max_memory_mb": 0}, "max_memory_mb"),
        ({"warning_threshold": 0.95}, "warning_threshold"),
        ({"compression_level": 12}, "compression_level"),
    ])
    def test_validate(self, overrides, key):
        with pytest.raises(InvalidConfigError) as exc_info:
            ReportConfig(**overrides).validate()

        assert exc_info.value.key == key

    def test_validate_scoring(self):
        config = ReportConfig(scoring=ScoringWeights(severity_weights={
            'critical': 1.0, 'high': 2.0, 'medium': 2.0, 'low': 1.0,
        }))

        with pytest.raises(InvalidConfigError):
            config.validate()
