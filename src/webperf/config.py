from dotenv import load_dotenv
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
import json
import os

from webperf.exceptions import InvalidConfigError
from webperf.scoring import ScoringWeights

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    OUTPUT_DIR = os.getenv("WEBPERF_OUTPUT_DIR", "reports")
    LOG_LEVEL = os.getenv("WEBPERF_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("WEBPERF_LOG_FILE")
    HISTORY_FILE = os.getenv("WEBPERF_HISTORY_FILE")
    CONFIG_FILE = os.getenv("WEBPERF_CONFIG_FILE")


settings = Settings()

OUTPUT_FORMATS = ("markdown", "json", "html", "csv")


@dataclass
class ReportConfig:
    """Configuration for the report generation pipeline."""

    output_formats: list[str] = field(default_factory=lambda: list(OUTPUT_FORMATS))
    max_issues_per_report: int = 100

    # Streaming decision
    streaming_threshold: int = 50  # pages above this stream
    chunk_size: int = 50
    streaming_budget_fraction: float = 0.8

    # Memory monitor (fractions of max_memory_mb)
    max_memory_mb: float = 512.0
    warning_threshold: float = 0.70
    emergency_threshold: float = 0.90

    # Batch file writer
    compression_enabled: bool = False
    compression_threshold: int = 1024  # bytes of content
    compression_level: int = 6
    max_concurrent_writes: int = 5

    # Worker pool for page normalization
    normalize_workers: int = 4

    # CI/CD budget gate
    ci_min_performance_score: float = 50.0
    ci_max_critical_issues: int = 0

    scoring: ScoringWeights = field(default_factory=ScoringWeights)

    @classmethod
    def from_env(cls) -> "ReportConfig":
        """Load configuration from environment variables.

        Environment variables should be prefixed with WEBPERF_
        e.g., WEBPERF_STREAMING_THRESHOLD=100

        Returns:
            ReportConfig with values from environment
        """
        config = cls()
        prefix = "WEBPERF_"

        for field_name, field_def in config.__dataclass_fields__.items():
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue
            setattr(config, field_name, _coerce(field_name, field_def.type, env_value))

        config.scoring = ScoringWeights.from_env()
        config.validate()
        return config

    @classmethod
    def from_file(cls, path: str) -> "ReportConfig":
        """Load configuration from a JSON configuration file.

        Args:
            path: Path to JSON configuration file

        Returns:
            ReportConfig with values from file
        """
        config = cls()
        file_path = Path(path)

        if not file_path.exists():
            return config

        with open(file_path, 'r') as f:
            raw = json.load(f)

        report_config = raw.get('report', raw)

        for field_name in config.__dataclass_fields__:
            if field_name == 'scoring':
                continue
            if field_name in report_config:
                setattr(config, field_name, report_config[field_name])

        if 'scoring' in report_config:
            config.scoring = ScoringWeights.from_dict(report_config['scoring'])

        config.validate()
        return config

    def validate(self) -> None:
        """Reject values the pipeline cannot run with.

        Raises:
            InvalidConfigError: If a value is out of range
        """
        unknown = [f for f in self.output_formats if f not in OUTPUT_FORMATS]
        if unknown:
            raise InvalidConfigError("output_formats", unknown, f"supported: {', '.join(OUTPUT_FORMATS)}")
        if self.chunk_size < 1:
            raise InvalidConfigError("chunk_size", self.chunk_size, "must be at least 1")
        if self.max_concurrent_writes < 1:
            raise InvalidConfigError("max_concurrent_writes", self.max_concurrent_writes, "must be at least 1")
        if self.max_memory_mb <= 0:
            raise InvalidConfigError("max_memory_mb", self.max_memory_mb, "must be positive")
        if not 0 < self.warning_threshold < self.emergency_threshold <= 1:
            raise InvalidConfigError(
                "warning_threshold",
                self.warning_threshold,
                "must satisfy 0 < warning < emergency <= 1",
            )
        if not 1 <= self.compression_level <= 9:
            raise InvalidConfigError("compression_level", self.compression_level, "must be 1-9")
        self.scoring.validate()

    def to_dict(self) -> dict:
        """Convert configuration to dictionary.

        Returns:
            Dictionary of all configuration values
        """
        data = {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }
        data['scoring'] = self.scoring.to_dict()
        return data

    def save_to_file(self, path: str) -> None:
        """Save current configuration to a JSON file.

        Args:
            path: Path to save configuration
        """
        with open(path, 'w') as f:
            json.dump({'report': self.to_dict()}, f, indent=2)


def _coerce(name: str, field_type, value: str):
    """Convert an environment string to the field's declared type."""
    try:
        if field_type in (bool, "bool"):
            return value.strip().lower() in ("1", "true", "yes", "on")
        if field_type in (int, "int"):
            return int(value)
        if field_type in (float, "float"):
            return float(value)
    except ValueError:
        raise InvalidConfigError(name, value, f"expected {getattr(field_type, '__name__', field_type)}")
    if name == "output_formats":
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


def load_config(path: Optional[str] = None) -> ReportConfig:
    """Load configuration from a file when one is given, else from the environment."""
    path = path or settings.CONFIG_FILE
    if path:
        return ReportConfig.from_file(path)
    return ReportConfig.from_env()
