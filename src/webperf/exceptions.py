"""Exception hierarchy for report generation."""

from typing import Any, Dict, Iterable, List, Optional, Tuple


class WebperfError(Exception):
    """Base exception for all report generation errors."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(WebperfError):
    """Base class for configuration-related errors."""

    pass


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class TemplateNotFoundError(ConfigurationError):
    """Raised when a requested report template is not registered."""

    def __init__(self, key: str, available: Iterable[str] = ()):
        self.key = key
        self.available = sorted(available)
        super().__init__(
            f"Template not found: {key}",
            details={"available": ", ".join(self.available)} if self.available else None,
        )


class InvalidIssueError(WebperfError):
    """Raised when audit data is structurally invalid, e.g. an issue without an id."""

    def __init__(self, reason: str, page: Optional[str] = None):
        super().__init__(
            f"Invalid issue data: {reason}",
            details={"page": page} if page else None,
        )
        self.reason = reason
        self.page = page


class BatchWriteError(WebperfError):
    """Composite error listing every report file that could not be written."""

    def __init__(self, failures: List[Tuple[str, str]]):
        self.failures = list(failures)
        listing = ", ".join(f"{path}: {cause}" for path, cause in self.failures)
        super().__init__(f"Failed to write {len(self.failures)} files: {listing}")

    @property
    def failed_paths(self) -> List[str]:
        return [path for path, _ in self.failures]
