"""Append-only trend history of past runs.

One JSON object per line. Lines are only ever appended, and lines that
fail to parse are skipped on read.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from webperf.models import TrendPoint

logger = logging.getLogger(__name__)


class TrendHistory:
    """Reads and appends TrendPoint records in a JSON Lines file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def append(self, point: TrendPoint) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(point.to_dict(), sort_keys=True) + "\n")
        logger.debug(f"Appended trend point to {self.path}")

    def load(self, config_path: Optional[str] = None) -> List[TrendPoint]:
        """Load recorded points, optionally only those of one config.

        Args:
            config_path: Only return points recorded for this config

        Returns:
            Points in the order they were appended
        """
        if not self.path.exists():
            return []

        points = []
        with open(self.path, 'r', encoding='utf-8') as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    point = TrendPoint.from_dict(json.loads(line))
                except (ValueError, TypeError) as e:
                    logger.warning(f"Skipping unreadable history line {line_number} in {self.path}: {e}")
                    continue
                if config_path is None or point.config_path == config_path:
                    points.append(point)
        return points

    def latest(self, config_path: Optional[str] = None) -> Optional[TrendPoint]:
        points = self.load(config_path)
        return points[-1] if points else None
