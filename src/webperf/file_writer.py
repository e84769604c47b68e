"""Batched report file writing with bounded concurrency."""

import asyncio
import gzip
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from webperf.exceptions import BatchWriteError

logger = logging.getLogger(__name__)

Outputs = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


@dataclass
class BatchWriteResult:
    """Outcome of one batch: written paths, failures and byte counts."""

    written: List[str] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)
    content_bytes: int = 0
    disk_bytes: int = 0
    elapsed_ms: float = 0.0

    @property
    def success_count(self) -> int:
        return len(self.written)

    @property
    def error_count(self) -> int:
        return len(self.failures)

    @property
    def compression_ratio(self) -> float:
        """Bytes on disk per byte of content written (1.0 without compression)."""
        return self.disk_bytes / self.content_bytes if self.content_bytes else 1.0

    @property
    def all_failed(self) -> bool:
        return bool(self.failures) and not self.written

    @property
    def error(self) -> Optional[BatchWriteError]:
        return BatchWriteError(self.failures) if self.failures else None


class BatchFileWriter:
    """Writes (relative path, content) pairs under an output directory.

    Every file is written to a temporary sibling and renamed into place,
    so an interrupted batch never leaves a truncated report behind.
    """

    def __init__(
        self,
        max_concurrent_writes: int = 5,
        compression_enabled: bool = False,
        compression_threshold: int = 1024,
        compression_level: int = 6,
    ):
        self.max_concurrent_writes = max_concurrent_writes
        self.compression_enabled = compression_enabled
        self.compression_threshold = compression_threshold
        self.compression_level = compression_level

    @classmethod
    def from_config(cls, config) -> "BatchFileWriter":
        return cls(
            max_concurrent_writes=config.max_concurrent_writes,
            compression_enabled=config.compression_enabled,
            compression_threshold=config.compression_threshold,
            compression_level=config.compression_level,
        )

    async def write_all(self, outputs: Outputs, output_dir: Union[str, Path]) -> BatchWriteResult:
        """Write every output, collecting failures instead of raising.

        Args:
            outputs: Mapping or pairs of relative path to content
            output_dir: Directory the relative paths resolve against

        Returns:
            BatchWriteResult; check ``error`` for the composite failure
        """
        items = list(outputs.items()) if isinstance(outputs, Mapping) else list(outputs)
        base = Path(output_dir)
        semaphore = asyncio.Semaphore(self.max_concurrent_writes)
        start = time.perf_counter()

        outcomes = await asyncio.gather(*(
            self._write_one(semaphore, base, relative_path, content)
            for relative_path, content in items
        ))

        result = BatchWriteResult(elapsed_ms=(time.perf_counter() - start) * 1000)
        for relative_path, content_bytes, disk_bytes, error in outcomes:
            if error is None:
                result.written.append(relative_path)
                result.content_bytes += content_bytes
                result.disk_bytes += disk_bytes
            else:
                result.failures.append((relative_path, error))

        logger.info(
            f"Wrote {result.success_count}/{len(items)} files to {base} "
            f"({result.disk_bytes:,} bytes in {result.elapsed_ms:.0f}ms)"
        )
        return result

    async def _write_one(
        self,
        semaphore: asyncio.Semaphore,
        base: Path,
        relative_path: str,
        content: str,
    ) -> Tuple[str, int, int, Optional[str]]:
        async with semaphore:
            target = base / relative_path
            if not _is_within(base, target):
                return relative_path, 0, 0, "path escapes output directory"

            data = content.encode("utf-8")
            payload = data
            if self.compression_enabled and len(data) > self.compression_threshold:
                payload = gzip.compress(data, compresslevel=self.compression_level, mtime=0)
                target = target.with_name(target.name + ".gz")

            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, write_file_atomic, target, payload)
            except OSError as e:
                logger.debug(f"Write failed for {target}: {e}")
                return relative_path, 0, 0, str(e)

            return relative_path, len(data), len(payload), None


def write_file_atomic(target: Path, payload: bytes) -> None:
    """Write bytes to a temp file next to target and rename it over target."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _is_within(base: Path, target: Path) -> bool:
    try:
        target.resolve().relative_to(base.resolve())
    except ValueError:
        return False
    return True
