"""Streaming decision and chunked, bounded-memory processing."""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from webperf.aggregation import IssueAggregator, MetricsAccumulator
from webperf.constants import BYTES_PER_MB, MIN_CHUNK_SIZE
from webperf.memory import MemoryMonitor, MemoryState
from webperf.models import AuditMetadata, PageAuditResult, ProcessedAuditData
from webperf.normalizer import normalize_pages

logger = logging.getLogger(__name__)


@dataclass
class StreamingDecision:
    """Which processing path a run takes, and why."""

    use_streaming: bool
    reason: str
    estimated_bytes: int = 0
    page_count: int = 0


def should_use_streaming(
    estimated_bytes: int,
    page_count: int,
    config,
    monitor: Optional[MemoryMonitor] = None,
) -> StreamingDecision:
    """Choose between the standard and the streaming path.

    Args:
        estimated_bytes: Structural size estimate of the dataset
        page_count: Number of raw page results
        config: ReportConfig with the threshold and memory budget
        monitor: Optional monitor; a degraded monitor forces streaming

    Returns:
        StreamingDecision with the reason for the choice
    """
    budget_bytes = config.max_memory_mb * BYTES_PER_MB * config.streaming_budget_fraction

    if page_count > config.streaming_threshold:
        reason = f"{page_count} pages exceeds streaming threshold of {config.streaming_threshold}"
        use_streaming = True
    elif estimated_bytes > budget_bytes:
        reason = (
            f"estimated {estimated_bytes / BYTES_PER_MB:.1f}MB exceeds "
            f"{config.streaming_budget_fraction:.0%} of {config.max_memory_mb:.0f}MB budget"
        )
        use_streaming = True
    elif monitor is not None and monitor.degraded:
        reason = "memory still critical after garbage collection"
        use_streaming = True
    else:
        reason = "dataset fits in memory budget"
        use_streaming = False

    return StreamingDecision(
        use_streaming=use_streaming,
        reason=reason,
        estimated_bytes=estimated_bytes,
        page_count=page_count,
    )


class ChunkedProcessor:
    """Normalizes and aggregates pages a chunk at a time.

    Each chunk is fully normalized before it is folded into the running
    aggregates. Only compact pages (no resources or recommendations) are
    kept once a chunk is folded.
    """

    def __init__(self, config, monitor: Optional[MemoryMonitor] = None):
        self.config = config
        self.monitor = monitor
        self.chunk_size = config.chunk_size
        self.chunks_processed = 0

    async def process(
        self,
        raw_results: Iterable[Any],
        metadata: Optional[AuditMetadata] = None,
        pages_done: Optional[List[PageAuditResult]] = None,
    ) -> ProcessedAuditData:
        """Process raw results into ProcessedAuditData.

        Args:
            raw_results: Raw page results, any iterable
            metadata: Run metadata
            pages_done: Pages already normalized by an aborted standard run

        Returns:
            ProcessedAuditData marked as streamed
        """
        metadata = metadata or AuditMetadata()
        aggregator = IssueAggregator()
        accumulator = MetricsAccumulator()
        pages: List[PageAuditResult] = []

        for page in pages_done or []:
            self._fold(page, aggregator, accumulator, pages)

        loop = asyncio.get_running_loop()
        iterator = iter(raw_results)
        workers = max(self.config.normalize_workers, 1)

        while True:
            chunk = list(itertools.islice(iterator, self.chunk_size))
            if not chunk:
                break

            normalized = await loop.run_in_executor(None, normalize_pages, chunk, workers)
            for page in normalized:
                self._fold(page, aggregator, accumulator, pages)
            del chunk, normalized

            self.chunks_processed += 1
            logger.debug(f"Folded chunk {self.chunks_processed} ({len(pages)} pages so far)")

            await asyncio.sleep(0)
            self._adapt_chunk_size()

        logger.info(
            f"Streamed {len(pages)} pages in {self.chunks_processed} chunks, "
            f"{len(aggregator)} distinct issues"
        )
        return ProcessedAuditData(
            pages=pages,
            issues=aggregator.issues(),
            performance_metrics=accumulator.result(metadata.elapsed_ms),
            metadata=metadata,
            streamed=True,
        )

    def _fold(self, page, aggregator, accumulator, pages) -> None:
        aggregator.add_page(page)
        accumulator.add_page(page)
        pages.append(page.compact())

    def _adapt_chunk_size(self) -> None:
        if self.monitor is None:
            return
        if self.monitor.check() == MemoryState.EMERGENCY and self.chunk_size > MIN_CHUNK_SIZE:
            self.chunk_size = max(self.chunk_size // 2, MIN_CHUNK_SIZE)
            logger.warning(f"Memory emergency, reducing chunk size to {self.chunk_size}")
