"""Report generation engine.

Ties the pipeline together: normalize raw results (standard or streaming
path), render templates selected by key, and write the results in one
batch.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from webperf.aggregation import build_processed_data
from webperf.config import ReportConfig
from webperf.constants import REPORT_SOURCE, REPORT_VERSION
from webperf.file_writer import BatchFileWriter, BatchWriteResult
from webperf.history import TrendHistory
from webperf.memory import MemoryMonitor, estimate_size, get_memory_monitor
from webperf.models import AuditMetadata, PageAuditResult, ProcessedAuditData, Report
from webperf.normalizer import build_metadata, normalize_pages
from webperf.reports.executive import trend_point
from webperf.reports.registry import TemplateRegistry, default_registry
from webperf.streaming import ChunkedProcessor, StreamingDecision, should_use_streaming

logger = logging.getLogger(__name__)

# Report keys per audience
DEVELOPER_REPORTS = ("quick-fixes", "triage", "overview", "structured-issues")
AI_REPORTS = ("ai-analysis", "structured-issues")
EXECUTIVE_REPORTS = ("dashboard", "performance-summary")
INTEGRATION_OUTPUTS = ("cicd", "webhook")

REPORT_GROUPS = {
    "developer": DEVELOPER_REPORTS,
    "ai": AI_REPORTS,
    "executive": EXECUTIVE_REPORTS,
    "integration": INTEGRATION_OUTPUTS,
}


@dataclass
class RunOutcome:
    """Everything a full generation run produced."""

    output_dir: Path
    reports: Dict[str, Report]
    write_result: BatchWriteResult
    decision: StreamingDecision
    memory: dict = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        """Completed, but some files could not be written."""
        return bool(self.write_result.failures)

    @property
    def error(self):
        return self.write_result.error


class ReportGeneratorEngine:
    """Generates reports from one audit run.

    Args:
        config: Pipeline configuration, defaults to ReportConfig()
        registry: Template registry, defaults to every built-in template
        monitor: Memory monitor, defaults to the process-wide one
        history: Optional trend history read for baselines and appended to
    """

    def __init__(
        self,
        config: Optional[ReportConfig] = None,
        registry: Optional[TemplateRegistry] = None,
        monitor: Optional[MemoryMonitor] = None,
        history: Optional[TrendHistory] = None,
    ):
        self.config = config or ReportConfig()
        self.config.validate()
        self.registry = registry or default_registry(self.config)
        self.monitor = monitor or get_memory_monitor(self.config)
        self.writer = BatchFileWriter.from_config(self.config)
        self.history = history

    async def process(self, audit_result: Any) -> Tuple[ProcessedAuditData, StreamingDecision]:
        """Normalize and aggregate a run on the standard or streaming path.

        Args:
            audit_result: ``{"meta": {...}, "results": [...]}`` or a bare list of results

        Returns:
            Tuple of (processed data, streaming decision)
        """
        results, metadata = self._unpack(audit_result)

        with self.monitor.monitoring():
            # A heap still critical after collection marks the monitor degraded
            self.monitor.check()
            decision = should_use_streaming(
                estimate_size(results), len(results), self.config, self.monitor
            )
            logger.info(
                f"Processing {len(results)} page results on the "
                f"{'streaming' if decision.use_streaming else 'standard'} path: {decision.reason}"
            )

            if decision.use_streaming:
                processor = ChunkedProcessor(self.config, self.monitor)
                data = await processor.process(results, metadata)
            else:
                data = await self._process_standard(results, metadata)
                if data.streamed:
                    decision = StreamingDecision(
                        use_streaming=True,
                        reason="memory still critical after garbage collection",
                        estimated_bytes=decision.estimated_bytes,
                        page_count=decision.page_count,
                    )

        return data, decision

    async def _process_standard(self, results: List[Any], metadata: AuditMetadata) -> ProcessedAuditData:
        loop = asyncio.get_running_loop()
        workers = max(self.config.normalize_workers, 1)
        step = self.config.chunk_size
        pages: List[PageAuditResult] = []

        for start in range(0, len(results), step):
            batch = results[start:start + step]
            pages.extend(await loop.run_in_executor(None, normalize_pages, batch, workers))

            self.monitor.check()
            if self.monitor.degraded:
                logger.warning(f"Switching remaining {len(results) - start - len(batch)} pages to streaming")
                processor = ChunkedProcessor(self.config, self.monitor)
                return await processor.process(results[start + step:], metadata, pages_done=pages)

        return build_processed_data(pages, metadata)

    def render(self, data: ProcessedAuditData, key: str) -> Report:
        """Render one template by key.

        Raises:
            TemplateNotFoundError: If the key is not registered
        """
        if key == "standard-json" and data.streamed and "streaming-json" in self.registry:
            template = self.registry.get("streaming-json")
        else:
            template = self.registry.get(key)

        start = time.perf_counter()
        content = template.generate(data)
        return Report(
            key=key,
            format=template.format,
            filename=template.filename,
            content=content,
            metadata={
                'generatedAt': datetime.now().isoformat(),
                'version': REPORT_VERSION,
                'source': REPORT_SOURCE,
                'generationTimeMs': round((time.perf_counter() - start) * 1000, 2),
                'pageCount': len(data.pages),
                'streamingUsed': data.streamed,
            },
        )

    async def generate(self, audit_result: Any, fmt: str) -> Report:
        """Process a run and render one standard format."""
        key = f"standard-{fmt}"
        self.registry.get(key)  # fail before processing
        data, _ = await self.process(audit_result)
        return self.render(data, key)

    def render_group(self, data: ProcessedAuditData, keys: Iterable[str]) -> Dict[str, Report]:
        reports = {}
        with self.monitor.monitoring():
            for key in keys:
                report = self.render(data, key)
                reports[report.filename] = report
                self.monitor.check()
        return reports

    def developer_reports(self, data: ProcessedAuditData) -> Dict[str, Report]:
        return self.render_group(data, DEVELOPER_REPORTS)

    def ai_reports(self, data: ProcessedAuditData) -> Dict[str, Report]:
        return self.render_group(data, AI_REPORTS)

    def executive_reports(self, data: ProcessedAuditData) -> Dict[str, Report]:
        return self.render_group(data, EXECUTIVE_REPORTS)

    def integration_outputs(self, data: ProcessedAuditData) -> Dict[str, Report]:
        return self.render_group(data, INTEGRATION_OUTPUTS)

    async def write_reports(self, reports: Dict[str, Report], output_dir: Union[str, Path]) -> BatchWriteResult:
        """Write rendered reports, raising only when every write failed.

        Raises:
            BatchWriteError: If no file could be written
        """
        result = await self.writer.write_all(
            {report.filename: report.content for report in reports.values()},
            output_dir,
        )
        if result.all_failed:
            raise result.error
        if result.failures:
            logger.warning(f"Completed with partial failure: {result.error}")
        return result

    async def generate_all(
        self,
        audit_result: Any,
        output_dir: Union[str, Path],
        formats: Optional[Iterable[str]] = None,
        groups: Iterable[str] = tuple(REPORT_GROUPS),
    ) -> RunOutcome:
        """Render every requested format and report group, then write them.

        Args:
            audit_result: Raw run from the collector
            output_dir: Directory for the report files
            formats: Standard formats, defaults to config.output_formats
            groups: Report groups (developer, ai, executive, integration)

        Returns:
            RunOutcome; ``partial`` is set when some writes failed

        Raises:
            TemplateNotFoundError: If a requested format or group key is unknown
            BatchWriteError: If every write failed
        """
        formats = list(formats or self.config.output_formats)
        keys = [f"standard-{fmt}" for fmt in formats]
        for group in groups:
            if group not in REPORT_GROUPS:
                keys.append(group)  # surfaces as a missing template below
                continue
            keys.extend(key for key in REPORT_GROUPS[group] if key not in keys)
        for key in keys:
            self.registry.get(key)

        data, decision = await self.process(audit_result)
        reports = self.render_group(data, keys)

        write_result = await self.write_reports(reports, output_dir)

        if self.history is not None:
            self.history.append(trend_point(data))

        return RunOutcome(
            output_dir=Path(output_dir),
            reports=reports,
            write_result=write_result,
            decision=decision,
            memory=self.monitor.summary(),
        )

    def _unpack(self, audit_result: Any) -> Tuple[List[Any], AuditMetadata]:
        if isinstance(audit_result, dict):
            results = list(audit_result.get("results") or [])
            metadata = build_metadata(audit_result.get("meta"))
        else:
            results = list(audit_result or [])
            metadata = AuditMetadata(total_pages=len(results))

        if self.history is not None:
            metadata.baseline = self.history.latest(metadata.config_path)
        return results, metadata
