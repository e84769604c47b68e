"""Command-line interface for report generation."""

import asyncio
import json
import logging
import sys
from typing import List, Optional

from webperf.config import OUTPUT_FORMATS, load_config, settings
from webperf.engine import REPORT_GROUPS, ReportGeneratorEngine
from webperf.exceptions import WebperfError
from webperf.history import TrendHistory
from webperf.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def _generate(args) -> int:
    with open(args.results, 'r', encoding='utf-8') as f:
        audit_result = json.load(f)

    config = load_config(args.config)
    if args.streaming_threshold is not None:
        config.streaming_threshold = args.streaming_threshold
    if args.compress:
        config.compression_enabled = True

    history_file = args.history or settings.HISTORY_FILE
    engine = ReportGeneratorEngine(
        config=config,
        history=TrendHistory(history_file) if history_file else None,
    )

    outcome = await engine.generate_all(
        audit_result,
        args.output_dir,
        formats=args.formats,
        groups=args.groups,
    )

    for filename in outcome.write_result.written:
        print(f"  {outcome.output_dir / filename}")
    if outcome.partial:
        print(f"Completed with partial failure: {outcome.error}", file=sys.stderr)
    print(
        f"Wrote {outcome.write_result.success_count} reports "
        f"({'streaming' if outcome.decision.use_streaming else 'standard'} path)"
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Generate prioritized web performance reports from audit results"
    )
    parser.add_argument("results", help="Audit results JSON file ({meta, results})")
    parser.add_argument(
        "--output-dir", "-o",
        default=settings.OUTPUT_DIR,
        help=f"Directory for report files (default: {settings.OUTPUT_DIR})",
    )
    parser.add_argument(
        "--format", "-f",
        dest="formats",
        action="append",
        choices=OUTPUT_FORMATS,
        help="Standard output format, repeatable (default: all from config)",
    )
    parser.add_argument(
        "--group", "-g",
        dest="groups",
        action="append",
        choices=sorted(REPORT_GROUPS),
        help="Report group, repeatable (default: all)",
    )
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--history", help="Append-only trend history file (JSON Lines)")
    parser.add_argument("--streaming-threshold", type=int, help="Stream above this many pages")
    parser.add_argument("--compress", action="store_true", help="Gzip large report files")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL,
        help="Set logging verbosity",
    )
    parser.add_argument("--log-file", default=settings.LOG_FILE, help="Write logs to file as well")

    args = parser.parse_args(argv)
    if args.groups is None:
        args.groups = list(REPORT_GROUPS)

    setup_logging(level=args.log_level, log_file=args.log_file)

    try:
        return asyncio.run(_generate(args))
    except (WebperfError, OSError, ValueError) as e:
        logger.error(f"Report generation failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
