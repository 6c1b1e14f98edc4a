# src/main.py — v1
"""CLI entry point — start, slice, run, status, cancel commands.

Usage:
    treescan start --job NAME --root DIR --output SHEET [--mode FILES|FOLDERS|BOTH] [--depth N]
    treescan start --jobs-file jobs.json
    treescan slice [--max-steps N]
    treescan run [--no-wait] [--max-slices N]
    treescan status
    treescan cancel

`slice` is meant to be called by an external timer (cron, systemd); `run`
drives slices itself from the pending triggers until every job is done.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from treescan.version import __version__

logger = logging.getLogger(__name__)

EXIT_INVALID_JOBS = 2


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="treescan",
        description=f"treescan v{__version__} — resumable folder-tree inventory",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--workbook", type=Path, default=None,
        help="Output workbook (default: OUTPUT_PATH setting)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- start ---
    p_start = subparsers.add_parser("start", help="Validate and queue jobs")
    p_start.add_argument("--job", dest="job_name", help="Job name")
    p_start.add_argument("--root", help="Root directory to inventory")
    p_start.add_argument("--output", dest="output_name", help="Output sheet name")
    p_start.add_argument(
        "--mode", default="FILES", type=str.upper,
        help="FILES, FOLDERS or BOTH (default: FILES)",
    )
    p_start.add_argument(
        "--depth", dest="depth_limit", type=int, default=0,
        help="Depth limit, 0 = unlimited (default: 0)",
    )
    p_start.add_argument(
        "--location", action="store_true",
        help="Add a Location column with the parent path",
    )
    p_start.add_argument(
        "--jobs-file", type=Path, default=None,
        help="JSON file holding a list of job objects",
    )
    p_start.set_defaults(func=_cmd_start)

    # --- slice ---
    p_slice = subparsers.add_parser("slice", help="Run one bounded slice of work")
    p_slice.add_argument(
        "--max-steps", type=int, default=None,
        help="Stop after this many steps",
    )
    p_slice.set_defaults(func=_cmd_slice)

    # --- run ---
    p_run = subparsers.add_parser("run", help="Run slices until all jobs are done")
    p_run.add_argument(
        "--no-wait", action="store_true",
        help="Do not wait for trigger fire times between slices",
    )
    p_run.add_argument(
        "--max-slices", type=int, default=None,
        help="Stop after this many slices",
    )
    p_run.set_defaults(func=_cmd_run)

    # --- status ---
    p_status = subparsers.add_parser("status", help="Show job status")
    p_status.set_defaults(func=_cmd_status)

    # --- cancel ---
    p_cancel = subparsers.add_parser("cancel", help="Abandon all jobs")
    p_cancel.set_defaults(func=_cmd_cancel)

    return parser


def _load_engine(args: argparse.Namespace) -> Any:
    """Load settings, configure logging and build the engine."""
    from treescan.api.facade import build_engine
    from treescan.config.settings import load_settings
    from treescan.logging.logger import setup_logging

    overrides: dict[str, Any] = {}
    if args.workbook is not None:
        overrides["output_path"] = args.workbook
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    settings = load_settings(**overrides)

    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    return build_engine(settings)


def _read_jobs(args: argparse.Namespace) -> list[dict[str, Any]]:
    if args.jobs_file is not None:
        data = json.loads(args.jobs_file.read_text(encoding="utf-8"))
        return data if isinstance(data, list) else [data]
    return [
        {
            "job_name": args.job_name or "",
            "root_id": str(Path(args.root).expanduser().absolute()) if args.root else "",
            "output_name": args.output_name or "",
            "mode": args.mode,
            "depth_limit": args.depth_limit,
            "include_location_column": args.location,
        }
    ]


async def _cmd_start(args: argparse.Namespace) -> int:
    """Validate and queue jobs."""
    from treescan.jobs.validation import JobValidationError, parse_job_configs

    engine = _load_engine(args)
    try:
        configs = parse_job_configs(_read_jobs(args))
        started = await engine.manager.start_jobs(configs)
    except JobValidationError as e:
        print("Jobs rejected:", file=sys.stderr)
        for problem in e.problems:
            print(f"  - {problem}", file=sys.stderr)
        return EXIT_INVALID_JOBS
    finally:
        engine.close()

    print(f"\nQueued {len(started)} jobs:")
    for checkpoint in started:
        print(
            f"  {checkpoint.job_name:20s} -> {checkpoint.output_name} "
            f"({checkpoint.mode.value}, {len(checkpoint.queue)} queued)"
        )
    return 0


async def _cmd_slice(args: argparse.Namespace) -> int:
    """Run one slice."""
    engine = _load_engine(args)
    try:
        report = await engine.scheduler.run_slice(max_steps=args.max_steps)
    finally:
        engine.close()
    _print_slice_report(report)
    return 0


async def _cmd_run(args: argparse.Namespace) -> int:
    """Drive slices from pending triggers until idle."""
    from treescan.scheduler.loop import run_until_idle

    engine = _load_engine(args)
    try:
        reports = await run_until_idle(
            engine.scheduler,
            engine.trigger,
            max_slices=args.max_slices,
            wait=not args.no_wait,
        )
    finally:
        engine.close()

    for report in reports:
        _print_slice_report(report)
    print(f"\n{len(reports)} slices run")
    return 0


async def _cmd_status(args: argparse.Namespace) -> int:
    """Print the status table."""
    from treescan.tracking.status import format_status_table

    engine = _load_engine(args)
    try:
        statuses = await engine.manager.job_statuses()
    finally:
        engine.close()
    print(format_status_table(statuses))
    return 0


async def _cmd_cancel(args: argparse.Namespace) -> int:
    """Abandon every job."""
    engine = _load_engine(args)
    try:
        cancelled = await engine.manager.cancel_all()
    finally:
        engine.close()
    if cancelled:
        print(f"Cancelled: {', '.join(cancelled)}")
    else:
        print("No active jobs.")
    return 0


def _print_slice_report(report: Any) -> None:
    """Print a human-readable summary of a SliceReport."""
    print(f"\nSlice {report.slice_id} ({report.stop_reason}):")
    print(f"  Steps:      {report.steps}")
    print(f"  Completed:  {', '.join(report.jobs_completed) or '-'}")
    print(f"  Remaining:  {report.remaining_jobs}")
    print(f"  Duration:   {report.duration_s:.1f}s")


if __name__ == "__main__":
    sys.exit(main())
