"""Command-line entry point: ``storefront-e2e``.

Runs the session hooks outside pytest and exposes the result aggregator and
visual differ for ad-hoc use::

    storefront-e2e setup
    storefront-e2e teardown --cleanup
    storefront-e2e summarize reports/test-results.json -o reports/summary.json
    storefront-e2e compare actual.png login-page.png --threshold 0.2 --max-diff 1.5
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import NoReturn, Optional, Sequence

from rich.console import Console

from .auth.users import AuthError
from .config import Config
from .lifecycle import global_setup, global_teardown
from .tester.comparator import FileBaselineStore, VisualDiffer, VisualDiffError
from .tester.results import ResultAggregator, ResultDataError
from .utils import print_summary_table

console = Console()


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}")
    sys.exit(1)


def _config_from(args: argparse.Namespace) -> Config:
    config = Config.from_env()
    updates: dict = {}
    if getattr(args, "base_url", None):
        updates["base_url"] = args.base_url
    if getattr(args, "project_dir", None):
        updates["project_dir"] = Path(args.project_dir)
    if getattr(args, "cleanup", False):
        updates["cleanup_auth_states"] = True
    return config.model_copy(update=updates) if updates else config


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_setup(args: argparse.Namespace) -> None:
    try:
        report = asyncio.run(global_setup(_config_from(args)))
    except AuthError as exc:
        _fail(str(exc))
    if report.failed:
        _fail(f"Auth state creation failed for: {', '.join(sorted(report.failed))}")


def _cmd_teardown(args: argparse.Namespace) -> None:
    try:
        global_teardown(_config_from(args), strict=True)
    except ResultDataError as exc:
        _fail(str(exc))


def _cmd_summarize(args: argparse.Namespace) -> None:
    results_path = Path(args.results)
    summary_path = Path(args.output) if args.output else results_path.with_name("summary.json")
    try:
        ResultAggregator(results_path, summary_path).aggregate()
    except ResultDataError as exc:
        _fail(str(exc))
    console.print(f"[green]Summary written to {summary_path}[/green]")


def _cmd_compare(args: argparse.Namespace) -> None:
    baseline_file = Path(args.baseline)
    config = _config_from(args)
    baselines_dir = Path(args.baselines) if args.baselines else config.baselines_dir
    differ = VisualDiffer(
        FileBaselineStore(baselines_dir),
        default_threshold=config.visual_threshold,
        diff_dir=args.diff_dir,
    )

    try:
        actual = Path(args.actual).read_bytes()
    except OSError as exc:
        _fail(f"Cannot read {args.actual}: {exc}")

    try:
        if baseline_file.is_file():
            result = differ.compare(
                actual, baseline_file.read_bytes(), args.threshold, diff_name=baseline_file.name
            )
            result = result.model_copy(update={"baseline_name": str(baseline_file)})
        else:
            result = differ.compare_to_baseline(actual, args.baseline, args.threshold)
    except (VisualDiffError, ValueError) as exc:
        _fail(str(exc))

    rows = {
        "Baseline": result.baseline_name,
        "Size": f"{result.width}x{result.height}",
        "Differing pixels": f"{result.differing_pixels} / {result.total_pixels}",
        "Difference": f"{result.diff_percentage:.2f}%",
        "Threshold": f"{result.threshold:g}",
    }
    if result.diff_path:
        rows["Diff image"] = result.diff_path
    print_summary_table(rows, title="Visual comparison")

    if args.max_diff is not None and result.diff_percentage > args.max_diff:
        _fail(f"Difference {result.diff_percentage:.2f}% exceeds the allowed {args.max_diff:g}%")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storefront-e2e",
        description="Storefront E2E suite -- session hooks, result summaries, and visual diffs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  storefront-e2e setup --base-url https://www.saucedemo.com\n"
            "  storefront-e2e summarize reports/test-results.json\n"
            "  storefront-e2e compare actual.png login-page.png --max-diff 1.5\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    setup = subparsers.add_parser("setup", help="Create per-role auth-state files")
    setup.add_argument("--base-url", default=None, help="Storefront URL (overrides BASE_URL)")
    setup.add_argument("--project-dir", default=None, help="Root for data/, reports/ and auth state")
    setup.set_defaults(handler=_cmd_setup)

    teardown = subparsers.add_parser("teardown", help="Clean auth state and aggregate results")
    teardown.add_argument("--project-dir", default=None, help="Root for data/, reports/ and auth state")
    teardown.add_argument(
        "--cleanup",
        action="store_true",
        default=False,
        help="Remove auth-state files (same as CLEANUP_AUTH_STATES=true)",
    )
    teardown.set_defaults(handler=_cmd_teardown)

    summarize = subparsers.add_parser("summarize", help="Summarise a JSON results file")
    summarize.add_argument("results", help="JSON array of test outcomes")
    summarize.add_argument(
        "--output", "-o",
        default=None,
        help="Summary destination (default: summary.json next to the results file)",
    )
    summarize.set_defaults(handler=_cmd_summarize)

    compare = subparsers.add_parser("compare", help="Pixel-diff a screenshot against a baseline")
    compare.add_argument("actual", help="Screenshot to check (PNG)")
    compare.add_argument("baseline", help="Baseline image file, or a name inside --baselines")
    compare.add_argument("--threshold", type=float, default=None, help="Per-pixel tolerance in [0, 1]")
    compare.add_argument("--baselines", default=None, help="Baseline directory (default: visual-baselines)")
    compare.add_argument("--diff-dir", default=None, help="Write a highlighted diff image here")
    compare.add_argument(
        "--max-diff",
        type=float,
        default=None,
        help="Exit 1 when the difference percentage exceeds this value",
    )
    compare.set_defaults(handler=_cmd_compare)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for ``storefront-e2e`` and ``python -m storefront_e2e``."""
    args = build_parser().parse_args(argv)
    args.handler(args)


if __name__ == "__main__":
    main()
