"""Session-wide setup and teardown.

``global_setup`` prepares per-role authentication state before any test
runs; ``global_teardown`` removes it on request and turns the raw results
file into ``reports/summary.json``.
"""

from __future__ import annotations

from typing import Optional

from rich.console import Console

from .auth.setup import AuthSetupReport, create_auth_states
from .auth.state import cleanup_auth_states
from .config import Config
from .tester.results import ResultAggregator, ResultDataError, Summary

console = Console()


async def global_setup(config: Config) -> AuthSetupReport:
    """Create output directories and an auth-state file per test user."""
    console.print("[bold blue]Running global setup...[/bold blue]")
    config.ensure_directories()
    report = await create_auth_states(config)
    console.print("[green]Global setup completed[/green]")
    return report


def aggregate_results(config: Config, *, strict: bool = False) -> Optional[Summary]:
    """Summarise ``reports/test-results.json`` into ``reports/summary.json``.

    Returns ``None`` when there is nothing to aggregate. A malformed results
    file is reported and also yields ``None``, unless *strict* is set, in
    which case the ``ResultDataError`` propagates.
    """
    if not config.reports_dir.is_dir():
        console.print("Reports directory not found. Skipping aggregation.")
        return None
    if not config.results_path.exists():
        console.print(f"[dim]No results file at {config.results_path}. Skipping aggregation.[/dim]")
        return None

    try:
        return ResultAggregator(config.results_path, config.summary_path).aggregate()
    except ResultDataError as exc:
        console.print(f"[red]Error aggregating test results: {exc}[/red]")
        if strict:
            raise
        return None


def global_teardown(config: Config, *, strict: bool = False) -> Optional[Summary]:
    """Clean up auth state when configured to, then aggregate results.

    *strict* is passed through to ``aggregate_results``.
    """
    console.print("[bold blue]Running global teardown...[/bold blue]")
    if config.cleanup_auth_states:
        cleanup_auth_states(config.auth_state_dir)
    summary = aggregate_results(config, strict=strict)
    console.print("[green]Global teardown completed[/green]")
    return summary
