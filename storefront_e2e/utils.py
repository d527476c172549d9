"""Shared utility functions for the storefront E2E suite.

File-name helpers, Rich-based console reporting, and a site-availability
check used before browser work starts.
"""

from __future__ import annotations

import asyncio
import re
import time
from typing import Any

import httpx
from rich.console import Console
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def sanitize_name(name: str) -> str:
    """Convert an arbitrary label to a safe file-name fragment.

    * Lowercases the input.
    * Replaces spaces and non-alphanumeric characters (except hyphens and
      underscores) with hyphens.
    * Collapses consecutive hyphens and strips leading/trailing hyphens.

    Examples::

        sanitize_name("standard") -> "standard"
        sanitize_name("Performance Glitch") -> "performance-glitch"
        sanitize_name("  locked_out  ") -> "locked_out"
    """
    result = re.sub(r"[^a-zA-Z0-9_-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-")


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, Any], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


# ---------------------------------------------------------------------------
# Availability check
# ---------------------------------------------------------------------------


async def wait_for_site(
    url: str,
    timeout: float = 30,
    interval: float = 2,
) -> bool:
    """Poll *url* until it answers with a non-5xx status or *timeout* elapses.

    Returns:
        ``True`` if the site answered within the window, ``False`` otherwise.
    """
    deadline = time.monotonic() + timeout

    async with httpx.AsyncClient(
        timeout=httpx.Timeout(5.0, connect=3.0),
        follow_redirects=True,
    ) as client:
        while time.monotonic() < deadline:
            try:
                response = await client.get(url)
                if response.status_code < 500:
                    return True
            except httpx.HTTPError:
                pass

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            await asyncio.sleep(min(interval, remaining))

    return False
