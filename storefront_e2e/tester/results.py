"""Test outcome records and result aggregation.

A test run leaves behind a JSON array of per-test outcome records
(``reports/test-results.json``).  :func:`summarize` reduces those records to
a :class:`Summary` -- counts by status and pass rate -- and
:class:`ResultAggregator` handles the file side: reading the records,
writing ``reports/summary.json``, and printing the summary table.

The summary file keeps the field names and formatting other tooling already
reads::

    {
      "timestamp": "2026-01-15T10:30:00.000Z",
      "totalTests": 4,
      "passedTests": 2,
      "failedTests": 1,
      "skippedTests": 1,
      "passRate": "50.00%"
    }
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from ..utils import console, print_summary_table


class ResultDataError(Exception):
    """Raised when outcome records are missing, unreadable, or malformed."""


# ---------------------------------------------------------------------------
# Outcome records
# ---------------------------------------------------------------------------


class TestStatus(str, Enum):
    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


# Playwright reports these for tests that did not finish; both count as failures.
_STATUS_ALIASES = {
    "timedout": TestStatus.FAILED,
    "interrupted": TestStatus.FAILED,
}


class TestOutcome(BaseModel):
    """Result of one test as written to the results file."""

    __test__ = False

    id: str = Field(
        default="",
        validation_alias=AliasChoices("id", "title", "name", "nodeid"),
        description="Test identifier (node id or title)",
    )
    status: TestStatus
    duration_ms: Optional[float] = Field(
        default=None,
        ge=0.0,
        validation_alias=AliasChoices("duration_ms", "duration"),
    )
    error: str = Field(default="", description="Failure message, if any")

    @field_validator("status", mode="before")
    @classmethod
    def _normalise_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return _STATUS_ALIASES.get(lowered, lowered)
        return value


OutcomeRecord = Union[TestOutcome, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def _iso_timestamp() -> str:
    """UTC timestamp with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Summary(BaseModel):
    """Aggregate counts for one test run."""

    total: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    pass_rate: float = Field(default=0.0, ge=0.0, le=100.0, description="Percent; 0 when total is 0")

    def to_report(self, timestamp: Optional[str] = None) -> dict[str, Any]:
        """Return the ``summary.json`` document for this summary."""
        return {
            "timestamp": timestamp or _iso_timestamp(),
            "totalTests": self.total,
            "passedTests": self.passed,
            "failedTests": self.failed,
            "skippedTests": self.skipped,
            "passRate": f"{self.pass_rate:.2f}%",
        }

    def as_table_rows(self) -> dict[str, str]:
        return {
            "Total": str(self.total),
            "Passed": str(self.passed),
            "Failed": str(self.failed),
            "Skipped": str(self.skipped),
            "Pass Rate": f"{self.pass_rate:.2f}%",
        }


def _coerce(record: OutcomeRecord, index: int) -> TestOutcome:
    if isinstance(record, TestOutcome):
        return record
    if not isinstance(record, Mapping):
        raise ResultDataError(
            f"Record {index} is a {type(record).__name__}, expected an object with a 'status' field"
        )
    if "status" not in record:
        raise ResultDataError(f"Record {index} has no 'status' field: {dict(record)!r}")
    try:
        return TestOutcome.model_validate(dict(record))
    except ValidationError as exc:
        raise ResultDataError(f"Record {index} is malformed: {exc.errors()[0]['msg']}") from exc


def summarize(outcomes: Iterable[OutcomeRecord]) -> Summary:
    """Reduce outcome records to a :class:`Summary` in a single pass.

    Records may be :class:`TestOutcome` instances or raw mappings as read
    from JSON.  One malformed record fails the whole aggregation with
    :class:`ResultDataError`.  An empty input yields a pass rate of 0.
    """
    counts = {status: 0 for status in TestStatus}
    total = 0
    for index, record in enumerate(outcomes):
        outcome = _coerce(record, index)
        counts[outcome.status] += 1
        total += 1

    passed = counts[TestStatus.PASSED]
    pass_rate = passed / total * 100.0 if total else 0.0
    return Summary(
        total=total,
        passed=passed,
        failed=counts[TestStatus.FAILED],
        skipped=counts[TestStatus.SKIPPED],
        pass_rate=pass_rate,
    )


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


def load_outcomes(path: Path) -> list[Any]:
    """Read the raw records from a results file.

    Raises:
        ResultDataError: the file is missing, not JSON, or not an array.
    """
    path = Path(path)
    if not path.exists():
        raise ResultDataError(f"Results file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ResultDataError(f"Cannot read results file {path}: {exc}") from exc
    if not isinstance(data, list):
        raise ResultDataError(
            f"Results file {path} must contain a JSON array, got {type(data).__name__}"
        )
    return data


def save_outcomes(outcomes: Iterable[TestOutcome], path: Path) -> Path:
    """Write outcome records as a JSON array, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    records = [outcome.model_dump(mode="json") for outcome in outcomes]
    path.write_text(json.dumps(records, indent=2), encoding="utf-8")
    return path


def write_summary(summary: Summary, path: Path, *, timestamp: Optional[str] = None) -> Path:
    """Persist *summary* in the ``summary.json`` format."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.to_report(timestamp), indent=2), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# ResultAggregator
# ---------------------------------------------------------------------------


class ResultAggregator:
    """Turn a results file into a written and printed summary.

    Parameters
    ----------
    results_path:
        JSON array of outcome records to read.
    summary_path:
        Destination of the ``summary.json`` document.
    """

    def __init__(self, results_path: Path, summary_path: Path) -> None:
        self.results_path = Path(results_path)
        self.summary_path = Path(summary_path)

    def aggregate(self, *, show: bool = True) -> Summary:
        """Read, summarise, write, and (optionally) print.

        Raises:
            ResultDataError: the results file or one of its records is invalid.
        """
        summary = summarize(load_outcomes(self.results_path))
        write_summary(summary, self.summary_path)
        if show:
            self.print_summary(summary)
        return summary

    @staticmethod
    def print_summary(summary: Summary) -> None:
        print_summary_table(summary.as_table_rows(), title="Test results summary")
        color = "green" if summary.failed == 0 else "yellow"
        console.print(f"[{color}]Pass rate: {summary.pass_rate:.2f}%[/{color}]")
