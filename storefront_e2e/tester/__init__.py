"""Storefront E2E -- Tester module.

Provides the execution and verification utilities the suite is built on:
retry with exponential backoff, visual regression diffing, and test-result
aggregation.

Public API
----------
.. autoclass:: RetryPolicy
.. autoclass:: VisualDiffer
.. autoclass:: DiffResult
.. autoclass:: ResultAggregator
.. autoclass:: Summary
.. autoclass:: TestOutcome
"""

from .comparator import (
    BaselineNotFoundError,
    BaselineStore,
    DiffResult,
    DimensionMismatchError,
    FileBaselineStore,
    ImageDecodeError,
    VisualDiffer,
    VisualDiffError,
    decode_image,
)
from .results import (
    ResultAggregator,
    ResultDataError,
    Summary,
    TestOutcome,
    TestStatus,
    load_outcomes,
    save_outcomes,
    summarize,
    write_summary,
)
from .retry import (
    Attempt,
    RetryConfigError,
    RetryError,
    RetryExhaustedError,
    RetryPolicy,
    retry_with_backoff,
)

__all__ = [
    # Retry
    "RetryPolicy",
    "Attempt",
    "RetryError",
    "RetryConfigError",
    "RetryExhaustedError",
    "retry_with_backoff",
    # Comparator
    "VisualDiffer",
    "DiffResult",
    "BaselineStore",
    "FileBaselineStore",
    "VisualDiffError",
    "DimensionMismatchError",
    "ImageDecodeError",
    "BaselineNotFoundError",
    "decode_image",
    # Results
    "ResultAggregator",
    "ResultDataError",
    "Summary",
    "TestOutcome",
    "TestStatus",
    "summarize",
    "load_outcomes",
    "save_outcomes",
    "write_summary",
]
