"""
risqlab: Batch Outcome Reporting

Every batch stage processes many independent items (assets, dates,
timestamps). A failure or a skip for one item never aborts the batch;
instead each item produces an :class:`ItemOutcome` which is collected
into a :class:`RunSummary`, logged at the end of the run.

Key responsibilities:
- Represent per-item success/skip/error with a reason
- Aggregate counts and rows written for a run
- Log a one-line summary plus the individual errors

External dependencies:
- None

Database tables accessed:
- None

Thread safety: Not thread-safe (a RunSummary belongs to one run)

Author: risqlab Team
Created: 2025-11-26
Last Modified: 2025-11-28
Status: Development
Version: v0.1.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class OutcomeStatus(str, Enum):
    """Result class of a single batch item."""

    SUCCESS = "SUCCESS"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class ItemOutcome:
    """Outcome of processing one item in a batch.

    Attributes:
        key: Human-readable identifier of the item (symbol, date, ...).
        status: Success, skip or error.
        reason: Why the item was skipped or failed.
        rows_written: Number of new rows persisted for this item.
    """

    key: str
    status: OutcomeStatus
    reason: Optional[str] = None
    rows_written: int = 0

    @classmethod
    def success(cls, key: str, rows_written: int = 0) -> "ItemOutcome":
        return cls(key=key, status=OutcomeStatus.SUCCESS, rows_written=rows_written)

    @classmethod
    def skipped(cls, key: str, reason: str) -> "ItemOutcome":
        return cls(key=key, status=OutcomeStatus.SKIPPED, reason=reason)

    @classmethod
    def error(cls, key: str, reason: str) -> "ItemOutcome":
        return cls(key=key, status=OutcomeStatus.ERROR, reason=reason)


@dataclass
class RunSummary:
    """Aggregated outcomes of one batch run."""

    stage: str
    outcomes: List[ItemOutcome] = field(default_factory=list)
    duration_seconds: float = 0.0

    def record(self, outcome: ItemOutcome) -> ItemOutcome:
        self.outcomes.append(outcome)
        return outcome

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def succeeded(self) -> int:
        return self._count(OutcomeStatus.SUCCESS)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def errors(self) -> int:
        return self._count(OutcomeStatus.ERROR)

    @property
    def rows_written(self) -> int:
        return sum(o.rows_written for o in self.outcomes)

    @property
    def error_outcomes(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.ERROR]

    def log(self, logger: logging.Logger) -> None:
        """Log the run totals and each error outcome."""

        logger.info(
            "%s complete in %.2fs: %d success, %d skipped, %d errors, %d rows written",
            self.stage,
            self.duration_seconds,
            self.succeeded,
            self.skipped,
            self.errors,
            self.rows_written,
        )
        for outcome in self.error_outcomes:
            logger.error("%s failed for %s: %s", self.stage, outcome.key, outcome.reason)


__all__ = ["OutcomeStatus", "ItemOutcome", "RunSummary"]
