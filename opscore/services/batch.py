"""
Batch run bookkeeping shared by the recurrence and escalation jobs
"""
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from opscore.error_handlers.logging import job_logger


@dataclass
class ItemFailure:
    """One item that failed in a run; the rest of the batch still ran"""
    item_id: str
    error_type: str
    reason: str
    error_id: str

    def to_dict(self):
        return {
            'item_id': self.item_id,
            'error_type': self.error_type,
            'reason': self.reason,
            'error_id': self.error_id,
        }


@dataclass
class BatchResult:
    """Outcome of one job run"""
    job: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    processed: int = 0
    counts: Counter = field(default_factory=Counter)
    deferred: List[str] = field(default_factory=list)
    failures: List[ItemFailure] = field(default_factory=list)

    def record(self, outcome: str) -> None:
        """Count a processed item under its outcome (created, duplicate, not_due, ...)"""
        self.processed += 1
        self.counts[outcome] += 1

    def count(self, outcome: str) -> int:
        return self.counts.get(outcome, 0)

    def record_failure(self, item_id: str, error: Exception,
                       context: Optional[Dict[str, Any]] = None) -> ItemFailure:
        """Log a failed item with an error id and keep going"""
        self.processed += 1
        logged = job_logger.item_failed(self.job, item_id, error, context)
        failure = ItemFailure(
            item_id=item_id,
            error_type=getattr(error, 'error_type', None) or logged['error_type'],
            reason=getattr(error, 'message', None) or logged['error_message'],
            error_id=logged['error_id'],
        )
        self.failures.append(failure)
        return failure

    def defer(self, item_ids: List[str]) -> None:
        self.deferred.extend(item_ids)
        job_logger.job_warning(
            self.job, f"Time budget exhausted, {len(item_ids)} item(s) deferred to the next run"
        )

    def finish(self, finished_at: datetime) -> 'BatchResult':
        self.finished_at = finished_at
        job_logger.job_completed(self.job, self.summary())
        return self

    @property
    def success(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        parts = [f"{name}={value}" for name, value in sorted(self.counts.items())]
        parts.append(f"failed={len(self.failures)}")
        parts.append(f"deferred={len(self.deferred)}")
        return ', '.join(parts)

    def to_dict(self):
        return {
            'job': self.job,
            'success': self.success,
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'processed': self.processed,
            'counts': dict(self.counts),
            'deferred': list(self.deferred),
            'failures': [f.to_dict() for f in self.failures],
        }


class TimeBudget:
    """Wall-clock budget for a run; measured on the monotonic clock"""

    def __init__(self, seconds: Optional[float], clock=time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self._started = clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    def expired(self) -> bool:
        return self.seconds is not None and self.elapsed >= self.seconds
