"""
Coverage Filter
Decides whether a recurring task shows on today's board, based on who is
scheduled to work.

Rules:
- always_on tasks: always visible, regardless of the schedule
- shift_based tasks: visible only if at least one scheduled worker matches
  the task's location and role (and the task's assignee, when it has one)

Suppression is a read-time projection. Tasks are never mutated or deleted.
"""
import logging
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select

from opscore.services.day_window import parse_day_key
from opscore.utils.timezone import ensure_aware

logger = logging.getLogger(__name__)

ALWAYS_ON = 'always_on'
SHIFT_BASED = 'shift_based'
SCHEDULED_STATUSES = ('approved', 'confirmed')


class CoverageReason(str, Enum):
    """Why a task did or did not get coverage"""
    ALWAYS_ON = "always_on"
    NO_SHIFT = "no_shift"
    LOCATION_MISMATCH = "location_mismatch"
    ROLE_MISMATCH = "role_mismatch"


def normalize_role(name: Optional[str]) -> str:
    """
    Canonical form of a role name for comparison

    Accents are stripped (NFKD, combining marks removed), case is folded and
    runs of whitespace collapse to one space: ' Bucătar  Șef ' -> 'bucatar sef'.
    """
    if not name:
        return ''
    decomposed = unicodedata.normalize('NFKD', name)
    stripped = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    return ' '.join(stripped.casefold().split())


def roles_match(a: Optional[str], b: Optional[str]) -> bool:
    normalized = normalize_role(a)
    return bool(normalized) and normalized == normalize_role(b)


@dataclass(frozen=True)
class ScheduledWorker:
    """One approved shift assignment for the day"""
    employee_id: str
    location_id: Optional[str] = None
    role: Optional[str] = None
    role_id: Optional[str] = None
    shift_id: Optional[str] = None


@dataclass(frozen=True)
class CoverageContext:
    """Workers scheduled on one calendar day"""
    day_key: str
    workers: Tuple[ScheduledWorker, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.workers

    @property
    def scheduled_ids(self) -> frozenset:
        return frozenset(w.employee_id for w in self.workers)


@dataclass
class CoverageResult:
    """Coverage verdict for one task"""
    has_coverage: bool
    covered_by: List[str] = field(default_factory=list)
    reason: Optional[CoverageReason] = None

    def to_dict(self):
        return {
            'has_coverage': self.has_coverage,
            'covered_by': list(self.covered_by),
            'reason': self.reason.value if self.reason else None,
        }


@dataclass(frozen=True)
class TaskCoverage:
    """A task paired with its coverage verdict"""
    task: object
    coverage: CoverageResult


def _execution_mode(task) -> str:
    return getattr(task, 'execution_mode', None) or SHIFT_BASED


def _role_matches(task, worker: ScheduledWorker) -> bool:
    role_id = getattr(task, 'assigned_role_id', None)
    role_name = getattr(task, 'assigned_role_name', None)

    if not role_id and not role_name:
        return True
    # Role id wins when both sides carry one
    if role_id and worker.role_id:
        return worker.role_id == role_id
    if role_name:
        return roles_match(worker.role, role_name)
    return False


def check_coverage(task, context: CoverageContext) -> CoverageResult:
    """
    Check a single task against the day's scheduled workers

    Args:
        task: Task row (or object with execution_mode, location_id,
            assigned_role_id, assigned_role_name, assigned_to)
        context: CoverageContext for the day

    Returns:
        CoverageResult listing the matching workers, or the reason for the
        last mismatch when none match
    """
    if _execution_mode(task) == ALWAYS_ON:
        return CoverageResult(has_coverage=True, reason=CoverageReason.ALWAYS_ON)

    if context.is_empty:
        return CoverageResult(has_coverage=False, reason=CoverageReason.NO_SHIFT)

    location_id = getattr(task, 'location_id', None)
    assigned_to = getattr(task, 'assigned_to', None)
    matching: List[str] = []
    last_mismatch = None

    for worker in context.workers:
        # Tasks without a location match any location
        if location_id and worker.location_id != location_id:
            last_mismatch = CoverageReason.LOCATION_MISMATCH
            continue
        if not _role_matches(task, worker):
            last_mismatch = CoverageReason.ROLE_MISMATCH
            continue
        if worker.employee_id not in matching:
            matching.append(worker.employee_id)

    if assigned_to and assigned_to not in matching:
        matching = []

    if not matching:
        return CoverageResult(has_coverage=False, reason=last_mismatch or CoverageReason.NO_SHIFT)

    return CoverageResult(has_coverage=True, covered_by=matching)


def is_visible(task, context: CoverageContext) -> bool:
    return check_coverage(task, context).has_coverage


def apply_coverage(tasks: Iterable, context: CoverageContext) -> List[TaskCoverage]:
    """Keep the visible tasks, each paired with its coverage"""
    visible = []
    for task in tasks:
        coverage = check_coverage(task, context)
        if coverage.has_coverage:
            visible.append(TaskCoverage(task=task, coverage=coverage))
    return visible


def group_by_coverage(tasks: Iterable, context: CoverageContext) -> Dict[str, List[TaskCoverage]]:
    """Split tasks into covered and no_coverage (manager view)"""
    groups: Dict[str, List[TaskCoverage]] = {'covered': [], 'no_coverage': []}
    for task in tasks:
        coverage = check_coverage(task, context)
        key = 'covered' if coverage.has_coverage else 'no_coverage'
        groups[key].append(TaskCoverage(task=task, coverage=coverage))
    return groups


def is_overdue_with_coverage(task, coverage: CoverageResult, now: datetime,
                             deadline: Optional[datetime] = None,
                             completed: bool = False) -> bool:
    """
    Overdue check that respects coverage

    A task nobody was scheduled for is never overdue. Without an explicit
    deadline the task's start_at is used; no deadline means not overdue.
    """
    if completed or not coverage.has_coverage:
        return False
    deadline = deadline or getattr(task, 'start_at', None)
    if deadline is None:
        return False
    return ensure_aware(now) > ensure_aware(deadline)


class CoverageProvider:
    """Builds CoverageContext from published shifts and approved assignments"""

    def __init__(self, db_session, models):
        self.db = db_session
        self.Shift = models['Shift']
        self.ShiftAssignment = models['ShiftAssignment']

    def for_day(self, day_key: str, location_id: Optional[str] = None) -> CoverageContext:
        """
        Load the workers scheduled on a day

        Args:
            day_key: YYYY-MM-DD day in the organization zone
            location_id: Optional location filter

        Returns:
            CoverageContext for the day
        """
        Shift, ShiftAssignment = self.Shift, self.ShiftAssignment

        stmt = (
            select(ShiftAssignment.staff_id, Shift.id, Shift.location_id, Shift.role, Shift.role_id)
            .join(Shift, ShiftAssignment.shift_id == Shift.id)
            .where(
                Shift.shift_date == parse_day_key(day_key),
                Shift.is_published.is_(True),
                ShiftAssignment.approval_status.in_(SCHEDULED_STATUSES),
            )
            .order_by(Shift.id, ShiftAssignment.staff_id)
        )
        if location_id:
            stmt = stmt.where(Shift.location_id == location_id)

        workers = tuple(
            ScheduledWorker(
                employee_id=staff_id,
                location_id=shift_location,
                role=role,
                role_id=role_id,
                shift_id=shift_id,
            )
            for staff_id, shift_id, shift_location, role, role_id in self.db.execute(stmt)
        )

        logger.debug(f"Coverage for {day_key} (location={location_id}): {len(workers)} scheduled")
        return CoverageContext(day_key=day_key, workers=workers)
