"""
SLA Escalation Engine
Advances open corrective actions through reminder -> warning -> overdue as
their SLA window elapses, and enforces stop-the-line restrictions.

Per corrective action the level only moves up, and each level is written at
most once. The engine checks prior events before inserting and the
(corrective_action_id, level) unique constraint catches the overlapping-run
case; losing that race counts as success.

Stop-the-line is level-triggered: every run re-asserts the restriction for
each open critical stop-the-line action, as an upsert keyed by location. The
sweep never lifts a restriction; only release_stop_the_line() does.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from opscore.error_handlers.exceptions import (
    DatabaseException,
    ResourceNotFoundException,
    ValidationException,
)
from opscore.error_handlers.logging import job_logger
from opscore.services.batch import BatchResult, TimeBudget
from opscore.utils.timezone import ensure_aware

logger = logging.getLogger(__name__)

OPEN_STATUSES = ('open', 'in_progress', 'pending_verification')
DEFAULT_REMINDER_PCT = 50.0
DEFAULT_WARNING_PCT = 90.0


class EscalationLevel(str, Enum):
    """Escalation levels in increasing order"""
    REMINDER = "reminder"
    WARNING = "warning"
    OVERDUE = "overdue"

    @property
    def rank(self) -> int:
        return LEVEL_RANK[self]


LEVEL_RANK = {
    EscalationLevel.REMINDER: 1,
    EscalationLevel.WARNING: 2,
    EscalationLevel.OVERDUE: 3,
}


def pct_elapsed(created_at: datetime, due_at: datetime, now: datetime) -> float:
    """Percent of the SLA window elapsed, clamped to [0, 100]; an empty window counts as 100"""
    created_at, due_at, now = ensure_aware(created_at), ensure_aware(due_at), ensure_aware(now)
    window = (due_at - created_at).total_seconds()
    if window <= 0:
        return 100.0
    pct = (now - created_at).total_seconds() / window * 100
    return max(0.0, min(100.0, pct))


def target_level(created_at: datetime, due_at: datetime, now: datetime,
                 reminder_pct: float = DEFAULT_REMINDER_PCT,
                 warning_pct: float = DEFAULT_WARNING_PCT) -> Optional[EscalationLevel]:
    """Highest level the elapsed time calls for; past due is always overdue"""
    if ensure_aware(now) > ensure_aware(due_at):
        return EscalationLevel.OVERDUE
    pct = pct_elapsed(created_at, due_at, now)
    if pct >= warning_pct:
        return EscalationLevel.WARNING
    if pct >= reminder_pct:
        return EscalationLevel.REMINDER
    return None


def pending_transition(ca, prior_levels: Iterable[str], now: datetime,
                       reminder_pct: float = DEFAULT_REMINDER_PCT,
                       warning_pct: float = DEFAULT_WARNING_PCT) -> Optional[EscalationLevel]:
    """
    Level to write for a corrective action now, if any

    Only the highest newly crossed level is returned: an action first seen
    at 90% gets a warning and never a retroactive reminder.

    Args:
        ca: Object with status, created_at, due_at
        prior_levels: Levels already recorded for the action
        now: Evaluation instant
    """
    if ca.status not in OPEN_STATUSES:
        return None

    target = target_level(ca.created_at, ca.due_at, now, reminder_pct, warning_pct)
    if target is None:
        return None

    highest_prior = max((LEVEL_RANK[EscalationLevel(level)] for level in prior_levels), default=0)
    if target.rank <= highest_prior:
        return None
    return target


def restricts_location(ca) -> bool:
    """Open critical stop-the-line action that nobody has released"""
    return (
        ca.severity == 'critical'
        and bool(ca.stop_the_line)
        and ca.status in OPEN_STATUSES
        and bool(ca.location_id)
        and ca.stop_released_at is None
    )


class SlaEscalationEngine:
    """Sweeps open corrective actions and writes escalation events"""

    def __init__(self, db_session, models, resolver, config=None):
        self.db = db_session
        self.CorrectiveAction = models['CorrectiveAction']
        self.EscalationEvent = models['EscalationEvent']
        self.LocationRestrictionState = models['LocationRestrictionState']
        self.resolver = resolver
        config = config or {}
        self.reminder_pct = config.get('SLA_REMINDER_PCT', DEFAULT_REMINDER_PCT)
        self.warning_pct = config.get('SLA_WARNING_PCT', DEFAULT_WARNING_PCT)
        self.default_budget = config.get('JOB_TIME_BUDGET_SECONDS')

    def run(self, time_budget=None) -> BatchResult:
        """
        Run one escalation sweep

        Returns:
            BatchResult counting escalated / race_lost / unchanged items and
            restrictions set

        Raises:
            DatabaseException: Open corrective actions could not be loaded
        """
        budget = TimeBudget(time_budget if time_budget is not None else self.default_budget)
        now = self.resolver.now().astimezone(timezone.utc)
        job = 'sla_escalation'
        result = BatchResult(job=job, started_at=now)
        job_logger.job_started(job)

        ca_ids = self._load_open_ids()

        for index, ca_id in enumerate(ca_ids):
            if budget.expired():
                result.defer(ca_ids[index:])
                break

            try:
                outcome, restricted = self._process(ca_id, now)
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                result.record_failure(ca_id, e)
                continue
            except Exception as e:
                # Bad stored data on one action must not stop the sweep
                self.db.rollback()
                result.record_failure(ca_id, e)
                continue

            result.record(outcome)
            if restricted:
                result.counts['restrictions_set'] += 1

        return result.finish(self.resolver.now())

    def _load_open_ids(self):
        CorrectiveAction = self.CorrectiveAction
        try:
            rows = (
                self.db.query(CorrectiveAction.id)
                .filter(CorrectiveAction.status.in_(OPEN_STATUSES))
                .order_by(CorrectiveAction.created_at, CorrectiveAction.id)
                .all()
            )
        except OperationalError as e:
            self.db.rollback()
            logger.error(f"Could not load open corrective actions: {str(e)}")
            raise DatabaseException("Could not load open corrective actions") from e
        return [row.id for row in rows]

    def _process(self, ca_id, now):
        ca = self.db.get(self.CorrectiveAction, ca_id)
        if ca is None:
            return 'unchanged', False
        outcome = self._escalate(ca, now)
        restricted = self._enforce_stop_the_line(ca, now) if restricts_location(ca) else False
        return outcome, restricted

    def prior_levels(self, ca_id):
        EscalationEvent = self.EscalationEvent
        rows = self.db.query(EscalationEvent.level).filter(
            EscalationEvent.corrective_action_id == ca_id
        ).all()
        return {row.level for row in rows}

    def _escalate(self, ca, now):
        level = pending_transition(
            ca, self.prior_levels(ca.id), now, self.reminder_pct, self.warning_pct
        )
        if level is None:
            return 'unchanged'

        event = self.EscalationEvent(
            corrective_action_id=ca.id,
            level=level.value,
            pct_elapsed=round(pct_elapsed(ca.created_at, ca.due_at, now), 2),
            created_at=now,
        )
        try:
            with self.db.begin_nested():
                self.db.add(event)
        except IntegrityError:
            logger.info(f"Escalation {level.value} for {ca.id} already written by another run")
            return 'race_lost'

        logger.info(f"Corrective action {ca.id} escalated to {level.value}")
        return 'escalated'

    def _enforce_stop_the_line(self, ca, now):
        """Upsert the location restriction; returns True when this run set it"""
        LocationRestrictionState = self.LocationRestrictionState
        reason = f"Stop the line: critical corrective action '{ca.title}' unresolved"

        state = self.db.query(LocationRestrictionState).filter_by(
            location_id=ca.location_id
        ).one_or_none()

        if state is None:
            try:
                with self.db.begin_nested():
                    self.db.add(LocationRestrictionState(
                        location_id=ca.location_id,
                        is_restricted=True,
                        reason=reason,
                        restricting_ca_id=ca.id,
                        updated_at=now,
                    ))
            except IntegrityError:
                # Another run inserted the row first; it restricts the same location
                return False
            logger.warning(f"Location {ca.location_id} restricted by corrective action {ca.id}")
            return True

        if state.is_restricted:
            return False

        state.is_restricted = True
        state.reason = reason
        state.restricting_ca_id = ca.id
        state.updated_at = now
        logger.warning(f"Location {ca.location_id} restricted by corrective action {ca.id}")
        return True

    def release_stop_the_line(self, ca_id, released_by, reason):
        """
        Explicit authorized release of a stop-the-line restriction

        Stamps the corrective action and lifts its location's restriction
        when this action is the restricting cause. If another unreleased
        critical action still holds the line at that location, the
        restriction stays and is handed to it. Authorization is the caller's
        job, as is committing the session.

        Returns:
            The LocationRestrictionState row, or None if the location never
            had one

        Raises:
            ResourceNotFoundException: Unknown corrective action
            ValidationException: Missing released_by or reason, or the
                action is not a stop-the-line action
        """
        if not released_by:
            raise ValidationException('released_by is required', details={'field': 'released_by'})
        if not reason or not reason.strip():
            raise ValidationException('A release reason is required', details={'field': 'reason'})

        CorrectiveAction = self.CorrectiveAction
        ca = self.db.get(CorrectiveAction, ca_id)
        if ca is None:
            raise ResourceNotFoundException(f"Corrective action {ca_id} not found")
        if not ca.stop_the_line:
            raise ValidationException(
                f"Corrective action {ca_id} does not stop the line",
                details={'corrective_action_id': ca_id}
            )

        now = self.resolver.now().astimezone(timezone.utc)
        ca.stop_released_by = released_by
        ca.stop_released_at = now
        ca.stop_release_reason = reason.strip()

        state = self.db.query(self.LocationRestrictionState).filter_by(
            location_id=ca.location_id
        ).one_or_none()
        if state is None or not state.is_restricted or state.restricting_ca_id != ca.id:
            self.db.flush()
            return state

        successor = next(
            (
                other for other in self.db.query(CorrectiveAction).filter(
                    CorrectiveAction.location_id == ca.location_id,
                    CorrectiveAction.id != ca.id,
                ).order_by(CorrectiveAction.created_at)
                if restricts_location(other)
            ),
            None
        )

        if successor is not None:
            state.restricting_ca_id = successor.id
            state.reason = f"Stop the line: critical corrective action '{successor.title}' unresolved"
            logger.warning(
                f"Release of {ca.id} by {released_by}: location {ca.location_id} "
                f"still restricted by {successor.id}"
            )
        else:
            state.is_restricted = False
            state.reason = None
            state.restricting_ca_id = None
            logger.warning(f"Location {ca.location_id} released from stop-the-line by {released_by}")
        state.updated_at = now

        self.db.flush()
        return state
