"""
Occurrence materialization job
Turns due recurrence rules into dated Occurrence rows.

Each run handles one rule type. Rules are processed independently: a rule
that fails is reported and skipped while the rest of the batch still runs.
Overlapping runs are safe without locks:
- the (rule_id, occurrence_date) unique constraint turns a second insert of
  the same occurrence into a counted duplicate
- last_generated_date only moves forward, through a guarded UPDATE
"""
import logging
from datetime import datetime, time, timedelta, timezone

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from opscore.error_handlers.exceptions import (
    DatabaseException,
    InvalidRuleException,
    ValidationException,
)
from opscore.error_handlers.logging import job_logger
from opscore.services.batch import BatchResult, TimeBudget
from opscore.services.recurrence import has_ended, next_occurrence

logger = logging.getLogger(__name__)

RULE_TYPES = ('audit', 'maintenance', 'notification')

CREATED = 'created'
DUPLICATE = 'duplicate'
NOT_DUE = 'not_due'
ENDED = 'ended'
INVALID = 'invalid'


class RecurrenceMaterializer:
    """
    Materializes at most one occurrence per due rule per run

    A rule that fell behind catches up one step per run, keeping its cadence
    since last_generated_date is set to the computed date, not to today.
    """

    def __init__(self, db_session, models, resolver, config=None):
        self.db = db_session
        self.RecurrenceRule = models['RecurrenceRule']
        self.Occurrence = models['Occurrence']
        self.resolver = resolver
        self.config = config or {}

    def run(self, rule_type, time_budget=None):
        """
        Run one materialization pass

        Args:
            rule_type: audit, maintenance or notification
            time_budget: Seconds the run may take; defaults to
                JOB_TIME_BUDGET_SECONDS

        Returns:
            BatchResult

        Raises:
            ValidationException: Unknown rule type
            DatabaseException: Candidate rules could not be loaded
        """
        if rule_type not in RULE_TYPES:
            raise ValidationException(
                f"Unknown rule type '{rule_type}'",
                details={'allowed': list(RULE_TYPES)}
            )

        if time_budget is None:
            time_budget = self.config.get('JOB_TIME_BUDGET_SECONDS')
        budget = TimeBudget(time_budget)

        window = self.resolver.day_window()
        job = f'recurrence:{rule_type}'
        result = BatchResult(job=job, started_at=window.now)
        job_logger.job_started(job, f"day={window.day_key}")

        rule_ids = self._load_candidate_ids(rule_type)

        for index, rule_id in enumerate(rule_ids):
            if budget.expired():
                result.defer(rule_ids[index:])
                break

            try:
                outcome = self._process_rule(rule_id, window)
                self.db.commit()
            except InvalidRuleException as e:
                self.db.rollback()
                result.record_failure(rule_id, e, {'outcome': INVALID})
                continue
            except SQLAlchemyError as e:
                self.db.rollback()
                result.record_failure(rule_id, e)
                continue
            except Exception as e:
                self.db.rollback()
                result.record_failure(rule_id, e)
                continue

            result.record(outcome)

        return result.finish(self.resolver.now())

    def _load_candidate_ids(self, rule_type):
        RecurrenceRule = self.RecurrenceRule
        try:
            rows = (
                self.db.query(RecurrenceRule.id)
                .filter(RecurrenceRule.rule_type == rule_type, RecurrenceRule.is_active.is_(True))
                .order_by(RecurrenceRule.id)
                .all()
            )
        except OperationalError as e:
            self.db.rollback()
            logger.error(f"Could not load {rule_type} rules: {str(e)}")
            raise DatabaseException(
                f"Could not load {rule_type} recurrence rules",
                details={'rule_type': rule_type}
            ) from e
        return [row.id for row in rows]

    def _process_rule(self, rule_id, window):
        rule = self.db.get(self.RecurrenceRule, rule_id)
        if rule is None or not rule.is_active:
            return NOT_DUE

        today = window.date
        occurrence_date = next_occurrence(rule, today)

        if has_ended(rule, occurrence_date):
            return ENDED
        if occurrence_date > today:
            return NOT_DUE

        outcome = self._insert_occurrence(rule, occurrence_date)
        if not self._advance_last_generated(rule_id, occurrence_date):
            logger.info(
                f"Rule {rule_id} already advanced past {occurrence_date} by an overlapping run"
            )
        return outcome

    def _insert_occurrence(self, rule, occurrence_date):
        zone = self.resolver.zone()
        local_start = datetime.combine(occurrence_date, rule.start_time or time.min, tzinfo=zone)
        scheduled_for = local_start.astimezone(timezone.utc)

        occurrence = self.Occurrence(
            rule_id=rule.id,
            entity_type=rule.rule_type,
            occurrence_date=occurrence_date,
            scheduled_for=scheduled_for,
            scheduled_end=scheduled_for + timedelta(minutes=rule.duration_minutes or 0),
            location_id=rule.location_id,
            assigned_user_id=rule.assigned_user_id,
            title=rule.name,
            status='scheduled',
        )

        try:
            with self.db.begin_nested():
                self.db.add(occurrence)
        except IntegrityError:
            logger.info(f"Occurrence {rule.id} @ {occurrence_date} already materialized")
            return DUPLICATE

        logger.info(f"Materialized {rule.rule_type} occurrence {rule.id} @ {occurrence_date}")
        return CREATED

    def _advance_last_generated(self, rule_id, occurrence_date):
        """Move last_generated_date forward only; returns False if another run got there first"""
        RecurrenceRule = self.RecurrenceRule
        stmt = (
            update(RecurrenceRule)
            .where(RecurrenceRule.id == rule_id)
            .where(or_(
                RecurrenceRule.last_generated_date.is_(None),
                RecurrenceRule.last_generated_date < occurrence_date,
            ))
            .values(last_generated_date=occurrence_date)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1
