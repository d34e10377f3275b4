"""
Background jobs for occurrence materialization and SLA escalation
Runs are short-lived Celery tasks fired by Celery beat; there is no
in-process scheduler thread.
"""
import logging
from celery import Celery, Task
from flask import current_app

from opscore.config import Config
from opscore.error_handlers.exceptions import DatabaseException
from opscore.extensions import db
from opscore.models.registry import get_models
from opscore.services.day_window import get_resolver
from opscore.services.escalation import SlaEscalationEngine
from opscore.services.materializer import RecurrenceMaterializer, RULE_TYPES

# Configure logging
logger = logging.getLogger(__name__)

# Initialize Celery
celery_app = Celery(
    'opscore',
    broker=Config.CELERY_BROKER_URL,
    backend=Config.CELERY_RESULT_BACKEND
)

# Celery configuration
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max per task
    task_soft_time_limit=270,
    broker_connection_retry_on_startup=True,
)


class FlaskTask(Task):
    """Custom Celery task that runs within Flask app context"""
    _app = None

    def __call__(self, *args, **kwargs):
        if FlaskTask._app is None:
            from opscore import create_app
            FlaskTask._app = create_app()

        with FlaskTask._app.app_context():
            return super().__call__(*args, **kwargs)


celery_app.Task = FlaskTask


def build_beat_schedule(app_config):
    """One materialization run per rule type plus the escalation sweep"""
    recurrence_every = app_config.get('RECURRENCE_SWEEP_MINUTES', 15) * 60.0
    schedule = {
        f'materialize-{rule_type}-recurrences': {
            'task': 'opscore.tasks.materialize_recurring',
            'schedule': recurrence_every,
            'args': (rule_type,),
        }
        for rule_type in RULE_TYPES
    }
    schedule['sla-escalation-sweep'] = {
        'task': 'opscore.tasks.run_sla_escalation',
        'schedule': app_config.get('ESCALATION_SWEEP_MINUTES', 5) * 60.0,
    }
    return schedule


def init_celery(app):
    """Bind Celery to a Flask app: broker settings, beat schedule, app context"""
    FlaskTask._app = app
    celery_app.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
    )
    celery_app.conf.beat_schedule = build_beat_schedule(app.config)
    return celery_app


def _retry_on_outage(task, exc):
    """Backing-store outage: let the whole run be retried with backoff"""
    if task.request.retries < task.max_retries:
        raise task.retry(exc=exc, countdown=60 * (2 ** task.request.retries))
    raise exc


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def materialize_recurring(self, rule_type):
    """
    Materialize due occurrences for one rule type

    Args:
        rule_type: audit, maintenance or notification

    Returns:
        dict: BatchResult of the run
    """
    materializer = RecurrenceMaterializer(
        db.session, get_models(), get_resolver(), current_app.config
    )
    try:
        result = materializer.run(rule_type)
    except DatabaseException as exc:
        logger.error(f"Recurrence run for {rule_type} aborted: {exc.message}")
        _retry_on_outage(self, exc)

    return result.to_dict()


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def run_sla_escalation(self):
    """
    Sweep open corrective actions for SLA escalation and stop-the-line

    Returns:
        dict: BatchResult of the run
    """
    engine = SlaEscalationEngine(
        db.session, get_models(), get_resolver(), current_app.config
    )
    try:
        result = engine.run()
    except DatabaseException as exc:
        logger.error(f"Escalation sweep aborted: {exc.message}")
        _retry_on_outage(self, exc)

    return result.to_dict()


# Default schedule until init_celery() binds the app config
celery_app.conf.beat_schedule = build_beat_schedule({
    'RECURRENCE_SWEEP_MINUTES': Config.RECURRENCE_SWEEP_MINUTES,
    'ESCALATION_SWEEP_MINUTES': Config.ESCALATION_SWEEP_MINUTES,
})
