"""
Job trigger API Blueprint
Manual triggers for the recurrence and escalation runs that Celery beat
normally fires on schedule.
"""
from flask import Blueprint, jsonify, current_app
import logging

from opscore.error_handlers import handle_errors
from opscore.extensions import db, limiter
from opscore.models.registry import get_models
from opscore.services.day_window import get_resolver
from opscore.services.escalation import SlaEscalationEngine
from opscore.services.materializer import RecurrenceMaterializer

logger = logging.getLogger(__name__)

jobs_bp = Blueprint('jobs', __name__, url_prefix='/api/jobs')


def _trigger_limit():
    return current_app.config.get('JOB_TRIGGER_LIMIT', '10 per minute')


@jobs_bp.route('/recurrence/<rule_type>', methods=['POST'])
@limiter.limit(_trigger_limit)
@handle_errors
def trigger_recurrence(rule_type):
    """
    Run one materialization pass for a rule type

    Returns:
        200 with the BatchResult, 400 for an unknown rule type
    """
    logger.info(f"Manual recurrence run requested for {rule_type}")
    materializer = RecurrenceMaterializer(db.session, get_models(), get_resolver(), current_app.config)
    result = materializer.run(rule_type)
    return jsonify(result.to_dict()), 200


@jobs_bp.route('/escalation', methods=['POST'])
@limiter.limit(_trigger_limit)
@handle_errors
def trigger_escalation():
    """Run one SLA escalation sweep"""
    logger.info("Manual escalation sweep requested")
    engine = SlaEscalationEngine(db.session, get_models(), get_resolver(), current_app.config)
    result = engine.run()
    return jsonify(result.to_dict()), 200
