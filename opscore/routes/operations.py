"""
Operations API Blueprint
Today's task board, location restrictions and the stop-the-line release
"""
from flask import Blueprint, request, jsonify
import logging

from opscore.error_handlers import handle_errors, with_db_transaction, ValidationException
from opscore.extensions import db
from opscore.models.registry import get_models
from opscore.services.day_window import get_resolver
from opscore.services.escalation import SlaEscalationEngine
from opscore.services.task_board import TaskBoard

logger = logging.getLogger(__name__)

operations_bp = Blueprint('operations', __name__, url_prefix='/api')


@operations_bp.route('/tasks/today', methods=['GET'])
@handle_errors
def tasks_today():
    """
    Tasks visible today, with completion state and credited worker

    Query params:
        location_id: Optional location filter
        date: Optional YYYY-MM-DD day, defaults to today in the org zone
        include_suppressed: 'true' to also list tasks without coverage
    """
    board = TaskBoard(db.session, get_models(), get_resolver())
    include_suppressed = request.args.get('include_suppressed', 'false').lower() == 'true'
    data = board.today(
        location_id=request.args.get('location_id') or None,
        day=request.args.get('date') or None,
        include_suppressed=include_suppressed,
    )
    return jsonify(data), 200


@operations_bp.route('/restrictions', methods=['GET'])
@handle_errors
def list_restrictions():
    """Locations currently under a stop-the-line restriction"""
    LocationRestrictionState = get_models()['LocationRestrictionState']
    states = (
        db.session.query(LocationRestrictionState)
        .filter(LocationRestrictionState.is_restricted.is_(True))
        .order_by(LocationRestrictionState.location_id)
        .all()
    )
    return jsonify({
        'restrictions': [state.to_dict() for state in states],
        'count': len(states),
    }), 200


@operations_bp.route('/corrective-actions/<ca_id>/release', methods=['POST'])
@handle_errors
@with_db_transaction
def release_stop_the_line(ca_id):
    """
    Release a stop-the-line restriction

    Body (JSON):
        released_by: Id of the person releasing
        reason: Why the line may restart
    """
    payload = request.get_json(silent=True)
    if payload is None:
        raise ValidationException('Request body must be JSON')

    engine = SlaEscalationEngine(db.session, get_models(), get_resolver())
    state = engine.release_stop_the_line(ca_id, payload.get('released_by'), payload.get('reason'))
    logger.info(f"Stop-the-line release for {ca_id} by {payload.get('released_by')}")

    return jsonify({
        'success': True,
        'corrective_action_id': ca_id,
        'restriction': state.to_dict() if state else None,
    }), 200
