"""
Database models for the operations core
Centralizes all SQLAlchemy model imports using factory pattern
"""
from .recurrence import create_recurrence_models
from .workforce import create_workforce_models
from .task import create_task_models
from .corrective_action import create_corrective_action_models


def init_models(db):
    """
    Initialize all models with the database instance

    Args:
        db: SQLAlchemy database instance

    Returns:
        dict: Dictionary containing all model classes
    """
    RecurrenceRule, Occurrence = create_recurrence_models(db)
    Employee, Shift, ShiftAssignment = create_workforce_models(db)
    Task, TaskCompletion = create_task_models(db)
    CorrectiveAction, EscalationEvent, LocationRestrictionState = create_corrective_action_models(db)

    return {
        'RecurrenceRule': RecurrenceRule,
        'Occurrence': Occurrence,
        'Employee': Employee,
        'Shift': Shift,
        'ShiftAssignment': ShiftAssignment,
        'Task': Task,
        'TaskCompletion': TaskCompletion,
        'CorrectiveAction': CorrectiveAction,
        'EscalationEvent': EscalationEvent,
        'LocationRestrictionState': LocationRestrictionState,
    }


__all__ = [
    'init_models',
    'create_recurrence_models',
    'create_workforce_models',
    'create_task_models',
    'create_corrective_action_models',
    # Model registry exports
    'model_registry',
    'get_models',
]

# Import registry for convenience
from .registry import model_registry, get_models
