"""
Task and per-occurrence completion models
"""
import uuid
from datetime import datetime, timezone


def _uuid():
    return str(uuid.uuid4())


def create_task_models(db):
    """Factory function to create Task and TaskCompletion models with db instance"""

    class Task(db.Model):
        """
        Recurring operational task shown on the daily board

        Execution modes:
        - always_on: visible every day regardless of staffing
        - shift_based: visible only when someone matching is scheduled
        """
        __tablename__ = 'tasks'

        id = db.Column(db.String(36), primary_key=True, default=_uuid)
        title = db.Column(db.String(200), nullable=False)
        location_id = db.Column(db.String(36), nullable=True)
        execution_mode = db.Column(db.String(20), nullable=False, default='shift_based')
        assigned_role_id = db.Column(db.String(36), nullable=True)
        assigned_role_name = db.Column(db.String(80), nullable=True)
        assigned_to = db.Column(db.String(36), nullable=True)
        start_at = db.Column(db.DateTime(timezone=True), nullable=True)
        is_active = db.Column(db.Boolean, nullable=False, default=True)

        EXECUTION_MODES = ['always_on', 'shift_based']

        def __repr__(self):
            return f'<Task {self.id}: {self.title[:30]}>'

    class TaskCompletion(db.Model):
        """
        Completion of one task occurrence

        Older surfaces stored the completer in different shapes; the raw
        columns are kept as written and resolved at read time.
        """
        __tablename__ = 'task_completions'

        id = db.Column(db.String(36), primary_key=True, default=_uuid)
        task_id = db.Column(db.String(80), nullable=False)
        occurrence_date = db.Column(db.String(10), nullable=False)
        completed_by_employee_id = db.Column(db.String(36), nullable=True)
        completed_by_raw = db.Column(db.JSON, nullable=True)
        completed_by_user_id = db.Column(db.String(36), nullable=True)
        completed_by_profile_id = db.Column(db.String(36), nullable=True)
        completed_at = db.Column(db.DateTime(timezone=True), nullable=False,
                                 default=lambda: datetime.now(timezone.utc))
        completion_mode = db.Column(db.String(20), nullable=True)

        __table_args__ = (
            db.UniqueConstraint('task_id', 'occurrence_date', name='uq_task_completion_occurrence'),
        )

        def __repr__(self):
            return f'<TaskCompletion {self.task_id}:{self.occurrence_date}>'

    return Task, TaskCompletion
