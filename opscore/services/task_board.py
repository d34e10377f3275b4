"""
Today board
Read-time projection of the day's tasks: coverage decides what shows,
completions are looked up by canonical occurrence key and credited to a
scheduled worker.
"""
import logging
from datetime import datetime

from sqlalchemy import or_

from opscore.services.attribution import build_external_id_map, resolve_with_trace
from opscore.services.coverage_filter import (
    CoverageProvider,
    group_by_coverage,
    is_overdue_with_coverage,
)
from opscore.services.occurrence_identity import (
    build_completions_index,
    completed_id,
    completion_key,
    virtual_id,
)
from opscore.utils.timezone import ensure_aware, to_local_time

logger = logging.getLogger(__name__)


class TaskBoard:
    """Builds the today view for one location (or all locations)"""

    def __init__(self, db_session, models, resolver):
        self.db = db_session
        self.Task = models['Task']
        self.TaskCompletion = models['TaskCompletion']
        self.Employee = models['Employee']
        self.coverage_provider = CoverageProvider(db_session, models)
        self.resolver = resolver

    def today(self, location_id=None, day=None, include_suppressed=False):
        """
        Build the board

        Args:
            location_id: Optional location filter; tasks without a location
                are shown everywhere
            day: Optional day key or date, defaults to today
            include_suppressed: Also list tasks hidden for lack of coverage

        Returns:
            Dictionary with day_key, tasks and suppressed counts
        """
        window = self.resolver.day_window(day)
        tasks = self._load_tasks(location_id)
        context = self.coverage_provider.for_day(window.day_key, location_id)
        groups = group_by_coverage(tasks, context)

        completions = self.db.query(self.TaskCompletion).filter_by(occurrence_date=window.day_key).all()
        index = build_completions_index(completions)
        external_ids = build_external_id_map(self.db.query(self.Employee).all())

        items = [
            self._item(entry.task, entry.coverage, window, index, context.scheduled_ids, external_ids)
            for entry in groups['covered']
        ]

        board = {
            'day_key': window.day_key,
            'location_id': location_id,
            'tasks': items,
            'suppressed_count': len(groups['no_coverage']),
        }
        if include_suppressed:
            board['suppressed'] = [
                {'task_id': entry.task.id, 'title': entry.task.title, **entry.coverage.to_dict()}
                for entry in groups['no_coverage']
            ]
        return board

    def _load_tasks(self, location_id):
        Task = self.Task
        query = self.db.query(Task).filter(Task.is_active.is_(True))
        if location_id:
            query = query.filter(or_(Task.location_id == location_id, Task.location_id.is_(None)))
        return query.order_by(Task.start_at, Task.title).all()

    def _deadline(self, task, window):
        """Today's instance of the task's start time"""
        if task.start_at is None:
            return None
        local_start = ensure_aware(task.start_at).astimezone(window.day_start.tzinfo)
        return datetime.combine(window.date, local_start.time(), tzinfo=window.day_start.tzinfo)

    def _item(self, task, coverage, window, index, scheduled_ids, external_ids):
        completion = index.get(completion_key(task.id, window.day_key))
        completed = completion is not None

        item = {
            'id': completed_id(task.id, window.day_key) if completed else virtual_id(task.id, window.day_key),
            'task_id': task.id,
            'title': task.title,
            'location_id': task.location_id,
            'execution_mode': task.execution_mode,
            'coverage': coverage.to_dict(),
            'completed': completed,
            'completed_at': None,
            'completed_by': None,
            'overdue': is_overdue_with_coverage(
                task, coverage, window.now, deadline=self._deadline(task, window), completed=completed
            ),
        }

        if completed:
            trace = resolve_with_trace(completion, scheduled_ids, external_ids, task)
            item['completed_by'] = trace.resolved_employee_id
            item['completed_at'] = to_local_time(
                completion.completed_at, tz_name=str(window.day_start.tzinfo)
            ).isoformat()
            if trace.resolved_employee_id is None:
                logger.debug(f"Completion of {task.id} on {window.day_key} is unattributed")

        return item
