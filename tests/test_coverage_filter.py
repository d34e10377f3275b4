"""
Tests for the coverage filter
"""
from datetime import date, datetime, timezone
from types import SimpleNamespace

from opscore.services.coverage_filter import (
    CoverageContext,
    CoverageProvider,
    CoverageReason,
    CoverageResult,
    ScheduledWorker,
    apply_coverage,
    check_coverage,
    group_by_coverage,
    is_overdue_with_coverage,
    is_visible,
    normalize_role,
)


def make_task(**kwargs):
    defaults = {
        'id': 'task-1',
        'execution_mode': 'shift_based',
        'location_id': 'loc-1',
        'assigned_role_id': None,
        'assigned_role_name': None,
        'assigned_to': None,
        'start_at': None,
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def context_with(*workers):
    return CoverageContext(day_key='2024-01-08', workers=tuple(workers))


class TestRoleNormalization:

    def test_accents_case_and_spacing(self):
        assert normalize_role(' Bucătar  Șef ') == 'bucatar sef'

    def test_empty(self):
        assert normalize_role(None) == ''
        assert normalize_role('   ') == ''


class TestCheckCoverage:

    def test_always_on_is_visible_with_nobody_scheduled(self):
        result = check_coverage(make_task(execution_mode='always_on'), context_with())

        assert result.has_coverage
        assert result.reason == CoverageReason.ALWAYS_ON

    def test_shift_based_with_empty_schedule(self):
        result = check_coverage(make_task(), context_with())

        assert not result.has_coverage
        assert result.reason == CoverageReason.NO_SHIFT

    def test_missing_mode_defaults_to_shift_based(self):
        assert not is_visible(make_task(execution_mode=None), context_with())

    def test_role_mismatch_then_match(self):
        task = make_task(assigned_role_name='Server')
        cook = ScheduledWorker(employee_id='e-cook', location_id='loc-1', role='Cook')

        missing = check_coverage(task, context_with(cook))
        server = ScheduledWorker(employee_id='e-server', location_id='loc-1', role='server')
        present = check_coverage(task, context_with(cook, server))

        assert not missing.has_coverage
        assert missing.reason == CoverageReason.ROLE_MISMATCH
        assert present.has_coverage
        assert present.covered_by == ['e-server']

    def test_location_mismatch(self):
        worker = ScheduledWorker(employee_id='e-1', location_id='loc-2', role='Server')

        result = check_coverage(make_task(), context_with(worker))

        assert not result.has_coverage
        assert result.reason == CoverageReason.LOCATION_MISMATCH

    def test_task_without_location_matches_any_location(self):
        worker = ScheduledWorker(employee_id='e-1', location_id='loc-9', role='Server')

        assert is_visible(make_task(location_id=None), context_with(worker))

    def test_role_id_takes_priority_over_name(self):
        task = make_task(assigned_role_id='role-7', assigned_role_name='Server')
        same_name = ScheduledWorker(employee_id='e-1', location_id='loc-1', role='Server', role_id='role-3')
        same_id = ScheduledWorker(employee_id='e-2', location_id='loc-1', role='Cook', role_id='role-7')

        result = check_coverage(task, context_with(same_name, same_id))

        assert result.covered_by == ['e-2']

    def test_name_used_when_worker_has_no_role_id(self):
        task = make_task(assigned_role_id='role-7', assigned_role_name='Server')
        worker = ScheduledWorker(employee_id='e-1', location_id='loc-1', role='SERVER')

        assert is_visible(task, context_with(worker))

    def test_assignee_must_be_among_matching_workers(self):
        task = make_task(assigned_to='e-absent')
        worker = ScheduledWorker(employee_id='e-1', location_id='loc-1', role='Server')

        assert not is_visible(task, context_with(worker))
        assert is_visible(make_task(assigned_to='e-1'), context_with(worker))

    def test_worker_on_two_shifts_listed_once(self):
        morning = ScheduledWorker(employee_id='e-1', location_id='loc-1', role='Server', shift_id='s-1')
        evening = ScheduledWorker(employee_id='e-1', location_id='loc-1', role='Server', shift_id='s-2')

        assert check_coverage(make_task(), context_with(morning, evening)).covered_by == ['e-1']


class TestProjection:

    def test_group_and_apply_do_not_mutate_tasks(self):
        covered = make_task(id='t-covered')
        orphan = make_task(id='t-orphan', assigned_role_name='Bartender')
        before = dict(vars(orphan))
        context = context_with(ScheduledWorker(employee_id='e-1', location_id='loc-1', role='Server'))

        groups = group_by_coverage([covered, orphan], context)
        visible = apply_coverage([covered, orphan], context)

        assert [tc.task.id for tc in groups['covered']] == ['t-covered']
        assert [tc.task.id for tc in groups['no_coverage']] == ['t-orphan']
        assert [tc.task.id for tc in visible] == ['t-covered']
        assert vars(orphan) == before

    def test_uncovered_task_is_never_overdue(self):
        now = datetime(2024, 1, 8, 12, 0, tzinfo=timezone.utc)
        task = make_task(start_at=datetime(2024, 1, 8, 7, 0))

        assert not is_overdue_with_coverage(task, CoverageResult(has_coverage=False), now)
        assert is_overdue_with_coverage(task, CoverageResult(has_coverage=True), now)
        assert not is_overdue_with_coverage(task, CoverageResult(has_coverage=True), now, completed=True)

    def test_no_deadline_is_not_overdue(self):
        now = datetime(2024, 1, 8, 12, 0, tzinfo=timezone.utc)

        assert not is_overdue_with_coverage(make_task(), CoverageResult(has_coverage=True), now)

    def test_result_to_dict(self):
        result = CoverageResult(has_coverage=False, reason=CoverageReason.NO_SHIFT)

        assert result.to_dict() == {'has_coverage': False, 'covered_by': [], 'reason': 'no_shift'}


class TestCoverageProvider:

    def test_only_published_approved_assignments_count(self, db, models, employee_factory, shift_factory):
        approved = employee_factory()
        confirmed = employee_factory()
        pending = employee_factory()
        hidden = employee_factory()
        shift_factory(staff=[approved, (confirmed, 'confirmed'), (pending, 'pending')])
        shift_factory(staff=[hidden], is_published=False)
        shift_factory(staff=[employee_factory()], shift_date=date(2024, 1, 9))

        context = CoverageProvider(db.session, models).for_day('2024-01-08')

        assert context.scheduled_ids == {approved.id, confirmed.id}

    def test_location_filter(self, db, models, employee_factory, shift_factory):
        here = employee_factory()
        there = employee_factory(location_id='loc-2')
        shift_factory(staff=[here])
        shift_factory(staff=[there], location_id='loc-2')

        context = CoverageProvider(db.session, models).for_day('2024-01-08', location_id='loc-2')

        assert context.scheduled_ids == {there.id}
        assert context.workers[0].location_id == 'loc-2'
