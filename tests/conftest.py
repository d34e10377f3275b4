"""
Pytest configuration and fixtures for the opscore tests.

This module provides shared fixtures for:
- Flask application with test configuration
- Database setup and teardown
- A pinned organization clock
- Model factories for creating test data
"""
import pytest
from datetime import datetime, date, time, timedelta, timezone

from opscore import create_app
from opscore.extensions import db as _db
from opscore.services.day_window import FixedDayWindowResolver


# 2024-01-08 09:00 in Bucharest (UTC+2)
DEFAULT_NOW = datetime(2024, 1, 8, 7, 0, tzinfo=timezone.utc)


@pytest.fixture(scope='session')
def app():
    """
    Create application for the tests.

    Uses TestingConfig with in-memory SQLite database.
    Scope is 'session' to reuse the same app across all tests.
    """
    app = create_app('testing')
    app.config.update({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'RATELIMIT_ENABLED': False,  # Disable rate limiting for tests
        'ORG_TIMEZONE': 'Europe/Bucharest',
    })

    return app


@pytest.fixture(scope='function')
def db(app):
    """
    Create database for the tests.

    Creates all tables before each test function and drops them after.
    This ensures test isolation.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope='function')
def client(app, db):
    """
    Create a test client for the app.

    The client can be used to make requests to the application.
    """
    with app.test_client() as client:
        yield client


@pytest.fixture(scope='function')
def models(app, db):
    """Models registered by create_app()"""
    from opscore.models import get_models
    return get_models()


@pytest.fixture(scope='function')
def clock(app):
    """
    Pin the organization clock for the test.

    Routes and jobs pick the resolver up from the app, so pinning it here
    pins "today" everywhere.
    """
    resolver = FixedDayWindowResolver(DEFAULT_NOW, 'Europe/Bucharest')
    previous = app.extensions.get('day_window_resolver')
    app.extensions['day_window_resolver'] = resolver
    yield resolver
    app.extensions['day_window_resolver'] = previous


# =============================================================================
# Model Factories
# =============================================================================

@pytest.fixture
def rule_factory(models, db):
    """
    Factory for creating RecurrenceRule instances.

    Usage:
        rule = rule_factory(pattern='weekly', anchor_date=date(2024, 1, 1))
    """
    counter = [0]

    def _create_rule(**kwargs):
        RecurrenceRule = models['RecurrenceRule']
        counter[0] += 1
        defaults = {
            'rule_type': 'audit',
            'name': f'Recurring audit {counter[0]}',
            'location_id': 'loc-1',
            'pattern': 'weekly',
            'anchor_date': date(2024, 1, 1),
            'start_time': time(9, 0),
            'duration_minutes': 60,
            'is_active': True,
        }
        defaults.update(kwargs)
        rule = RecurrenceRule(**defaults)
        db.session.add(rule)
        db.session.commit()
        return rule

    return _create_rule


@pytest.fixture
def employee_factory(models, db):
    """
    Factory for creating Employee instances.

    Usage:
        employee = employee_factory(full_name="Ana Pop", user_id="acct-1")
    """
    counter = [0]

    def _create_employee(**kwargs):
        Employee = models['Employee']
        counter[0] += 1
        defaults = {
            'full_name': f'Test Employee {counter[0]}',
            'role': 'Server',
            'location_id': 'loc-1',
            'is_active': True,
        }
        defaults.update(kwargs)
        employee = Employee(**defaults)
        db.session.add(employee)
        db.session.commit()
        return employee

    return _create_employee


@pytest.fixture
def shift_factory(models, db, employee_factory):
    """
    Factory for creating a Shift with assignments.

    Usage:
        shift = shift_factory(role='Cook', staff=[employee])
        shift = shift_factory(staff=[(employee, 'pending')])
    """
    def _create_shift(staff=None, **kwargs):
        Shift = models['Shift']
        ShiftAssignment = models['ShiftAssignment']
        defaults = {
            'location_id': 'loc-1',
            'shift_date': date(2024, 1, 8),
            'start_time': time(8, 0),
            'end_time': time(16, 0),
            'role': 'Server',
            'is_published': True,
        }
        defaults.update(kwargs)
        shift = Shift(**defaults)
        db.session.add(shift)
        db.session.flush()

        if staff is None:
            staff = [employee_factory()]
        for entry in staff:
            employee, status = entry if isinstance(entry, tuple) else (entry, 'approved')
            db.session.add(ShiftAssignment(shift_id=shift.id, staff_id=employee.id, approval_status=status))

        db.session.commit()
        return shift

    return _create_shift


@pytest.fixture
def task_factory(models, db):
    """Factory for creating Task instances."""
    counter = [0]

    def _create_task(**kwargs):
        Task = models['Task']
        counter[0] += 1
        defaults = {
            'title': f'Task {counter[0]}',
            'location_id': 'loc-1',
            'execution_mode': 'shift_based',
            'is_active': True,
        }
        defaults.update(kwargs)
        task = Task(**defaults)
        db.session.add(task)
        db.session.commit()
        return task

    return _create_task


@pytest.fixture
def corrective_action_factory(models, db):
    """
    Factory for creating CorrectiveAction instances.

    Defaults to a medium action opened at DEFAULT_NOW with a 10 day window.
    """
    counter = [0]

    def _create_ca(**kwargs):
        CorrectiveAction = models['CorrectiveAction']
        counter[0] += 1
        created_at = kwargs.pop('created_at', DEFAULT_NOW)
        defaults = {
            'title': f'Corrective action {counter[0]}',
            'location_id': 'loc-1',
            'severity': 'medium',
            'status': 'open',
            'stop_the_line': False,
            'created_at': created_at,
            'due_at': created_at + timedelta(days=10),
        }
        defaults.update(kwargs)
        ca = CorrectiveAction(**defaults)
        db.session.add(ca)
        db.session.commit()
        return ca

    return _create_ca
