"""
Unified Error Handling System

Provides centralized, consistent error handling for job trigger endpoints
and batch runs.

Usage:
    from opscore.error_handlers import handle_errors
    from opscore.error_handlers.exceptions import ValidationException

    @jobs_bp.route('/recurrence/<rule_type>', methods=['POST'])
    @handle_errors
    def trigger(rule_type):
        if rule_type not in RULE_TYPES:
            raise ValidationException('Unknown rule type')
        return jsonify({'success': True})
"""
from .exceptions import (
    AppException,
    ValidationException,
    InvalidRuleException,
    ResourceNotFoundException,
    ConfigurationException,
    DatabaseException
)
from .decorators import handle_errors, with_db_transaction
from .logging import setup_logging, register_error_handlers, JobLogger, job_logger


__all__ = [
    # Exceptions
    'AppException',
    'ValidationException',
    'InvalidRuleException',
    'ResourceNotFoundException',
    'ConfigurationException',
    'DatabaseException',
    # Decorators
    'handle_errors',
    'with_db_transaction',
    # Logging
    'setup_logging',
    'register_error_handlers',
    'JobLogger',
    'job_logger',
]
