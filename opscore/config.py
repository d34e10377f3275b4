"""
Configuration management for the occurrence & escalation engine
Handles environment-based settings for the organization clock, job budgets,
SLA thresholds and the Celery beat schedule.
"""
import secrets
from decouple import config, UndefinedValueError
from typing import Optional


class Config:
    """Base configuration class"""
    SECRET_KEY = config('SECRET_KEY', default=secrets.token_hex(32))
    SQLALCHEMY_DATABASE_URI = config('DATABASE_URL', default='sqlite:///instance/opscore.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Organization clock - the single source of "today"
    ORG_TIMEZONE = config('ORG_TIMEZONE', default='Europe/Bucharest')

    # Batch runs
    JOB_TIME_BUDGET_SECONDS = config('JOB_TIME_BUDGET_SECONDS', default=240, cast=float)
    RECURRENCE_SWEEP_MINUTES = config('RECURRENCE_SWEEP_MINUTES', default=15, cast=int)
    ESCALATION_SWEEP_MINUTES = config('ESCALATION_SWEEP_MINUTES', default=5, cast=int)

    # SLA thresholds (percent of the due window elapsed)
    SLA_REMINDER_PCT = config('SLA_REMINDER_PCT', default=50.0, cast=float)
    SLA_WARNING_PCT = config('SLA_WARNING_PCT', default=90.0, cast=float)

    # Celery
    CELERY_BROKER_URL = config('CELERY_BROKER_URL', default='redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = config('CELERY_RESULT_BACKEND', default='redis://localhost:6379/0')

    # Logging settings
    LOG_LEVEL = config('LOG_LEVEL', default='INFO')
    LOG_FILE = config('LOG_FILE', default='logs/opscore.log')

    # Rate limiting for manual job triggers
    RATELIMIT_ENABLED = config('RATELIMIT_ENABLED', default=True, cast=bool)
    RATELIMIT_DEFAULT = config('RATELIMIT_DEFAULT', default='100 per hour')
    JOB_TRIGGER_LIMIT = config('JOB_TRIGGER_LIMIT', default='10 per minute')

    @classmethod
    def validate(cls) -> None:
        """
        Validate configuration - can be called explicitly or on-demand

        Raises:
            ValueError: If required configuration is missing
        """
        pass  # Base config has no required validation


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    RATELIMIT_ENABLED = False
    LOG_FILE = config('TEST_LOG_FILE', default='logs/opscore-test.log')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': config('DB_POOL_SIZE', default=10, cast=int),
        'pool_recycle': config('DB_POOL_RECYCLE', default=3600, cast=int),
        'pool_pre_ping': True,
        'max_overflow': config('DB_MAX_OVERFLOW', default=20, cast=int),
    }

    LOG_LEVEL = config('LOG_LEVEL', default='WARNING')

    @classmethod
    def validate(cls) -> None:
        """
        Production mode: validate all required settings

        Raises:
            ValueError: If any required configuration is missing
        """
        try:
            secret_key = config('SECRET_KEY')
        except UndefinedValueError:
            raise ValueError(
                "SECRET_KEY environment variable must be set in production. "
                "Generate a secure key with: python -c 'import secrets; print(secrets.token_hex(32))'"
            )

        if len(secret_key) < 32:
            raise ValueError(
                f"SECRET_KEY must be at least 32 characters in production (current: {len(secret_key)})."
            )

        if config('DATABASE_URL', default='').startswith('sqlite'):
            raise ValueError(
                "DATABASE_URL must point at a server database in production; "
                "uniqueness constraints back the idempotent job writes."
            )

        if not 0 < cls.SLA_REMINDER_PCT < cls.SLA_WARNING_PCT <= 100:
            raise ValueError(
                f"SLA thresholds must satisfy 0 < reminder < warning <= 100 "
                f"(got {cls.SLA_REMINDER_PCT}, {cls.SLA_WARNING_PCT})"
            )


# Configuration mapping
config_mapping = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name: Optional[str] = None, validate: bool = False) -> type:
    """
    Get configuration class based on environment.

    Args:
        config_name: Environment name ('development', 'testing', 'production')
        validate: Whether to validate configuration immediately (default: False)

    Returns:
        Config class for the specified environment

    Example:
        >>> config = get_config('production', validate=True)
    """
    if config_name is None:
        config_name = config('FLASK_ENV', default='development')

    config_class = config_mapping.get(config_name, DevelopmentConfig)

    if validate:
        config_class.validate()

    return config_class
