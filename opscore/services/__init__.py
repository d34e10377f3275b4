"""
Services for occurrence materialization, coverage, attribution and escalation
"""
from .day_window import (
    DayWindow,
    SystemDayWindowResolver,
    FixedDayWindowResolver,
    get_resolver,
)
from .materializer import RecurrenceMaterializer
from .escalation import SlaEscalationEngine
from .task_board import TaskBoard

__all__ = [
    'DayWindow',
    'SystemDayWindowResolver',
    'FixedDayWindowResolver',
    'get_resolver',
    'RecurrenceMaterializer',
    'SlaEscalationEngine',
    'TaskBoard',
]
