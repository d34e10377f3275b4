"""Utility helpers"""
from .timezone import resolve_zone, ensure_aware, to_local_time, DEFAULT_ORG_TIMEZONE

__all__ = ['resolve_zone', 'ensure_aware', 'to_local_time', 'DEFAULT_ORG_TIMEZONE']
