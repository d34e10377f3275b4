"""
Occurrence Identity Codec
One value type for the textual occurrence ids the surfaces exchange.

Spellings in the wild:
    <uuid>                                  materialized occurrence
    <uuid>-virtual-YYYY-MM-DD[-HHMM]        virtual (not yet materialized)
    <uuid>-completed-YYYY-MM-DD[-HHMM]      just completed, not yet materialized

Older surfaces also wrote the time slot as HH:MM. Every spelling of the same
logical occurrence parses to the same completion key; the UUID part of the
key is lowercased, while base_id() keeps the id as written. Ids that do not
start with a UUID pass through unchanged.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional, Union

from opscore.services.day_window import to_day_key

logger = logging.getLogger(__name__)

STAGE_VIRTUAL = 'virtual'
STAGE_COMPLETED = 'completed'
STAGE_MARKERS = (STAGE_VIRTUAL, STAGE_COMPLETED)

_UUID_PREFIX = re.compile(
    r'^([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})',
    re.IGNORECASE
)
# Anything after the date other than a time slot is ignored
_STAGE_SUFFIX = re.compile(
    r'^-(virtual|completed)-(\d{4}-\d{2}-\d{2})(?:-(\d{2}):?(\d{2})(?!\d))?'
)

DayLike = Union[str, date, datetime]


@dataclass(frozen=True)
class OccurrenceIdentity:
    """Canonical (base id, occurrence date) pair"""
    base_id: str
    occurrence_date: str
    stage: Optional[str] = None
    time_slot: Optional[str] = None

    @property
    def is_virtual(self) -> bool:
        return self.stage is not None

    @property
    def key_base(self) -> str:
        """base_id as used in completion keys; UUIDs compare case-insensitively"""
        if _UUID_PREFIX.fullmatch(self.base_id):
            return self.base_id.lower()
        return self.base_id

    @property
    def completion_key(self) -> str:
        return f"{self.key_base}:{self.occurrence_date}"

    @property
    def day(self) -> date:
        return datetime.strptime(self.occurrence_date, '%Y-%m-%d').date()


def _as_day_key(value: Optional[DayLike]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return to_day_key(value)


def _valid_day_key(value: str) -> bool:
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        return False
    return True


def parse(raw_id: str, fallback_day_key: Optional[DayLike] = None) -> OccurrenceIdentity:
    """
    Parse any occurrence id spelling

    The embedded date wins over fallback_day_key; a suffix whose date is
    not a real calendar day is ignored in favour of the fallback. The time
    slot is normalised to HH:MM whichever way it was written.
    """
    fallback = _as_day_key(fallback_day_key)
    raw_id = str(raw_id)

    match = _UUID_PREFIX.match(raw_id)
    if not match:
        return OccurrenceIdentity(base_id=raw_id, occurrence_date=fallback)

    base = match.group(1)
    suffix = _STAGE_SUFFIX.match(raw_id[match.end():])
    if suffix and _valid_day_key(suffix.group(2)):
        time_slot = None
        if suffix.group(3):
            time_slot = f"{suffix.group(3)}:{suffix.group(4)}"
        return OccurrenceIdentity(
            base_id=base,
            occurrence_date=suffix.group(2),
            stage=suffix.group(1),
            time_slot=time_slot,
        )

    return OccurrenceIdentity(base_id=base, occurrence_date=fallback)


def base_id(raw_id: str) -> str:
    return parse(raw_id).base_id


def occurrence_date(raw_id: str, fallback_day_key: Optional[DayLike] = None) -> Optional[str]:
    """Embedded YYYY-MM-DD date of raw_id, else the fallback day key"""
    return parse(raw_id, fallback_day_key).occurrence_date


def completion_key(raw_id: str, fallback_day_key: DayLike) -> str:
    """Canonical completion lookup key: '<base id>:<YYYY-MM-DD>'"""
    return parse(raw_id, fallback_day_key).completion_key


def is_virtual_id(raw_id: str) -> bool:
    """True for any id carrying a virtual or completed stage marker"""
    raw_id = str(raw_id)
    return f"-{STAGE_VIRTUAL}-" in raw_id or f"-{STAGE_COMPLETED}-" in raw_id


def _build(base: str, day: DayLike, stage: str, time_slot: Optional[str]) -> str:
    raw = f"{base}-{stage}-{_as_day_key(day)}"
    if time_slot:
        raw += f"-{time_slot.replace(':', '')}"
    return raw


def virtual_id(base: str, day: DayLike, time_slot: Optional[str] = None) -> str:
    return _build(base, day, STAGE_VIRTUAL, time_slot)


def completed_id(base: str, day: DayLike, time_slot: Optional[str] = None) -> str:
    return _build(base, day, STAGE_COMPLETED, time_slot)


def _field(record: Any, name: str):
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def build_completions_index(records: Iterable[Any]) -> Dict[str, Any]:
    """
    Index completion records by canonical completion key

    Stored task ids go through base_id first, so a record an older surface
    saved under a suffixed id lands on the same key as one saved under the
    bare UUID. The stored occurrence_date is authoritative; the embedded
    date is used only when the record has none. The first record seen for a
    key is kept.

    Args:
        records: TaskCompletion rows or dicts with task_id and occurrence_date

    Returns:
        Dictionary mapping completion key to record
    """
    index: Dict[str, Any] = {}
    for record in records:
        identity = parse(_field(record, 'task_id'))
        stored_day = _as_day_key(_field(record, 'occurrence_date'))
        key = f"{identity.key_base}:{stored_day or identity.occurrence_date}"
        if key in index:
            logger.debug(f"Duplicate completion for {key} ignored")
            continue
        index[key] = record
    return index
