"""
Completer Attribution Resolver
Credits a task completion to exactly one scheduled worker, or to nobody.

Completion rows written by different surfaces over time carry the completer
in different shapes:
- completed_by_employee_id: worker id (current surfaces)
- completed_by_raw: a bare string (worker or account id) or an embedded
  object with an "id" key
- completed_by_user_id / completed_by_profile_id: legacy account and
  profile ids

The raw value is lifted into a CompleterRef and resolved by an ordered
matcher. Role- or location-based tasks never fall back to their assignee,
since many workers could have been eligible.
"""
import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkerRef:
    value: str
    kind: str = 'worker'


@dataclass(frozen=True)
class AccountRef:
    value: str
    kind: str = 'account'


@dataclass(frozen=True)
class ProfileRef:
    value: str
    kind: str = 'profile'


@dataclass(frozen=True)
class EmbeddedRef:
    value: str
    kind: str = 'embedded'


CompleterRef = Union[WorkerRef, AccountRef, ProfileRef, EmbeddedRef]


class MatchedRule(str, Enum):
    """Which resolution step credited the completion"""
    SCHEDULED_ID = "scheduled_id"
    MAPPED_ID = "mapped_id"
    DIRECT_ASSIGNMENT = "direct_assignment"
    UNATTRIBUTED = "unattributed"


@dataclass
class AttributionTrace:
    """Full decision record for one completion"""
    raw_value: Optional[str]
    ref_kind: Optional[str]
    matched_rule: MatchedRule
    mapped: bool
    resolved_employee_id: Optional[str]
    is_direct_assignment: bool
    assigned_to: Optional[str] = None

    def to_dict(self):
        data = asdict(self)
        data['matched_rule'] = self.matched_rule.value
        return data


def _field(obj: Any, name: str):
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_completer_ref(record: Any) -> Optional[CompleterRef]:
    """
    Lift a completion record's completer fields into a CompleterRef

    Fields are tried in order: completed_by_employee_id, completed_by_raw as
    a string, completed_by_raw["id"], completed_by_user_id,
    completed_by_profile_id. The first non-empty one wins.
    """
    employee_id = _field(record, 'completed_by_employee_id')
    if employee_id:
        return WorkerRef(str(employee_id))

    raw = _field(record, 'completed_by_raw')
    if isinstance(raw, str) and raw:
        # Older surfaces stored either a worker or an account id here
        return AccountRef(raw)
    if isinstance(raw, Mapping) and raw.get('id'):
        return EmbeddedRef(str(raw['id']))

    user_id = _field(record, 'completed_by_user_id')
    if user_id:
        return AccountRef(str(user_id))

    profile_id = _field(record, 'completed_by_profile_id')
    if profile_id:
        return ProfileRef(str(profile_id))

    return None


def is_direct_assignment(task: Any) -> bool:
    """An explicit assignee with no role-based assignment"""
    if task is None:
        return False
    return bool(_field(task, 'assigned_to')) and not _field(task, 'assigned_role_id') \
        and not _field(task, 'assigned_role_name')


def resolve_with_trace(record: Any, scheduled_ids: Iterable[str],
                       external_id_map: Dict[str, str], task: Any = None) -> AttributionTrace:
    """
    Resolve the completer and return the full decision trace

    Args:
        record: TaskCompletion row or mapping with the completer fields
        scheduled_ids: Worker ids scheduled for the occurrence's day
        external_id_map: Account/profile id -> worker id
        task: Task the completion belongs to, for the direct-assignment fallback

    Returns:
        AttributionTrace; resolved_employee_id is None when unattributable
    """
    scheduled = scheduled_ids if isinstance(scheduled_ids, (set, frozenset)) else set(scheduled_ids)
    ref = extract_completer_ref(record)
    direct = is_direct_assignment(task)
    assigned_to = _field(task, 'assigned_to')

    trace = AttributionTrace(
        raw_value=ref.value if ref else None,
        ref_kind=ref.kind if ref else None,
        matched_rule=MatchedRule.UNATTRIBUTED,
        mapped=False,
        resolved_employee_id=None,
        is_direct_assignment=direct,
        assigned_to=assigned_to,
    )

    if ref is not None:
        if ref.value in scheduled:
            trace.matched_rule = MatchedRule.SCHEDULED_ID
            trace.resolved_employee_id = ref.value
            return trace

        mapped = external_id_map.get(ref.value)
        if mapped:
            trace.mapped = True
            if mapped in scheduled:
                trace.matched_rule = MatchedRule.MAPPED_ID
                trace.resolved_employee_id = mapped
                return trace

    if direct and assigned_to in scheduled:
        trace.matched_rule = MatchedRule.DIRECT_ASSIGNMENT
        trace.resolved_employee_id = assigned_to
        return trace

    logger.debug(f"Unattributable completion: {trace.to_dict()}")
    return trace


def resolve(record: Any, scheduled_ids: Iterable[str],
            external_id_map: Dict[str, str], task: Any = None) -> Optional[str]:
    """Worker id the completion is credited to, or None"""
    return resolve_with_trace(record, scheduled_ids, external_id_map, task).resolved_employee_id


def build_external_id_map(employees: Iterable[Any]) -> Dict[str, str]:
    """
    Map every account id and profile id to its employee id

    Args:
        employees: Employee rows or mappings with id, user_id, profile_id

    Returns:
        Dictionary of external id -> employee id
    """
    mapping: Dict[str, str] = {}
    for employee in employees:
        employee_id = _field(employee, 'id')
        for external in (_field(employee, 'user_id'), _field(employee, 'profile_id')):
            if external and external not in mapping:
                mapping[external] = employee_id
    return mapping
