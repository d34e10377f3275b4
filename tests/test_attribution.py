"""
Tests for completer attribution
"""
from types import SimpleNamespace

import pytest

from opscore.services.attribution import (
    AccountRef,
    EmbeddedRef,
    MatchedRule,
    ProfileRef,
    WorkerRef,
    build_external_id_map,
    extract_completer_ref,
    resolve,
    resolve_with_trace,
)


SCHEDULED = {'emp-w', 'emp-x'}
ID_MAP = {'acct-w': 'emp-w', 'prof-x': 'emp-x', 'acct-z': 'emp-z'}

ROLE_TASK = SimpleNamespace(assigned_to='emp-x', assigned_role_id=None, assigned_role_name='Server')
DIRECT_TASK = SimpleNamespace(assigned_to='emp-x', assigned_role_id=None, assigned_role_name=None)


class TestExtractCompleterRef:

    @pytest.mark.parametrize('record,expected', [
        ({'completed_by_employee_id': 'emp-w', 'completed_by_raw': 'acct-w'}, WorkerRef('emp-w')),
        ({'completed_by_raw': 'acct-w'}, AccountRef('acct-w')),
        ({'completed_by_raw': {'id': 'emp-w', 'name': 'Ana'}}, EmbeddedRef('emp-w')),
        ({'completed_by_raw': {'name': 'Ana'}, 'completed_by_user_id': 'acct-w'}, AccountRef('acct-w')),
        ({'completed_by_profile_id': 'prof-x'}, ProfileRef('prof-x')),
        ({}, None),
    ])
    def test_shapes(self, record, expected):
        assert extract_completer_ref(record) == expected

    def test_reads_model_attributes(self):
        record = SimpleNamespace(completed_by_employee_id=None, completed_by_raw=None,
                                 completed_by_user_id='acct-w', completed_by_profile_id=None)

        assert extract_completer_ref(record) == AccountRef('acct-w')


class TestResolve:

    def test_scheduled_id_matches_directly(self):
        assert resolve({'completed_by_employee_id': 'emp-w'}, SCHEDULED, ID_MAP) == 'emp-w'

    def test_account_id_mapped_to_scheduled_worker(self):
        trace = resolve_with_trace({'completed_by_raw': 'acct-w'}, SCHEDULED, ID_MAP, ROLE_TASK)

        assert trace.resolved_employee_id == 'emp-w'
        assert trace.matched_rule == MatchedRule.MAPPED_ID
        assert trace.mapped

    def test_profile_id_mapped(self):
        assert resolve({'completed_by_profile_id': 'prof-x'}, SCHEDULED, ID_MAP) == 'emp-x'

    def test_mapped_worker_not_scheduled_is_unattributed(self):
        trace = resolve_with_trace({'completed_by_raw': 'acct-z'}, SCHEDULED, ID_MAP, ROLE_TASK)

        assert trace.resolved_employee_id is None
        assert trace.mapped
        assert trace.matched_rule == MatchedRule.UNATTRIBUTED

    def test_role_based_task_never_falls_back_to_assignee(self):
        assert resolve({'completed_by_raw': 'stranger'}, SCHEDULED, ID_MAP, ROLE_TASK) is None

    def test_direct_assignment_falls_back_to_scheduled_assignee(self):
        trace = resolve_with_trace({'completed_by_raw': 'stranger'}, SCHEDULED, ID_MAP, DIRECT_TASK)

        assert trace.resolved_employee_id == 'emp-x'
        assert trace.matched_rule == MatchedRule.DIRECT_ASSIGNMENT
        assert trace.is_direct_assignment

    def test_direct_assignee_must_be_scheduled(self):
        task = SimpleNamespace(assigned_to='emp-off', assigned_role_id=None, assigned_role_name=None)

        assert resolve({}, SCHEDULED, ID_MAP, task) is None

    def test_no_task_means_no_fallback(self):
        assert resolve({'completed_by_raw': 'stranger'}, SCHEDULED, ID_MAP) is None

    def test_scheduled_ids_accepts_any_iterable(self):
        assert resolve({'completed_by_employee_id': 'emp-w'}, ['emp-w'], {}) == 'emp-w'

    def test_trace_to_dict(self):
        trace = resolve_with_trace({'completed_by_raw': 'acct-w'}, SCHEDULED, ID_MAP, ROLE_TASK)

        assert trace.to_dict() == {
            'raw_value': 'acct-w',
            'ref_kind': 'account',
            'matched_rule': 'mapped_id',
            'mapped': True,
            'resolved_employee_id': 'emp-w',
            'is_direct_assignment': False,
            'assigned_to': 'emp-x',
        }


class TestExternalIdMap:

    def test_maps_account_and_profile_ids(self):
        employees = [
            SimpleNamespace(id='emp-w', user_id='acct-w', profile_id='prof-w'),
            {'id': 'emp-x', 'user_id': None, 'profile_id': 'prof-x'},
        ]

        assert build_external_id_map(employees) == {
            'acct-w': 'emp-w',
            'prof-w': 'emp-w',
            'prof-x': 'emp-x',
        }

    def test_first_mapping_wins(self):
        employees = [
            {'id': 'emp-a', 'user_id': None, 'profile_id': 'shared'},
            {'id': 'emp-b', 'user_id': None, 'profile_id': 'shared'},
        ]

        assert build_external_id_map(employees) == {'shared': 'emp-a'}
