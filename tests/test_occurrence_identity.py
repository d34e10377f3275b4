"""
Tests for the occurrence identity codec
"""
from datetime import date
from types import SimpleNamespace

from opscore.services import occurrence_identity as codec

BASE = '3f2b9c1e-8d4a-4b7e-9c2d-1a2b3c4d5e6f'


class TestParsing:

    def test_virtual_round_trip(self):
        raw = f'{BASE}-virtual-2024-01-08'

        assert codec.base_id(raw) == BASE
        assert codec.occurrence_date(raw, '1999-12-31') == '2024-01-08'

    def test_all_spellings_share_a_completion_key(self):
        keys = {
            codec.completion_key(BASE, '2024-01-08'),
            codec.completion_key(f'{BASE}-virtual-2024-01-08', '2024-01-09'),
            codec.completion_key(f'{BASE}-completed-2024-01-08', '2024-01-09'),
            codec.completion_key(BASE.upper(), '2024-01-08'),
        }

        assert keys == {f'{BASE}:2024-01-08'}

    def test_completion_key_is_deterministic(self):
        raw = f'{BASE}-completed-2024-01-08'

        assert codec.completion_key(raw, '2024-02-01') == codec.completion_key(raw, '2024-02-01')

    def test_bare_uuid_uses_fallback(self):
        identity = codec.parse(BASE, date(2024, 1, 8))

        assert identity.occurrence_date == '2024-01-08'
        assert not identity.is_virtual
        assert identity.day == date(2024, 1, 8)

    def test_time_slot_suffix(self):
        identity = codec.parse(f'{BASE}-virtual-2024-01-08-14:30')

        assert identity.base_id == BASE
        assert identity.occurrence_date == '2024-01-08'
        assert identity.time_slot == '14:30'
        assert identity.stage == codec.STAGE_VIRTUAL

    def test_compact_time_slot_keeps_embedded_date(self):
        raw = f'{BASE}-virtual-2024-01-08-0930'

        assert codec.occurrence_date(raw, '2024-02-01') == '2024-01-08'
        assert codec.completion_key(raw, '2024-02-01') == f'{BASE}:2024-01-08'
        assert codec.parse(raw).time_slot == '09:30'

    def test_both_slot_spellings_parse_alike(self):
        compact = codec.parse(f'{BASE}-completed-2024-01-08-1430')
        colon = codec.parse(f'{BASE}-completed-2024-01-08-14:30')

        assert compact == colon

    def test_trailing_text_after_date_is_tolerated(self):
        raw = f'{BASE}-completed-2024-01-08-extra'

        assert codec.occurrence_date(raw, '2024-02-01') == '2024-01-08'
        assert codec.completion_key(raw, '2024-02-01') == f'{BASE}:2024-01-08'
        assert codec.parse(raw).time_slot is None

    def test_impossible_embedded_date_falls_back(self):
        identity = codec.parse(f'{BASE}-virtual-2024-02-30', '2024-01-08')

        assert identity.base_id == BASE
        assert identity.occurrence_date == '2024-01-08'

    def test_base_id_keeps_case_but_key_does_not(self):
        upper = BASE.upper()

        assert codec.base_id(f'{upper}-virtual-2024-01-08') == upper
        assert codec.completion_key(upper, '2024-01-08') == f'{BASE}:2024-01-08'

    def test_non_uuid_ids_pass_through(self):
        assert codec.base_id('legacy-task-42') == 'legacy-task-42'
        assert codec.completion_key('Legacy-Task-42', '2024-01-08') == 'Legacy-Task-42:2024-01-08'
        assert codec.occurrence_date('legacy-task-42-virtual-2024-01-08', '2024-01-09') == '2024-01-09'


class TestBuilders:

    def test_builders_are_bit_exact(self):
        assert codec.virtual_id(BASE, date(2024, 1, 8)) == f'{BASE}-virtual-2024-01-08'
        assert codec.completed_id(BASE, '2024-01-08') == f'{BASE}-completed-2024-01-08'
        assert codec.virtual_id(BASE, '2024-01-08', '09:00') == f'{BASE}-virtual-2024-01-08-0900'

    def test_built_slot_parses_back(self):
        identity = codec.parse(codec.completed_id(BASE, '2024-01-08', '17:45'))

        assert identity.occurrence_date == '2024-01-08'
        assert identity.time_slot == '17:45'

    def test_is_virtual_id(self):
        assert codec.is_virtual_id(codec.virtual_id(BASE, '2024-01-08'))
        assert codec.is_virtual_id(codec.completed_id(BASE, '2024-01-08'))
        assert codec.is_virtual_id('legacy-task-42-virtual-2024-01-08')
        assert not codec.is_virtual_id(BASE)
        assert not codec.is_virtual_id('legacy-task-42')


class TestCompletionsIndex:

    def test_suffixed_stored_ids_are_normalized(self):
        records = [
            SimpleNamespace(task_id=f'{BASE}-completed-2024-01-08', occurrence_date='2024-01-08'),
            {'task_id': 'other-task', 'occurrence_date': '2024-01-08'},
        ]

        index = codec.build_completions_index(records)

        assert set(index) == {f'{BASE}:2024-01-08', 'other-task:2024-01-08'}
        assert index[codec.completion_key(codec.virtual_id(BASE, '2024-01-08'), '2024-01-08')] is records[0]

    def test_mixed_case_and_compact_slot_share_a_key(self):
        record = {'task_id': f'{BASE.upper()}-completed-2024-01-08-0930', 'occurrence_date': None}

        index = codec.build_completions_index([record])

        assert index == {f'{BASE}:2024-01-08': record}

    def test_first_record_wins_for_duplicate_keys(self):
        first = {'task_id': BASE, 'occurrence_date': '2024-01-08'}
        second = {'task_id': f'{BASE}-virtual-2024-01-08', 'occurrence_date': '2024-01-08'}

        index = codec.build_completions_index([first, second])

        assert len(index) == 1
        assert index[f'{BASE}:2024-01-08'] is first

    def test_building_twice_gives_equal_indexes(self):
        records = [
            {'task_id': BASE, 'occurrence_date': '2024-01-08'},
            {'task_id': f'{BASE}-virtual-2024-01-09', 'occurrence_date': '2024-01-09'},
        ]

        assert codec.build_completions_index(records) == codec.build_completions_index(records)
