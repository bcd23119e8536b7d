"""
Tests for per-field semantic equality, diff computation and summaries.
"""
import datetime
from decimal import Decimal

import pytest

from apps.clinical.field_diff import (
    BOOLEAN,
    DATE,
    DECIMAL,
    ILLNESS_FIELDS,
    INTEGER,
    JSON,
    STRING_SET,
    TEXT,
    TIME,
    VISIT_FIELDS,
    TrackedField,
    changes_summary,
    created_changes,
    deleted_changes,
    is_effectively_empty,
    should_filter_change,
    truncate_changes,
    updated_changes,
)


class TestEffectivelyEmpty:

    @pytest.mark.parametrize('value', [
        None, '', '   ', [], {}, (), [None, ''], {'od': {'sphere': None, 'cylinder': ''}}, float('nan'),
    ])
    def test_empty_values(self, value):
        assert is_effectively_empty(value) is True

    @pytest.mark.parametrize('value', [0, False, 'x', [0], {'od': {'sphere': -1.5}}, Decimal('0')])
    def test_non_empty_values(self, value):
        assert is_effectively_empty(value) is False

    def test_change_between_empty_values_is_filtered(self):
        assert should_filter_change(None, '') is True
        assert should_filter_change([], {'a': None}) is True
        assert should_filter_change(None, 'x') is False


class TestSemanticEquality:

    @pytest.mark.parametrize('kind,before,after', [
        (TEXT, 'cough', '  cough '),
        (TEXT, 'runny   nose', 'runny nose'),
        (TEXT, '', None),
        (DATE, datetime.date(2024, 1, 2), '2024-01-02'),
        (DATE, '2024-01-02T15:30:00Z', datetime.date(2024, 1, 2)),
        (DATE, datetime.datetime(2024, 1, 2, 23, 59), '2024-01-02'),
        (TIME, datetime.time(9, 30), '09:30:00'),
        (DECIMAL, Decimal('20.50'), '20.5'),
        (DECIMAL, 101.2, Decimal('101.2')),
        (DECIMAL, '', None),
        (INTEGER, 4, '4'),
        (INTEGER, Decimal('4.0'), 4),
        (BOOLEAN, True, 'true'),
        (BOOLEAN, '', None),
        (JSON, {'b': 1, 'a': 2}, {'a': 2, 'b': 1}),
        (JSON, {'od': {'sphere': None}}, None),
        (JSON, '{"a": 1}', {'a': 1}),
        (STRING_SET, ['flu', 'cold'], ['cold', 'flu']),
        (STRING_SET, [], None),
    ])
    def test_equivalent_values_are_equal(self, kind, before, after):
        assert TrackedField('f', kind).equal(before, after) is True

    @pytest.mark.parametrize('kind,before,after', [
        (TEXT, 'cough', 'cough, fever'),
        (DATE, '2024-01-02', '2024-01-03'),
        (TIME, '09:30', '09:45'),
        (DECIMAL, '20.5', '20.6'),
        (INTEGER, 4, 5),
        (BOOLEAN, False, None),
        (BOOLEAN, True, False),
        (JSON, ['a'], ['a', 'b']),
        (STRING_SET, ['flu'], ['flu', 'cold']),
    ])
    def test_different_values_are_not_equal(self, kind, before, after):
        assert TrackedField('f', kind).equal(before, after) is False


class TestDiffs:

    fields = (
        TrackedField('symptoms', TEXT),
        TrackedField('visit_date', DATE),
        TrackedField('temperature', DECIMAL),
        TrackedField('tags', JSON),
        TrackedField('illnesses', STRING_SET),
    )

    def test_created_lists_only_non_empty_fields(self):
        after = {
            'symptoms': 'cough',
            'visit_date': datetime.date(2024, 1, 2),
            'temperature': None,
            'tags': [],
            'illnesses': ['flu'],
        }

        assert created_changes(self.fields, after) == {
            'symptoms': {'before': None, 'after': 'cough'},
            'visit_date': {'before': None, 'after': '2024-01-02'},
            'illnesses': {'before': None, 'after': ['flu']},
        }

    def test_updated_lists_only_changed_fields(self):
        before = {'symptoms': 'cough', 'visit_date': datetime.date(2024, 1, 2), 'temperature': Decimal('101.20')}
        after = {'symptoms': 'cough ', 'visit_date': '2024-01-02', 'temperature': '101.5'}

        assert updated_changes(self.fields, before, after) == {
            'temperature': {'before': 101.2, 'after': 101.5},
        }

    def test_update_with_no_real_change_is_empty(self):
        before = {'symptoms': None, 'tags': None, 'illnesses': ['flu', 'cold']}
        after = {'symptoms': '', 'tags': {'x': None}, 'illnesses': ['cold', 'flu']}

        assert updated_changes(self.fields, before, after) == {}

    def test_clearing_a_field_is_recorded(self):
        changes = updated_changes(self.fields, {'symptoms': 'cough'}, {'symptoms': ''})
        assert changes == {'symptoms': {'before': 'cough', 'after': None}}

    def test_deleted_lists_non_empty_fields(self):
        before = {'symptoms': 'cough', 'visit_date': datetime.date(2024, 1, 2), 'tags': []}

        assert deleted_changes(self.fields, before) == {
            'symptoms': {'before': 'cough', 'after': None},
            'visit_date': {'before': '2024-01-02', 'after': None},
        }

    def test_long_values_are_truncated(self):
        changes = {'notes': {'before': 'a' * 1500, 'after': 'short'}}

        truncated = truncate_changes(changes, 1000)

        assert truncated['notes']['before'] == 'a' * 1000 + '...'
        assert truncated['notes']['after'] == 'short'

    def test_tracked_field_sets(self):
        visit_names = {field.name for field in VISIT_FIELDS}
        illness_names = {field.name for field in ILLNESS_FIELDS}

        assert {'visit_date', 'symptoms', 'notes', 'temperature', 'illnesses', 'tags'} <= visit_names
        assert 'updated_at' not in visit_names
        assert illness_names == {
            'illness_types', 'start_date', 'end_date', 'symptoms', 'notes', 'temperature', 'severity', 'visit_id',
        }


class TestSummary:

    @pytest.mark.parametrize('action,entity_type,changes,expected', [
        ('created', 'visit', {'notes': {'before': None, 'after': 'x'}}, 'Created visit'),
        ('deleted', 'illness', {}, 'Deleted illness'),
        (
            'updated', 'visit',
            {'symptoms': {'before': 'a', 'after': 'b'}, 'notes': {'before': None, 'after': 'c'}},
            'Updated notes, symptoms',
        ),
        (
            'updated', 'illness',
            {name: {'before': 1, 'after': 2} for name in ('severity', 'notes', 'end_date', 'symptoms', 'temperature')},
            'Updated 5 fields: end_date, notes, severity...',
        ),
        ('updated', 'visit', {}, 'Updated visit'),
        ('updated', 'visit', {'notes': {'before': None, 'after': ''}}, 'Updated visit'),
    ])
    def test_summary(self, action, entity_type, changes, expected):
        assert changes_summary(action, entity_type, changes) == expected
