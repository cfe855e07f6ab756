"""
Unit tests for visibleIf evaluation.
"""

import pytest

from yaml_form.schema_model import Condition
from yaml_form.visibility import is_visible


class TestIsVisible:
    """Test cases for is_visible."""

    def test_no_condition_is_visible(self):
        assert is_visible(None, {'mood': 'Sad'}) is True
        assert is_visible({}, {'mood': 'Sad'}) is True

    def test_equals(self):
        condition = {'path': 'mood', 'equals': 'Sad'}
        assert is_visible(condition, {'mood': 'Sad'}) is True
        assert is_visible(condition, {'mood': 'Happy'}) is False

    def test_equals_is_strict_about_booleans(self):
        assert is_visible({'path': 'flag', 'equals': 1}, {'flag': True}) is False
        assert is_visible({'path': 'flag', 'equals': True}, {'flag': True}) is True

    def test_equals_null(self):
        assert is_visible({'path': 'missing', 'equals': None}, {}) is True
        assert is_visible({'path': 'x', 'equals': None}, {'x': 'set'}) is False

    def test_not_equals(self):
        condition = {'path': 'mood', 'notEquals': 'Sad'}
        assert is_visible(condition, {'mood': 'Happy'}) is True
        assert is_visible(condition, {'mood': 'Sad'}) is False

    def test_contains_substring_is_case_insensitive(self):
        condition = {'path': 'title', 'containsSubstring': 'LEG'}
        assert is_visible(condition, {'title': 'Leg day'}) is True
        assert is_visible(condition, {'title': 'Arm day'}) is False

    def test_contains_on_non_string_falls_through(self):
        assert is_visible({'path': 'n', 'contains': '1'}, {'n': 12}) is True
        condition = {'path': 'n', 'contains': '1', 'isFalsy': True}
        assert is_visible(condition, {'n': 12}) is False

    def test_truthy_and_falsy(self):
        assert is_visible({'path': 'warmup', 'isTruthy': True}, {'warmup': True}) is True
        assert is_visible({'path': 'warmup', 'isTruthy': True}, {'warmup': False}) is False
        assert is_visible({'path': 'warmup', 'isFalsy': True}, {'warmup': ''}) is True
        assert is_visible({'path': 'warmup', 'isFalsy': True}, {'warmup': 'yes'}) is False

    def test_equals_wins_over_later_predicates(self):
        condition = {'path': 'mood', 'equals': 'Sad', 'isFalsy': True}
        assert is_visible(condition, {'mood': 'Sad'}) is True

    def test_unrecognised_predicate_is_visible(self):
        assert is_visible({'path': 'mood', 'matches': 'S.*'}, {'mood': 'Happy'}) is True

    def test_item_relative_path(self):
        model = {'sets': [{'warmup': True}, {'warmup': False}]}
        condition = Condition.model_validate({'path': 'warmup', 'isTruthy': True})
        assert is_visible(condition, model, item_base='sets.0') is True
        assert is_visible(condition, model, item_base='sets.1') is False

    @pytest.mark.parametrize("model,expected", [
        ({}, False),
        ({'opts': {'show': 'yes'}}, True),
    ])
    def test_nested_path(self, model, expected):
        assert is_visible({'path': 'opts.show', 'isTruthy': True}, model) is expected
