"""
Unit tests for the pending-changes diff.
"""

from yaml_form.diff_utils import (
    calculate_diff,
    deepdiff_path_to_dot_path,
    format_change,
)


class TestDeepDiffPath:
    """Test cases for DeepDiff path conversion."""

    def test_nested_path(self):
        assert deepdiff_path_to_dot_path("root['sets'][0]['reps']") == "sets.0.reps"

    def test_root(self):
        assert deepdiff_path_to_dot_path("root") == ""


class TestCalculateDiff:
    """Test cases for calculate_diff."""

    def test_no_changes(self):
        data = {'mood': 'Happy', 'sets': [{'reps': 8}]}
        changes = calculate_diff(data, {'mood': 'Happy', 'sets': [{'reps': 8}]})
        assert changes == []

    def test_value_changed(self):
        changes = calculate_diff({'mood': 'Happy'}, {'mood': 'Sad'})
        assert changes == [{'path': 'mood', 'change': 'changed', 'old': 'Happy', 'new': 'Sad'}]

    def test_added_and_removed_keys(self):
        changes = calculate_diff({'old': 1}, {'new': 2})
        assert {(c['path'], c['change']) for c in changes} == {('new', 'added'), ('old', 'removed')}

    def test_list_item_changes(self):
        changes = calculate_diff({'sets': [{'reps': 8}]}, {'sets': [{'reps': 10}, {'reps': 6}]})
        paths = {c['path']: c['change'] for c in changes}
        assert paths['sets.0.reps'] == 'changed'
        assert paths['sets.1'] == 'added'

    def test_type_change(self):
        changes = calculate_diff({'reps': '8'}, {'reps': 8})
        assert changes[0]['change'] == 'changed'
        assert changes[0]['old'] == '8'
        assert changes[0]['new'] == 8

    def test_none_inputs(self):
        assert calculate_diff(None, None) == []


class TestFormatChange:
    """Test cases for format_change."""

    def test_changed(self):
        text = format_change({'path': 'mood', 'change': 'changed', 'old': 'Happy', 'new': 'Sad'})
        assert text == '✏️ mood: "Happy" → "Sad"'

    def test_added_and_removed(self):
        assert format_change({'path': 'done', 'change': 'added', 'old': None, 'new': True}) == "➕ done: true"
        assert format_change({'path': 'note', 'change': 'removed', 'old': None, 'new': None}) == "➖ note: (empty)"
