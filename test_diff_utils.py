"""
Unit tests for diff_utils module.
"""

from modelform.diff_utils import format_changes_for_log, get_change_summary, summarize_changes


class TestSummarizeChanges:
    """Test class for change summaries."""

    def test_value_changed(self):
        """Test a modified scalar value."""
        changes = summarize_changes({'age': 29}, {'age': 30})
        assert changes == [{'field': 'age', 'type': 'modified', 'old_value': 29, 'new_value': 30}]

    def test_unchanged_field_is_skipped(self):
        """Test fields edited back to their original value are left out."""
        assert summarize_changes({'name': 'Ann'}, {'name': 'Ann'}) == []

    def test_type_changed(self):
        """Test a value set from None is reported as a type change."""
        changes = summarize_changes({'age': None}, {'age': 30})
        assert changes[0]['type'] == 'type_changed'

    def test_list_item_added(self):
        """Test nested values compare structurally."""
        changes = summarize_changes({'tags': ['a']}, {'tags': ['a', 'b']})
        assert changes[0]['type'] == 'added'

    def test_list_item_removed(self):
        """Test removed list items."""
        changes = summarize_changes({'tags': ['a', 'b']}, {'tags': ['a']})
        assert changes[0]['type'] == 'removed'

    def test_list_order_is_ignored(self):
        """Test reordered lists are not reported."""
        assert summarize_changes({'tags': ['a', 'b']}, {'tags': ['b', 'a']}) == []

    def test_missing_baseline(self):
        """Test fields without a recorded baseline compare against None."""
        changes = summarize_changes({}, {'name': 'Ann'})
        assert changes[0]['old_value'] is None

    def test_change_set_order_is_kept(self):
        """Test results follow the change set order."""
        changes = summarize_changes({'b': 1, 'a': 1}, {'b': 2, 'a': 2})
        assert [c['field'] for c in changes] == ['b', 'a']


class TestChangeSummary:
    """Test class for change counts and log formatting."""

    def test_get_change_summary(self):
        """Test counting changes by type."""
        changes = summarize_changes({'a': 1, 'b': None, 'c': 'x'}, {'a': 2, 'b': 3, 'c': 'x'})

        summary = get_change_summary(changes)

        assert summary['modified'] == 1
        assert summary['type_changed'] == 1
        assert summary['total'] == 2

    def test_format_changes_for_log(self):
        """Test log lines show old and new values."""
        changes = summarize_changes({'name': 'Ann'}, {'name': 'Bob'})
        assert format_changes_for_log(changes) == "name: 'Ann' -> 'Bob'"
        assert format_changes_for_log([]) == "No changes detected"
