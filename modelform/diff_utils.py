"""
Change summaries for submitted change sets.

The change set handed to a submit handler maps each edited field to its
current value. This module compares it with the values the fields held before
their first edit, using DeepDiff so nested values (lists, dicts, nested
models dumped to dicts) compare structurally.
"""

import logging
from typing import Any, Dict, List

from deepdiff import DeepDiff

logger = logging.getLogger(__name__)


def _change_type(diff: DeepDiff) -> str:
    if 'type_changes' in diff:
        return 'type_changed'
    if any(key.endswith('_added') for key in diff):
        return 'added'
    if any(key.endswith('_removed') for key in diff):
        return 'removed'
    return 'modified'


def summarize_changes(baseline: Dict[str, Any], change_set: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Compare a change set with the values held before editing.

    Fields edited back to their original value are left out.

    Args:
        baseline: Field name to value before the first edit
        change_set: Field name to value at submit time

    Returns:
        List of {'field', 'type', 'old_value', 'new_value'} dictionaries in
        change set order
    """
    changes = []

    for field_name, new_value in change_set.items():
        old_value = baseline.get(field_name)
        diff = DeepDiff(old_value, new_value, ignore_order=True, verbose_level=2)
        if not diff:
            continue
        changes.append({
            'field': field_name,
            'type': _change_type(diff),
            'old_value': old_value,
            'new_value': new_value
        })

    return changes


def get_change_summary(changes: List[Dict[str, Any]]) -> Dict[str, int]:
    """
    Count changes by type.

    Args:
        changes: Output of summarize_changes

    Returns:
        Dictionary with change counts by type
    """
    summary = {
        'modified': 0,
        'added': 0,
        'removed': 0,
        'type_changed': 0,
        'total': 0
    }

    for change in changes:
        summary[change['type']] = summary.get(change['type'], 0) + 1

    summary['total'] = len(changes)
    return summary


def format_changes_for_log(changes: List[Dict[str, Any]]) -> str:
    """Render changes as "field: old -> new" lines."""
    if not changes:
        return "No changes detected"
    return "\n".join(
        f"{change['field']}: {change['old_value']!r} -> {change['new_value']!r}"
        for change in changes
    )
