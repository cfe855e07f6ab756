"""
Diff utilities for the YAML form app.
Compares the live document data with a form's staged model using DeepDiff so
the user can review pending changes before saving.
"""

from typing import Dict, Any, List
from deepdiff import DeepDiff
import re
import logging

logger = logging.getLogger(__name__)

# Matches the ['key'] and [0] segments of a DeepDiff path like root['sets'][0]['reps']
_PATH_SEGMENT = re.compile(r"\['((?:[^'\\]|\\.)*)'\]|\[(\d+)\]")

_CHANGE_KINDS = {
    'values_changed': 'changed',
    'type_changes': 'changed',
    'dictionary_item_added': 'added',
    'iterable_item_added': 'added',
    'dictionary_item_removed': 'removed',
    'iterable_item_removed': 'removed',
}


def deepdiff_path_to_dot_path(path: str) -> str:
    """Convert ``root['sets'][0]['reps']`` into ``sets.0.reps``."""
    segments = []
    for key, index in _PATH_SEGMENT.findall(path):
        segments.append(key if key else index)
    return ".".join(segments)


def calculate_diff(original: Dict[str, Any], modified: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Calculate the changes that saving ``modified`` over ``original`` would make.

    Args:
        original: Live document data at the form's model root
        modified: The staged model

    Returns:
        List of changes, each with ``path`` (dot-path), ``change``
        (changed / added / removed), ``old`` and ``new``; sorted by path
    """
    diff = DeepDiff(original or {}, modified or {}, verbose_level=2)
    changes: List[Dict[str, Any]] = []

    for section, kind in _CHANGE_KINDS.items():
        entries = diff.get(section, {})
        for path, detail in entries.items():
            change = {'path': deepdiff_path_to_dot_path(path), 'change': kind, 'old': None, 'new': None}
            if kind == 'changed':
                change['old'] = detail.get('old_value')
                change['new'] = detail.get('new_value')
            elif kind == 'added':
                change['new'] = detail
            else:
                change['old'] = detail
            changes.append(change)

    changes.sort(key=lambda c: c['path'])
    logger.debug(f"[calculate_diff] {len(changes)} changes")
    return changes


def format_change(change: Dict[str, Any]) -> str:
    """One-line, human readable description of a change."""
    path = change['path'] or '(root)'
    if change['change'] == 'added':
        return f"➕ {path}: {_format_value(change['new'])}"
    if change['change'] == 'removed':
        return f"➖ {path}: {_format_value(change['old'])}"
    return f"✏️ {path}: {_format_value(change['old'])} → {_format_value(change['new'])}"


def _format_value(value: Any) -> str:
    if value is None:
        return "(empty)"
    if isinstance(value, str):
        return f'"{value}"' if value else '""'
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
