"""
Evaluation of ``visibleIf`` conditions against the staged model.
"""

from typing import Any, Dict, Optional, Union
import logging

from .path_accessor import get_at_path, join_path
from .schema_model import Condition

logger = logging.getLogger(__name__)


def _strict_equals(left: Any, right: Any) -> bool:
    # True == 1 in Python; a checkbox value must not match a numeric rule
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def is_visible(
    condition: Optional[Union[Condition, Dict[str, Any]]],
    staged_model: Any,
    item_base: Optional[str] = None,
) -> bool:
    """
    Decide whether a field is shown.

    The first predicate present wins, in this order: equals, notEquals,
    containsSubstring (string values only, case-insensitive), isTruthy,
    isFalsy. With no condition, or no recognised predicate, the field is shown.

    Args:
        condition: The field's visibleIf rule (model or raw mapping)
        staged_model: The staged model rooted at the form's model root
        item_base: Model path of the enclosing repeater item, if any
    """
    if not condition:
        return True
    if isinstance(condition, dict):
        condition = Condition.model_validate(condition)

    compare_path = join_path(item_base, condition.path) if item_base else condition.path
    value = get_at_path(staged_model, compare_path)

    if condition.has("equals"):
        return _strict_equals(value, condition.equals)
    if condition.has("not_equals"):
        return not _strict_equals(value, condition.not_equals)
    if condition.has("contains_substring") and isinstance(value, str):
        return str(condition.contains_substring).lower() in value.lower()
    if condition.is_truthy:
        return bool(value)
    if condition.is_falsy:
        return not value
    return True
