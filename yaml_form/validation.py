"""
Required-field checks run at save time.
"""

from typing import Any, List, Sequence
import logging

from .path_accessor import get_at_path, join_path
from .schema_model import AnyField, RepeaterField
from .visibility import is_visible

logger = logging.getLogger(__name__)


def is_empty_value(value: Any) -> bool:
    """A value is empty when absent, blank text, or an empty list."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, list):
        return len(value) == 0
    return False


def collect_invalid(fields: Sequence[AnyField], model_root: str, staged_model: Any) -> List[str]:
    """
    Collect absolute paths of required fields that are visible but empty.

    Hidden fields never count. Repeater items are checked one by one against
    the item schema, with item-relative visibility.

    Args:
        fields: Top-level fields in schema order
        model_root: The form's model root (used to build absolute paths)
        staged_model: The staged model rooted at ``model_root``

    Returns:
        List of absolute bind paths, in schema and array order
    """
    invalid: List[str] = []

    for field in fields:
        if not is_visible(field.visible_if, staged_model):
            continue

        value = get_at_path(staged_model, field.path)

        if isinstance(field, RepeaterField):
            items = value if isinstance(value, list) else []
            if field.required and not items:
                invalid.append(join_path(model_root, field.path))
            for index in range(len(items)):
                item_base = f"{field.path}.{index}"
                for sub_field in field.item_schema:
                    if not sub_field.required:
                        continue
                    if not is_visible(sub_field.visible_if, staged_model, item_base):
                        continue
                    item_path = join_path(item_base, sub_field.path)
                    if is_empty_value(get_at_path(staged_model, item_path)):
                        invalid.append(join_path(model_root, item_path))
            continue

        if field.required and is_empty_value(value):
            invalid.append(join_path(model_root, field.path))

    if invalid:
        logger.debug(f"Required fields missing: {invalid}")
    return invalid
