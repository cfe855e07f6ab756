"""
Pydantic models for form schemas embedded in note front matter.

A schema looks like::

    form:
      modelRoot: form_data
      autosave: false
      fields:
        - path: mood
          kind: select
          options: [Happy, Sad]
        - path: comment
          kind: textarea
          visibleIf: {path: mood, equals: Sad}

Parsing is lenient: a missing ``fields`` list gives an empty form and unknown
kinds fall back to a plain text field.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union
import logging

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .exceptions import SchemaError

logger = logging.getLogger(__name__)

DEFAULT_FORM_KEY = "form"


class FieldKind(str, Enum):
    """Supported field kinds."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    CHECKBOX = "checkbox"
    SELECT = "select"
    TEXTAREA = "textarea"
    CSV_NUMBER = "csvNumber"
    CSV_TEXT = "csvText"
    REPEATER = "repeater"


# Spellings used by older schemas
KIND_ALIASES = {
    "datetime-local": FieldKind.DATETIME,
    "csv-number": FieldKind.CSV_NUMBER,
    "csv-text": FieldKind.CSV_TEXT,
}

CSV_KINDS = (FieldKind.CSV_NUMBER, FieldKind.CSV_TEXT)


def normalize_kind(raw: Any) -> FieldKind:
    """Map an authored kind string onto a FieldKind, defaulting to text."""
    if raw is None or raw == "":
        return FieldKind.TEXT
    if isinstance(raw, FieldKind):
        return raw
    text = str(raw).strip()
    if text in KIND_ALIASES:
        return KIND_ALIASES[text]
    try:
        return FieldKind(text)
    except ValueError:
        logger.warning(f"Unknown field kind '{text}', rendering as text")
        return FieldKind.TEXT


class Condition(BaseModel):
    """
    A ``visibleIf`` rule.

    Only one predicate is honoured; see ``visibility.is_visible`` for the
    priority order. ``equals`` and ``notEquals`` count as set when the key is
    present, so an explicit ``null`` is a valid comparison target.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    path: str = ""
    equals: Any = None
    not_equals: Any = Field(default=None, validation_alias=AliasChoices("notEquals", "not_equals"))
    contains_substring: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("containsSubstring", "contains", "contains_substring"),
    )
    is_truthy: Any = Field(default=None, validation_alias=AliasChoices("isTruthy", "is_truthy"))
    is_falsy: Any = Field(default=None, validation_alias=AliasChoices("isFalsy", "is_falsy"))

    @field_validator("path", mode="before")
    @classmethod
    def _path_to_str(cls, value: Any) -> str:
        return "" if value is None else str(value)

    def has(self, name: str) -> bool:
        """Return True if the predicate ``name`` was present in the source."""
        return name in self.model_fields_set


class FieldSchema(BaseModel):
    """Attributes shared by every field kind."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    label: Optional[str] = None
    path: str = ""
    kind: FieldKind = Field(default=FieldKind.TEXT, validation_alias=AliasChoices("kind", "type"))
    placeholder: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    rows: Optional[int] = None
    options: List[str] = Field(default_factory=list)
    required: bool = False
    visible_if: Optional[Condition] = Field(
        default=None, validation_alias=AliasChoices("visibleIf", "visible_if")
    )

    @field_validator("path", mode="before")
    @classmethod
    def _path_to_str(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value: Any) -> FieldKind:
        return normalize_kind(value)

    @field_validator("options", mode="before")
    @classmethod
    def _stringify_options(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            value = [value]
        return [str(option) for option in value]

    @field_validator("required", mode="before")
    @classmethod
    def _required_to_bool(cls, value: Any) -> bool:
        return bool(value)

    @property
    def display_label(self) -> str:
        return self.label if self.label else self.path

    def blank_value(self) -> Any:
        """Initial value for this field in a freshly added repeater item."""
        if self.kind == FieldKind.CHECKBOX:
            return False
        if self.kind in CSV_KINDS:
            return []
        return ""


class ScalarField(FieldSchema):
    """Any single-value field (everything except repeaters)."""

    @field_validator("kind", mode="after")
    @classmethod
    def _no_nested_repeater(cls, value: FieldKind) -> FieldKind:
        if value == FieldKind.REPEATER:
            logger.warning("Repeater nested inside a repeater item, rendering as text")
            return FieldKind.TEXT
        return value


class RepeaterField(FieldSchema):
    """A reorderable list of items that all share ``item_schema``."""
    item_schema: List[ScalarField] = Field(
        default_factory=list, validation_alias=AliasChoices("itemSchema", "item_schema")
    )

    @field_validator("item_schema", mode="before")
    @classmethod
    def _drop_non_mappings(cls, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


AnyField = Union[ScalarField, RepeaterField]


def parse_field(raw: Dict[str, Any]) -> AnyField:
    """Build the right field variant for a raw schema mapping."""
    kind = normalize_kind(raw.get("kind", raw.get("type")))
    if kind == FieldKind.REPEATER:
        return RepeaterField.model_validate(raw)
    return ScalarField.model_validate(raw)


class FormSchema(BaseModel):
    """A whole form: where it binds, whether it autosaves, and its fields."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    model_root: str = Field(default="", validation_alias=AliasChoices("modelRoot", "model_root"))
    autosave: bool = False
    fields: List[AnyField] = Field(default_factory=list)


def parse_form_schema(raw: Any, default_autosave: bool = False) -> FormSchema:
    """
    Parse the ``form`` block of a note's front matter.

    Args:
        raw: The value stored under the form key (may be None or malformed)
        default_autosave: Used when the schema does not set ``autosave``

    Returns:
        FormSchema instance

    Raises:
        SchemaError: If a field cannot be bound (no path) or has invalid attributes
    """
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning(f"Form schema is not a mapping ({type(raw).__name__}), using empty form")
        raw = {}

    model_root = raw.get("modelRoot", raw.get("model_root", ""))
    model_root = "" if model_root is None else str(model_root).strip()

    autosave = raw.get("autosave")
    autosave = default_autosave if autosave is None else bool(autosave)

    raw_fields = raw.get("fields")
    if not isinstance(raw_fields, list):
        if raw_fields is not None:
            logger.warning("Form 'fields' is not a list, using empty form")
        raw_fields = []

    fields: List[AnyField] = []
    for index, raw_field in enumerate(raw_fields):
        if not isinstance(raw_field, dict):
            logger.warning(f"Skipping field #{index + 1}: not a mapping")
            continue
        try:
            field = parse_field(raw_field)
        except ValidationError as e:
            raise SchemaError(f"Field #{index + 1} is invalid: {e}", field_index=index) from e
        if not field.path:
            raise SchemaError(f"Field #{index + 1} has no path", field_index=index)
        fields.append(field)

    schema = FormSchema(model_root=model_root, autosave=autosave, fields=fields)
    logger.debug(f"Parsed form schema: root='{model_root}', autosave={autosave}, {len(fields)} fields")
    return schema
