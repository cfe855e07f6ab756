"""
Reactive render/bind engine for schema-driven forms.

A FormSession owns one staged copy of the document data at the form's model
root. Rendering walks the schema and builds one control per field; every
control writes into the staged model through its bind path, and every write
triggers a save (autosave) or the dirty flag, followed by a visibility sweep
over all registered fields. Nothing reaches the live document until save().

The engine is UI-agnostic: ``form_view`` draws the controls built here and
forwards widget changes to ``FieldControl.handle_input`` and the repeater
actions.
"""

import copy
import uuid
import threading
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Callable, Dict, Iterator, List, Optional, Union
import logging

from .coercion import (
    coerce_scalar,
    parse_csv_numbers,
    parse_csv_text,
    parse_number,
    to_csv_numbers,
    to_csv_text,
)
from .exceptions import FormError, HostWriteError
from .path_accessor import get_at_path, join_path, set_at_path
from .reconciler import build_updater
from .schema_model import (
    AnyField,
    FieldKind,
    FormSchema,
    RepeaterField,
    parse_form_schema,
)
from .validation import collect_invalid
from .visibility import is_visible

logger = logging.getLogger(__name__)

STATUS_READY = "Ready"
STATUS_DIRTY = "Unsaved changes"
STATUS_SAVED = "Saved ✓"
STATUS_INPUT_ERRORS = "Fix errors before saving"


class SaveStatus:
    """Save outcome constants."""
    SAVED = "saved"
    BLOCKED = "blocked"
    QUEUED = "queued"


@dataclass
class SaveResult:
    """Outcome of FormSession.save()."""
    status: str
    invalid_paths: List[str] = dataclass_field(default_factory=list)

    @property
    def saved(self) -> bool:
        return self.status == SaveStatus.SAVED


@dataclass
class VisibilityNode:
    """
    Links a rendered surface (label and control) to its visibleIf rule.

    ``item_base`` is the model path of the enclosing repeater item for
    item fields, so item-local rules resolve against their own item.
    """
    surface: Any
    field: AnyField
    bind_path: str
    item_base: Optional[str] = None
    visible: bool = True


class FieldControl:
    """One label + editable control bound to a scalar field."""

    def __init__(self, session: 'FormSession', field: AnyField, model_path: str,
                 item_base: Optional[str] = None):
        self.session = session
        self.field = field
        self.model_path = model_path
        self.item_base = item_base
        self.bind_path = join_path(session.model_root, model_path)
        self.visible = True
        self.error: Optional[str] = None
        self.raw_input: Any = self.display_value()

    @property
    def kind(self) -> FieldKind:
        return self.field.kind

    @property
    def label(self) -> str:
        return self.field.display_label

    @property
    def value(self) -> Any:
        return get_at_path(self.session.staged_model, self.model_path)

    def display_value(self) -> Any:
        """Current staged value converted for display in this kind of control."""
        value = self.value
        kind = self.kind

        if kind == FieldKind.CSV_NUMBER:
            return to_csv_numbers(value if isinstance(value, list) else [])
        if kind == FieldKind.CSV_TEXT:
            return to_csv_text(value if isinstance(value, list) else [])
        if kind == FieldKind.CHECKBOX:
            return bool(value)
        if kind == FieldKind.NUMBER:
            return parse_number(value)
        if kind == FieldKind.SELECT:
            return None if value is None else str(value)
        return "" if value is None else str(value)

    def handle_input(self, raw: Any) -> None:
        """
        Apply a change coming from the UI.

        CSV number fields keep the raw text and store only the valid tokens,
        recording the rejected ones as this control's error.
        """
        kind = self.kind
        self.raw_input = raw

        if kind == FieldKind.CSV_NUMBER:
            parsed = parse_csv_numbers(raw)
            value: Any = parsed.values
            self.error = f"Invalid numbers: {', '.join(parsed.invalid)}" if parsed.invalid else None
        elif kind == FieldKind.CSV_TEXT:
            value = parse_csv_text(raw)
        elif kind in (FieldKind.SELECT, FieldKind.TEXTAREA):
            value = None if raw is None else str(raw)
        else:
            value = coerce_scalar(kind.value, raw)

        logger.debug(f"[handle_input] {self.bind_path} <- {value!r}")
        self.session.apply_change(self.model_path, value)


class RepeaterItem:
    """One element of a repeater, with a control per item-schema field."""

    def __init__(self, repeater: 'RepeaterControl', index: int):
        self.repeater = repeater
        self.index = index
        self.model_path = f"{repeater.model_path}.{index}"
        self.controls = [
            FieldControl(repeater.session, sub_field, join_path(self.model_path, sub_field.path),
                         item_base=self.model_path)
            for sub_field in repeater.field.item_schema
        ]

    @property
    def tag(self) -> str:
        return f"#{self.index + 1}"

    @property
    def value(self) -> Any:
        return get_at_path(self.repeater.session.staged_model, self.model_path)

    def move_up(self) -> bool:
        return self.repeater.move_up(self.index)

    def move_down(self) -> bool:
        return self.repeater.move_down(self.index)

    def remove(self) -> bool:
        return self.repeater.remove(self.index)


class RepeaterControl:
    """
    A reorderable list of items bound to an array in the staged model.

    Item bind paths embed the item index, so every structural change
    (add, move, remove) tears down and rebuilds all items.
    """

    def __init__(self, session: 'FormSession', field: RepeaterField, model_path: str):
        self.session = session
        self.field = field
        self.model_path = model_path
        self.bind_path = join_path(session.model_root, model_path)
        self.visible = True
        self.generation = 0
        self.items: List[RepeaterItem] = []
        self._item_nodes: List[VisibilityNode] = []

        if not isinstance(get_at_path(session.staged_model, model_path), list):
            session.staged_model = set_at_path(session.staged_model, model_path, [])

        self.rebuild_items()

    @property
    def kind(self) -> FieldKind:
        return FieldKind.REPEATER

    @property
    def label(self) -> str:
        return self.field.display_label

    @property
    def value(self) -> List[Any]:
        value = get_at_path(self.session.staged_model, self.model_path)
        return value if isinstance(value, list) else []

    def rebuild_items(self) -> None:
        """Drop all item controls and their visibility nodes, then build them again."""
        self.session.unregister_nodes(self._item_nodes)
        self._item_nodes = []
        self.generation += 1
        self.items = []

        for index in range(len(self.value)):
            item = RepeaterItem(self, index)
            self.items.append(item)
            for control in item.controls:
                node = self.session.register_node(control, control.field, item_base=item.model_path)
                self._item_nodes.append(node)

        logger.debug(f"[rebuild_items] {self.bind_path}: {len(self.items)} items, generation {self.generation}")

    def blank_item(self) -> Dict[str, Any]:
        blank: Dict[str, Any] = {}
        for sub_field in self.field.item_schema:
            blank = set_at_path(blank, sub_field.path, sub_field.blank_value())
        return blank

    def add_item(self) -> None:
        array = self.value
        array.append(self.blank_item())
        self.session.staged_model = set_at_path(self.session.staged_model, self.model_path, array)
        self._structure_changed()

    def move_up(self, index: int) -> bool:
        array = self.value
        if index <= 0 or index >= len(array):
            return False
        array[index - 1], array[index] = array[index], array[index - 1]
        self._structure_changed()
        return True

    def move_down(self, index: int) -> bool:
        array = self.value
        if index < 0 or index >= len(array) - 1:
            return False
        array[index + 1], array[index] = array[index], array[index + 1]
        self._structure_changed()
        return True

    def remove(self, index: int) -> bool:
        array = self.value
        if index < 0 or index >= len(array):
            return False
        del array[index]
        self._structure_changed()
        return True

    def _structure_changed(self) -> None:
        self.rebuild_items()
        self.session.notify_mutation()


Control = Union[FieldControl, RepeaterControl]


class FormSession:
    """
    A single rendered form: staged model, controls and visibility registry.

    The session is also the handle exposed to the host, via ``save()``,
    ``mark_dirty()`` and ``get_current_model()``.
    """

    def __init__(self, schema: FormSchema, metadata: Optional[Dict[str, Any]],
                 document_id: Optional[str] = None, host: Any = None):
        self.schema = schema
        self.document_id = document_id
        self.host = host
        self.model_root = schema.model_root
        self.autosave = schema.autosave
        self.staged_model = self._clone_subtree(metadata or {}, schema.model_root)
        self.controls: List[Control] = []
        self.visibility_nodes: List[VisibilityNode] = []
        self.dirty = False
        self.status = STATUS_READY
        self.last_error: Optional[Exception] = None
        self.invalid_paths: List[str] = []
        self.render_generation = 0
        self.key = uuid.uuid4().hex[:8]
        self._listeners: List[Callable[['FormSession'], None]] = []
        self._save_lock = threading.Lock()
        self._resave_requested = False

    @staticmethod
    def _clone_subtree(metadata: Dict[str, Any], model_root: str) -> Dict[str, Any]:
        subtree = get_at_path(metadata, model_root)
        if not isinstance(subtree, dict):
            return {}
        return copy.deepcopy(subtree)

    # ------------------------------------------------------------------
    # Rendering and visibility
    # ------------------------------------------------------------------

    def render(self) -> 'FormSession':
        """Build one control per top-level field and run the first visibility sweep."""
        self.render_generation += 1
        self.visibility_nodes = []
        self.controls = []

        for field in self.schema.fields:
            if isinstance(field, RepeaterField):
                control: Control = RepeaterControl(self, field, field.path)
            else:
                control = FieldControl(self, field, field.path)
            self.controls.append(control)
            self.register_node(control, field)

        self.update_visibility()
        logger.info(f"Rendered form for {self.document_id}: {len(self.controls)} fields, "
                    f"{len(self.visibility_nodes)} visibility nodes")
        return self

    def register_node(self, surface: Any, field: AnyField, item_base: Optional[str] = None) -> VisibilityNode:
        node = VisibilityNode(surface=surface, field=field, bind_path=surface.bind_path, item_base=item_base)
        self.visibility_nodes.append(node)
        return node

    def unregister_nodes(self, nodes: List[VisibilityNode]) -> None:
        if not nodes:
            return
        stale = {id(node) for node in nodes}
        self.visibility_nodes = [node for node in self.visibility_nodes if id(node) not in stale]

    def update_visibility(self) -> None:
        """Re-evaluate every registered field against the current staged model."""
        for node in self.visibility_nodes:
            node.visible = is_visible(node.field.visible_if, self.staged_model, node.item_base)
            node.surface.visible = node.visible

    def iter_controls(self) -> Iterator[FieldControl]:
        """All leaf controls, including those inside repeater items."""
        for control in self.controls:
            if isinstance(control, RepeaterControl):
                for item in control.items:
                    yield from item.controls
            else:
                yield control

    def find_control(self, bind_path: str) -> Optional[FieldControl]:
        for control in self.iter_controls():
            if control.bind_path == bind_path:
                return control
        return None

    def is_visible(self, bind_path: str) -> bool:
        for node in self.visibility_nodes:
            if node.bind_path == bind_path:
                return node.visible
        return False

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[['FormSession'], None]) -> None:
        """Register a callback run after every staged-model mutation."""
        self._listeners.append(listener)

    def has_input_errors(self) -> bool:
        return any(control.error for control in self.iter_controls())

    def apply_change(self, model_path: str, value: Any) -> None:
        self.staged_model = set_at_path(self.staged_model, model_path, value)
        self.notify_mutation()

    def notify_mutation(self) -> None:
        """Save or mark dirty, then sweep visibility, then tell listeners."""
        try:
            if self.autosave:
                self.save()
            else:
                self.mark_dirty()
        finally:
            self.update_visibility()
            for listener in self._listeners:
                listener(self)

    def mark_dirty(self) -> None:
        self.dirty = True
        self.status = STATUS_INPUT_ERRORS if self.has_input_errors() else STATUS_DIRTY

    def get_current_model(self) -> Dict[str, Any]:
        """Snapshot of the staged model."""
        return copy.deepcopy(self.staged_model)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self) -> SaveResult:
        """
        Validate and write the staged model through to the document.

        Saves are serialised: a call made while another save is writing is
        queued, and the running save writes once more with the latest staged
        model before returning.

        Returns:
            SaveResult with status saved, blocked (required fields missing
            with autosave off) or queued

        Raises:
            HostWriteError: If the host fails to write the document
        """
        if not self._save_lock.acquire(blocking=False):
            self._resave_requested = True
            logger.info(f"Save of {self.document_id} already in progress, queued")
            return SaveResult(SaveStatus.QUEUED)

        try:
            self._resave_requested = False
            result = self._save_once()
            while result.saved and self._resave_requested:
                self._resave_requested = False
                logger.debug(f"Running queued save for {self.document_id}")
                result = self._save_once()
        finally:
            self._save_lock.release()

        # A save queued after the last check but before the release
        if result.saved and self._resave_requested:
            logger.debug(f"Running save queued during release for {self.document_id}")
            return self.save()
        return result

    def _save_once(self) -> SaveResult:
        invalid = collect_invalid(self.schema.fields, self.model_root, self.staged_model)
        self.invalid_paths = invalid

        if invalid and not self.autosave:
            self.status = f"Please fill required fields ({len(invalid)})"
            logger.info(f"Save of {self.document_id} blocked: {len(invalid)} required fields empty")
            return SaveResult(SaveStatus.BLOCKED, invalid)

        if self.host is None or self.document_id is None:
            raise FormError("Form is not attached to a document",
                            context={'document_id': self.document_id})

        updater = build_updater(self.model_root, self.staged_model)
        try:
            self.host.mutate_structured_metadata(self.document_id, updater)
        except Exception as e:
            self.dirty = True
            self.last_error = e
            self.status = f"Save failed: {e}"
            logger.error(f"Failed to save form for {self.document_id}: {e}", exc_info=True)
            if isinstance(e, HostWriteError):
                raise
            raise HostWriteError(self.document_id, e) from e

        self.dirty = False
        self.last_error = None
        self.status = STATUS_INPUT_ERRORS if self.has_input_errors() else STATUS_SAVED
        logger.info(f"Saved form for {self.document_id}")
        return SaveResult(SaveStatus.SAVED, invalid)


def render_form(host: Any, document_id: str, settings: Any) -> FormSession:
    """
    Read a document's metadata once and render its form.

    Args:
        host: Object providing get_structured_metadata / mutate_structured_metadata
        document_id: Document to render
        settings: FormSettings (form key and autosave default)

    Returns:
        Rendered FormSession

    Raises:
        SchemaError: If the schema cannot be bound
    """
    metadata = host.get_structured_metadata(document_id) or {}
    raw_schema = get_at_path(metadata, settings.form_key)
    schema = parse_form_schema(raw_schema, default_autosave=settings.default_autosave)
    session = FormSession(schema, metadata, document_id=document_id, host=host)
    return session.render()
