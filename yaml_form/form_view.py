"""
Streamlit rendering of form sessions.

FormView draws the controls a FormSession built and wires each widget's
on_change callback back to the engine. Widget keys embed the session key and
a generation number, so widgets are recreated (and re-read from the staged
model) whenever a repeater rebuilds its items.
"""

import streamlit as st
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from dateutil import parser as date_parser

from .diff_utils import calculate_diff, format_change
from .error_handler import ErrorHandler
from .exceptions import FormError
from .form_session import (
    FieldControl,
    FormSession,
    RepeaterControl,
    RepeaterItem,
    SaveStatus,
    render_form,
)
from .form_settings import FormSettings
from .path_accessor import get_at_path
from .schema_model import FieldKind
from .session_manager import SessionManager
from .ui_feedback import Notify

logger = logging.getLogger(__name__)

CSV_NUMBER_PLACEHOLDER = "8, 8, 6, 6"
CSV_TEXT_PLACEHOLDER = "a, b, c"
TIME_FORMAT = "%H:%M"
MIN_TEXT_AREA_HEIGHT = 68
TEXT_AREA_ROW_HEIGHT = 24
MIN_DATE = date(1900, 1, 1)
MAX_DATE = date(2100, 12, 31)


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date_parser.parse(str(value)).date()
    except (ValueError, OverflowError) as e:
        logger.warning(f"Failed to parse date string '{value}': {e}")
        return None


def _parse_time(value: Any) -> Optional[time]:
    if not value:
        return None
    try:
        return date_parser.parse(str(value)).time()
    except (ValueError, OverflowError) as e:
        logger.warning(f"Failed to parse time string '{value}': {e}")
        return None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return date_parser.parse(str(value))
    except (ValueError, OverflowError) as e:
        logger.warning(f"Failed to parse datetime string '{value}': {e}")
        return None


class FormView:
    """Draws a FormSession with Streamlit widgets."""

    @staticmethod
    def mount(host: Any, document_id: str, settings: FormSettings) -> Optional[FormSession]:
        """
        Render the form of a document, reusing the open session across reruns.

        Any exception while building or drawing the form is shown as an inline
        diagnostic in place of the form.

        Returns:
            The mounted FormSession, or None if mounting failed
        """
        try:
            form_session = SessionManager.get_form_session(document_id)
            if form_session is None:
                form_session = render_form(host, document_id, settings)
                SessionManager.set_form_session(document_id, form_session)
            FormView.render(form_session, settings)
            return form_session
        except Exception as e:
            ErrorHandler.render_inline_diagnostic(e, document_id)
            return None

    @staticmethod
    def render(form_session: FormSession, settings: FormSettings) -> None:
        """Render every visible top-level field, then the status bar."""
        if not form_session.controls:
            st.info("This note's form has no fields.")

        for control in form_session.controls:
            if not control.visible:
                continue

            label_col, control_col = st.columns(settings.label_column_ratio)
            with label_col:
                FormView._render_label(control)
            with control_col:
                if isinstance(control, RepeaterControl):
                    FormView._render_repeater(form_session, control)
                else:
                    key = FormView.widget_key(form_session, form_session.render_generation, control.bind_path)
                    FormView._render_control(form_session, control, key, label_visibility="collapsed")

        FormView._render_status_bar(form_session)
        FormView._render_pending_changes(form_session)

    @staticmethod
    def widget_key(form_session: FormSession, generation: int, bind_path: str) -> str:
        return f"yf_{form_session.key}_{generation}_{bind_path}"

    @staticmethod
    def _render_label(control: Any) -> None:
        marker = " \\*" if control.field.required else ""
        st.markdown(f"**{control.label}**{marker}")

    @staticmethod
    def _seed_widget_state(key: str, value: Any) -> None:
        if key not in st.session_state:
            st.session_state[key] = value

    @staticmethod
    def _render_control(form_session: FormSession, control: FieldControl, key: str,
                        label_visibility: str = "visible") -> None:
        """Render a single leaf control based on its field kind."""
        field = control.field
        kind = control.kind
        kwargs: Dict[str, Any] = {
            'label': control.label,
            'key': key,
            'label_visibility': label_visibility,
            'on_change': FormView._on_change,
            'args': (form_session, control, key),
        }

        if kind == FieldKind.DATETIME:
            FormView._render_datetime(form_session, control, key, label_visibility)
        elif kind == FieldKind.NUMBER:
            current = control.display_value()
            FormView._seed_widget_state(key, None if current is None else float(current))
            st.number_input(
                min_value=None if field.min is None else float(field.min),
                max_value=None if field.max is None else float(field.max),
                step=float(field.step) if field.step else 1.0,
                placeholder=field.placeholder,
                **kwargs
            )
        elif kind == FieldKind.DATE:
            FormView._seed_widget_state(key, _parse_date(control.value))
            st.date_input(min_value=MIN_DATE, max_value=MAX_DATE, **kwargs)
        elif kind == FieldKind.TIME:
            FormView._seed_widget_state(key, _parse_time(control.value))
            st.time_input(**kwargs)
        elif kind == FieldKind.CHECKBOX:
            FormView._seed_widget_state(key, control.display_value())
            st.checkbox(**kwargs)
        elif kind == FieldKind.SELECT:
            current = control.display_value()
            FormView._seed_widget_state(key, current if current in field.options else None)
            st.selectbox(options=field.options, placeholder=field.placeholder or "Choose an option", **kwargs)
        elif kind == FieldKind.TEXTAREA:
            FormView._seed_widget_state(key, control.display_value())
            height = max(MIN_TEXT_AREA_HEIGHT, (field.rows or 3) * TEXT_AREA_ROW_HEIGHT)
            st.text_area(placeholder=field.placeholder, height=height, **kwargs)
        elif kind == FieldKind.CSV_NUMBER:
            FormView._seed_widget_state(key, control.display_value())
            st.text_input(placeholder=field.placeholder or CSV_NUMBER_PLACEHOLDER, **kwargs)
            if control.error:
                st.caption(f":red[{control.error}]")
        elif kind == FieldKind.CSV_TEXT:
            FormView._seed_widget_state(key, control.display_value())
            st.text_input(placeholder=field.placeholder or CSV_TEXT_PLACEHOLDER, **kwargs)
        else:
            FormView._seed_widget_state(key, control.display_value())
            st.text_input(placeholder=field.placeholder, **kwargs)

        if control.bind_path in form_session.invalid_paths:
            st.caption(":red[Required]")

    @staticmethod
    def _render_datetime(form_session: FormSession, control: FieldControl, key: str,
                         label_visibility: str) -> None:
        """Datetime as a date + time pair, stored as ``YYYY-MM-DDTHH:MM``."""
        current = _parse_datetime(control.value)
        date_key, time_key = f"{key}_date", f"{key}_time"
        FormView._seed_widget_state(date_key, current.date() if current else None)
        FormView._seed_widget_state(time_key, current.time() if current else None)

        col1, col2 = st.columns(2)
        with col1:
            st.date_input(
                f"{control.label} (Date)",
                min_value=MIN_DATE,
                max_value=MAX_DATE,
                key=date_key,
                label_visibility=label_visibility,
                on_change=FormView._on_datetime_change,
                args=(form_session, control, date_key, time_key),
            )
        with col2:
            st.time_input(
                f"{control.label} (Time)",
                key=time_key,
                label_visibility=label_visibility,
                on_change=FormView._on_datetime_change,
                args=(form_session, control, date_key, time_key),
            )

    @staticmethod
    def _render_repeater(form_session: FormSession, repeater: RepeaterControl) -> None:
        prefix = FormView.widget_key(form_session, repeater.generation, repeater.bind_path)

        st.button("Add", key=f"{prefix}_add", on_click=FormView._on_action,
                  args=(form_session, repeater.add_item))

        for item in repeater.items:
            FormView._render_repeater_item(form_session, repeater, item, prefix)

    @staticmethod
    def _render_repeater_item(form_session: FormSession, repeater: RepeaterControl,
                              item: RepeaterItem, prefix: str) -> None:
        last_index = len(repeater.items) - 1
        item_prefix = f"{prefix}_{item.index}"

        with st.container(border=True):
            tag_col, up_col, down_col, remove_col = st.columns([4, 1, 1, 2])
            with tag_col:
                st.markdown(f"**{item.tag}**")
            with up_col:
                st.button("↑", key=f"{item_prefix}_up", disabled=item.index == 0,
                          on_click=FormView._on_action, args=(form_session, item.move_up))
            with down_col:
                st.button("↓", key=f"{item_prefix}_down", disabled=item.index == last_index,
                          on_click=FormView._on_action, args=(form_session, item.move_down))
            with remove_col:
                st.button("Remove", key=f"{item_prefix}_remove",
                          on_click=FormView._on_action, args=(form_session, item.remove))

            cols = st.columns(2)
            col_index = 0
            for control in item.controls:
                if not control.visible:
                    continue
                with cols[col_index % 2]:
                    key = FormView.widget_key(form_session, repeater.generation, control.bind_path)
                    FormView._render_control(form_session, control, key)
                col_index += 1

    @staticmethod
    def _render_status_bar(form_session: FormSession) -> None:
        status_col, save_col = st.columns([3, 1])
        with status_col:
            st.caption(form_session.status)
        with save_col:
            st.button(
                "Save",
                key=f"yf_{form_session.key}_save",
                type="primary",
                disabled=not form_session.dirty,
                on_click=FormView._on_save,
                args=(form_session,),
            )

    @staticmethod
    def _render_pending_changes(form_session: FormSession) -> None:
        """Show what saving would change, compared to the note on disk."""
        if not form_session.dirty or form_session.host is None:
            return

        metadata = form_session.host.get_structured_metadata(form_session.document_id)
        live = get_at_path(metadata, form_session.model_root)
        changes = calculate_diff(live if isinstance(live, dict) else {}, form_session.staged_model)
        if not changes:
            return

        with st.expander(f"Pending changes ({len(changes)})"):
            for change in changes:
                st.markdown(format_change(change))

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    @staticmethod
    def widget_to_raw(kind: FieldKind, value: Any) -> Any:
        """Convert a widget value into the raw input the engine expects."""
        if kind == FieldKind.DATE:
            return value.isoformat() if isinstance(value, date) else ""
        if kind == FieldKind.TIME:
            return value.strftime(TIME_FORMAT) if isinstance(value, time) else ""
        return value

    @staticmethod
    def _on_change(form_session: FormSession, control: FieldControl, key: str) -> None:
        raw = FormView.widget_to_raw(control.kind, st.session_state.get(key))
        FormView._on_action(form_session, lambda: control.handle_input(raw))

    @staticmethod
    def _on_datetime_change(form_session: FormSession, control: FieldControl,
                            date_key: str, time_key: str) -> None:
        date_part = st.session_state.get(date_key)
        time_part = st.session_state.get(time_key)
        if isinstance(date_part, date) and isinstance(time_part, time):
            raw = datetime.combine(date_part, time_part).strftime(f"%Y-%m-%dT{TIME_FORMAT}")
        elif isinstance(date_part, date):
            raw = date_part.isoformat()
        else:
            raw = ""
        FormView._on_action(form_session, lambda: control.handle_input(raw))

    @staticmethod
    def _on_action(form_session: FormSession, action: Callable[[], Any]) -> None:
        """Run an engine action from a widget callback, reporting failures as toasts."""
        try:
            action()
        except FormError as e:
            logger.error(f"Form action failed for {form_session.document_id}: {e}")
            Notify.error(form_session.status if form_session.last_error else str(e))

    @staticmethod
    def _on_save(form_session: FormSession) -> None:
        try:
            result = form_session.save()
        except FormError as e:
            logger.error(f"Save failed for {form_session.document_id}: {e}")
            Notify.error(form_session.status)
            return

        if result.status == SaveStatus.SAVED:
            Notify.success(f"Saved {form_session.document_id}")
        elif result.status == SaveStatus.BLOCKED:
            Notify.warn(form_session.status)

    @staticmethod
    def save_all(form_sessions: List[FormSession]) -> Tuple[int, int, int]:
        """
        Save every open form with unsaved changes.

        Returns:
            Tuple of (saved, blocked, failed) counts
        """
        saved = blocked = failed = 0
        for form_session in form_sessions:
            if not form_session.dirty:
                continue
            try:
                result = form_session.save()
            except FormError as e:
                logger.error(f"Save all: {form_session.document_id} failed: {e}")
                failed += 1
                continue
            if result.saved:
                saved += 1
            elif result.status == SaveStatus.BLOCKED:
                blocked += 1
        logger.info(f"Save all: {saved} saved, {blocked} blocked, {failed} failed")
        return saved, blocked, failed
