"""
Session state management for the YAML form app.
Keeps the open document, its rendered form session and user preferences in
Streamlit session state across script reruns.
"""

import streamlit as st
from typing import Dict, Any, List, Optional
from datetime import datetime
import logging

from .form_session import FormSession

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages Streamlit session state for the YAML form app."""

    @staticmethod
    def initialize():
        """Initialize all session state variables with default values."""
        defaults = {
            'current_document': None,
            'form_sessions': {},
            'show_only_forms': True,
            'last_activity': datetime.now(),
            'session_id': None,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

        if not st.session_state.session_id:
            st.session_state.session_id = f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        logger.debug(f"Session initialized: {st.session_state.session_id}")

    @staticmethod
    def get_current_document() -> Optional[str]:
        """Get the currently open document id."""
        return st.session_state.get('current_document')

    @staticmethod
    def set_current_document(document_id: Optional[str]):
        """
        Open a document.

        Forms of other documents are discarded once they are clean. A form
        with unsaved edits stays open so Save all can still write it and
        returning to its note shows the edits.
        """
        old_document = st.session_state.get('current_document')

        if old_document != document_id:
            logger.info(f"Document changed: {old_document} -> {document_id}")

            sessions = st.session_state.get('form_sessions', {})
            for open_document, form_session in list(sessions.items()):
                if open_document == document_id:
                    continue
                if form_session.dirty:
                    logger.info(f"Keeping form for {open_document} open with unsaved changes")
                else:
                    SessionManager.discard_form_session(open_document)

            st.session_state.current_document = document_id
            SessionManager.update_activity()

    @staticmethod
    def get_form_session(document_id: str) -> Optional[FormSession]:
        """Get the rendered form session for a document, if any."""
        return st.session_state.get('form_sessions', {}).get(document_id)

    @staticmethod
    def set_form_session(document_id: str, form_session: FormSession):
        """Store a freshly rendered form session."""
        if 'form_sessions' not in st.session_state:
            st.session_state.form_sessions = {}
        st.session_state.form_sessions[document_id] = form_session
        SessionManager.update_activity()

    @staticmethod
    def discard_form_session(document_id: str):
        """Drop a document's form session, warning if it had unsaved edits."""
        sessions = st.session_state.get('form_sessions', {})
        form_session = sessions.pop(document_id, None)
        if form_session is not None and form_session.dirty:
            logger.warning(f"Discarding form for {document_id} with unsaved changes")

    @staticmethod
    def get_all_form_sessions() -> List[FormSession]:
        """All open form sessions, used by the save-all command."""
        return list(st.session_state.get('form_sessions', {}).values())

    @staticmethod
    def has_unsaved_changes() -> bool:
        """Check if any open form has unsaved changes."""
        return any(form_session.dirty for form_session in SessionManager.get_all_form_sessions())

    @staticmethod
    def get_show_only_forms() -> bool:
        return st.session_state.get('show_only_forms', True)

    @staticmethod
    def set_show_only_forms(value: bool):
        st.session_state.show_only_forms = value

    @staticmethod
    def update_activity():
        """Update last activity timestamp."""
        st.session_state.last_activity = datetime.now()

    @staticmethod
    def get_last_activity() -> datetime:
        """Get last activity timestamp."""
        return st.session_state.get('last_activity', datetime.now())

    @staticmethod
    def get_session_id() -> str:
        """Get the session ID."""
        return st.session_state.get('session_id', 'unknown')

    @staticmethod
    def get_session_info() -> Dict[str, Any]:
        """Get session information for debugging."""
        return {
            'session_id': SessionManager.get_session_id(),
            'current_document': SessionManager.get_current_document(),
            'open_forms': len(SessionManager.get_all_form_sessions()),
            'unsaved_changes': SessionManager.has_unsaved_changes(),
            'last_activity': SessionManager.get_last_activity().isoformat(),
        }
