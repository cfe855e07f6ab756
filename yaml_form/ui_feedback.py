"""
UI feedback utilities for the YAML form app.
Provides toast notifications and a loading spinner.
"""

import streamlit as st
from contextlib import contextmanager
import logging

logger = logging.getLogger(__name__)


class Notify:
    """
    Toast-first notification helper.
    Uses st.toast when available and falls back to inline messages otherwise.

    Usage:
    Notify.success("Saved")
    Notify.warn("Please fill required fields (1)")
    """

    _ICONS = {
        'success': '✅',
        'info': 'ℹ️',
        'warning': '⚠️',
        'error': '❌'
    }

    @staticmethod
    def _display_notification(message: str, notification_type: str = 'info') -> None:
        """Internal method to display notification based on type."""
        icon = Notify._ICONS.get(notification_type, 'ℹ️')

        if hasattr(st, 'toast'):
            st.toast(message, icon=icon)
            return

        full_message = f"{icon} {message}"
        if notification_type == 'success':
            st.success(full_message)
        elif notification_type == 'warning':
            st.warning(full_message)
        elif notification_type == 'error':
            st.error(full_message)
        else:
            st.info(full_message)

    @staticmethod
    def success(message: str) -> None:
        Notify._display_notification(message, 'success')

    @staticmethod
    def info(message: str) -> None:
        Notify._display_notification(message, 'info')

    @staticmethod
    def warn(message: str) -> None:
        Notify._display_notification(message, 'warning')

    @staticmethod
    def error(message: str) -> None:
        Notify._display_notification(message, 'error')


@contextmanager
def show_loading(message: str = "Loading..."):
    """Spinner shown while a block runs."""
    with st.spinner(message):
        yield
