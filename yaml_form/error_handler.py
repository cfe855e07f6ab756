"""
Error handling utilities for the YAML form app.
Turns exceptions into user-friendly messages, logs them, and renders the
inline diagnostic shown in place of a form that failed to mount.
"""

import streamlit as st
import logging
import traceback
from typing import Optional

import yaml
from pydantic import ValidationError

from .exceptions import FormError, SchemaError, HostWriteError, DocumentNotFoundError

logger = logging.getLogger(__name__)

DIAGNOSTIC_PREFIX = "YAML Form: "


class ErrorType:
    """Error type constants."""
    SCHEMA = "schema"
    HOST_WRITE = "host_write"
    USER_INPUT = "user_input"
    SYSTEM = "system"


class ErrorHandler:
    """Error handling for the YAML form app."""

    @staticmethod
    def classify(error: Exception) -> str:
        """Pick the error type for an exception."""
        if isinstance(error, (SchemaError, ValidationError)):
            return ErrorType.SCHEMA
        if isinstance(error, (HostWriteError, DocumentNotFoundError)):
            return ErrorType.HOST_WRITE
        if isinstance(error, yaml.YAMLError):
            return ErrorType.SCHEMA
        if isinstance(error, (ValueError, TypeError)):
            return ErrorType.USER_INPUT
        return ErrorType.SYSTEM

    @staticmethod
    def get_user_friendly_message(error: Exception, error_type: str) -> str:
        """Generate user-friendly error messages based on error type."""
        error_messages = {
            ErrorType.SCHEMA: "📋 The form definition in this note could not be read. Please check the 'form' block.",
            ErrorType.HOST_WRITE: "💾 The note could not be saved. Your edits are kept; press Save to retry.",
            ErrorType.USER_INPUT: "⚠️ Invalid input provided. Please check your data and try again.",
            ErrorType.SYSTEM: "💻 An unexpected error occurred. Please try again."
        }
        if isinstance(error, DocumentNotFoundError):
            return "📁 The note could not be found. It may have been moved or deleted."
        return error_messages.get(error_type, error_messages[ErrorType.SYSTEM])

    @staticmethod
    def handle_error(
        error: Exception,
        context: str,
        error_type: Optional[str] = None,
        user_message: Optional[str] = None,
        show_details: bool = False
    ) -> None:
        """
        Log an error and show it to the user.

        Args:
            error: The exception that occurred
            context: Context where the error occurred
            error_type: Type of error (from ErrorType constants), classified if omitted
            user_message: Custom user-friendly message
            show_details: Whether to expand technical details
        """
        logger.error(f"Error in {context}: {str(error)}", exc_info=error)

        if error_type is None:
            error_type = ErrorHandler.classify(error)
        if not user_message:
            user_message = ErrorHandler.get_user_friendly_message(error, error_type)

        st.error(user_message)

        if isinstance(error, FormError) and error.recovery_suggestions:
            st.markdown("\n".join(f"- {suggestion}" for suggestion in error.recovery_suggestions))

        with st.expander("🔍 Technical Details", expanded=show_details):
            st.write(f"**Error Type:** {type(error).__name__}")
            st.write(f"**Context:** {context}")
            st.write(f"**Error Message:** {str(error)}")

    @staticmethod
    def render_inline_diagnostic(error: Exception, document_id: Optional[str] = None) -> None:
        """
        Render a failed mount in place of the form.

        The host page keeps working; only this form is replaced.
        """
        logger.error(f"Failed to render form for {document_id}: {error}", exc_info=error)
        st.error(f"{DIAGNOSTIC_PREFIX}{error}")

        if isinstance(error, FormError) and error.recovery_suggestions:
            st.markdown("\n".join(f"- {suggestion}" for suggestion in error.recovery_suggestions))

        with st.expander("🔍 Technical Details"):
            st.code("".join(traceback.format_exception(type(error), error, error.__traceback__)))
