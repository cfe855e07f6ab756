"""
Exception classes for the YAML form engine.

Every error carries a message, some context for logging, and a list of
recovery suggestions that the error handler can show to the user.
"""

import logging
from pathlib import Path
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)


class FormError(Exception):
    """
    Base exception for form engine errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class SchemaError(FormError):
    """
    Raised when a form schema cannot be turned into controls.

    Missing fields and unknown kinds are tolerated; this is reserved for
    definitions the engine cannot bind at all (e.g. a field without a path).
    """

    def __init__(self, message: str, field_index: Optional[int] = None):
        self.field_index = field_index

        context = {}
        if field_index is not None:
            context['field_index'] = field_index

        recovery_suggestions = [
            "Check the 'form' block in the note's front matter",
            "Every top-level field needs a non-empty 'path'",
            "Verify YAML indentation of the fields list"
        ]

        super().__init__(message, context, recovery_suggestions)


class DocumentNotFoundError(FormError):
    """Raised when a document id does not resolve to a note in the vault."""

    def __init__(self, document_id: str, vault_root: Optional[Path] = None):
        self.document_id = document_id
        self.vault_root = vault_root

        message = f"Document not found: {document_id}"
        context = {
            'document_id': document_id,
            'vault_root': str(vault_root) if vault_root else None
        }
        recovery_suggestions = [
            "The note may have been moved or deleted",
            "Reload the document list"
        ]

        super().__init__(message, context, recovery_suggestions)


class HostWriteError(FormError):
    """
    Raised when writing the staged model back into the document fails.

    The engine never retries; the dirty flag stays set so the user can.
    """

    def __init__(self, document_id: str, original_error: Exception,
                 message: Optional[str] = None):
        self.document_id = document_id
        self.original_error = original_error

        if message is None:
            message = f"Failed to write {document_id}: {original_error}"

        context = {
            'document_id': document_id,
            'original_error_type': type(original_error).__name__,
            'original_error_message': str(original_error)
        }

        recovery_suggestions = [
            "Check that the note is writable",
            "Fix any YAML syntax errors in the note's front matter",
            "Press Save again to retry"
        ]

        super().__init__(message, context, recovery_suggestions)
