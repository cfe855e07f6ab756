"""
Schema-driven forms for Markdown notes.

A note's YAML front matter carries both the form definition (under ``form``)
and the data the form edits.
"""

from .exceptions import FormError, SchemaError, DocumentNotFoundError, HostWriteError
from .form_session import FormSession, SaveResult, SaveStatus, render_form
from .form_settings import FormSettings
from .schema_model import FieldKind, FormSchema, parse_form_schema
from .vault import MarkdownVault

__version__ = "1.0.0"

__all__ = [
    'FormError',
    'SchemaError',
    'DocumentNotFoundError',
    'HostWriteError',
    'FormSession',
    'SaveResult',
    'SaveStatus',
    'render_form',
    'FormSettings',
    'FieldKind',
    'FormSchema',
    'parse_form_schema',
    'MarkdownVault',
]
