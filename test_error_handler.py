"""
Unit tests for error_handler module.
"""

from unittest.mock import patch, MagicMock

import pytest
import yaml

from yaml_form.error_handler import DIAGNOSTIC_PREFIX, ErrorHandler, ErrorType
from yaml_form.exceptions import DocumentNotFoundError, HostWriteError, SchemaError


class TestClassify:
    """Test cases for error classification."""

    @pytest.mark.parametrize("error,expected", [
        (SchemaError("bad"), ErrorType.SCHEMA),
        (yaml.YAMLError("bad yaml"), ErrorType.SCHEMA),
        (HostWriteError("a.md", OSError("disk full")), ErrorType.HOST_WRITE),
        (DocumentNotFoundError("a.md"), ErrorType.HOST_WRITE),
        (ValueError("bad"), ErrorType.USER_INPUT),
        (RuntimeError("boom"), ErrorType.SYSTEM),
    ])
    def test_classify(self, error, expected):
        assert ErrorHandler.classify(error) == expected

    def test_every_error_type_is_produced(self):
        errors = [SchemaError("bad"), HostWriteError("a.md", OSError("x")), ValueError("bad"), RuntimeError("x")]
        declared = {value for name, value in vars(ErrorType).items() if name.isupper()}
        assert {ErrorHandler.classify(error) for error in errors} == declared


class TestUserFriendlyMessages:
    """Test cases for user-friendly messages."""

    def test_schema_message(self):
        message = ErrorHandler.get_user_friendly_message(SchemaError("x"), ErrorType.SCHEMA)
        assert "form definition" in message
        assert "📋" in message

    def test_document_not_found_message(self):
        message = ErrorHandler.get_user_friendly_message(DocumentNotFoundError("a.md"), ErrorType.HOST_WRITE)
        assert "could not be found" in message

    def test_unknown_type_falls_back_to_system(self):
        message = ErrorHandler.get_user_friendly_message(RuntimeError("x"), "nonsense")
        assert "unexpected error" in message.lower()


class TestHandleError:
    """Test cases for handle_error."""

    @patch('yaml_form.error_handler.st')
    def test_shows_message_and_suggestions(self, mock_st):
        mock_st.expander.return_value = MagicMock()
        error = HostWriteError("a.md", OSError("disk full"))

        ErrorHandler.handle_error(error, "saving a.md")

        mock_st.error.assert_called_once()
        assert "could not be saved" in mock_st.error.call_args[0][0]
        assert "Press Save again to retry" in mock_st.markdown.call_args[0][0]
        mock_st.expander.assert_called_once_with("🔍 Technical Details", expanded=False)

    @patch('yaml_form.error_handler.st')
    def test_custom_user_message(self, mock_st):
        mock_st.expander.return_value = MagicMock()

        ErrorHandler.handle_error(RuntimeError("boom"), "startup", user_message="Custom")

        mock_st.error.assert_called_once_with("Custom")
        mock_st.markdown.assert_not_called()


class TestInlineDiagnostic:
    """Test cases for render_inline_diagnostic."""

    @patch('yaml_form.error_handler.st')
    def test_prefix_and_traceback(self, mock_st):
        mock_st.expander.return_value = MagicMock()
        try:
            raise SchemaError("Field #2 has no path", field_index=1)
        except SchemaError as e:
            ErrorHandler.render_inline_diagnostic(e, "a.md")

        mock_st.error.assert_called_once_with(f"{DIAGNOSTIC_PREFIX}Field #2 has no path")
        assert "SchemaError" in mock_st.code.call_args[0][0]
