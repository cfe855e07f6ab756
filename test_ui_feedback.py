"""
Unit tests for ui_feedback module.
"""

from unittest.mock import patch, MagicMock

from yaml_form.ui_feedback import Notify, show_loading


class TestNotify:
    """Test class for toast notifications."""

    @patch('yaml_form.ui_feedback.st')
    def test_toast_is_used_when_available(self, mock_st):
        Notify.success("Saved")
        mock_st.toast.assert_called_once_with("Saved", icon='✅')
        mock_st.success.assert_not_called()

    @patch('yaml_form.ui_feedback.st')
    def test_fallback_without_toast(self, mock_st):
        del mock_st.toast

        Notify.error("Broken")
        Notify.warn("Careful")

        mock_st.error.assert_called_once_with("❌ Broken")
        mock_st.warning.assert_called_once_with("⚠️ Careful")

    @patch('yaml_form.ui_feedback.st')
    def test_info_uses_info_icon(self, mock_st):
        Notify.info("Note reloaded")
        mock_st.toast.assert_called_once_with("Note reloaded", icon='ℹ️')


class TestShowLoading:
    """Test class for the loading spinner."""

    @patch('yaml_form.ui_feedback.st')
    def test_spinner_context_manager(self, mock_st):
        mock_context = MagicMock()
        mock_st.spinner.return_value = mock_context

        with show_loading("Opening vault..."):
            pass

        mock_st.spinner.assert_called_once_with("Opening vault...")
        mock_context.__enter__.assert_called_once()
        mock_context.__exit__.assert_called_once()
