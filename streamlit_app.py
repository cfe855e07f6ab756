"""
Main Streamlit application for YAML Form.
Renders the form defined in a Markdown note's front matter and writes edited
values back into the same note.
"""

import streamlit as st
import logging

from yaml_form.config_loader import (
    load_config,
    validate_config,
    get_form_settings,
    get_config_summary,
    save_form_settings,
)
from yaml_form.error_handler import ErrorHandler, ErrorType
from yaml_form.form_settings import FormSettings
from yaml_form.form_view import FormView
from yaml_form.session_manager import SessionManager
from yaml_form.ui_feedback import Notify, show_loading
from yaml_form.vault import MarkdownVault


def get_logging_level(level_str):
    """Map string logging level to logging constant."""
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }
    return level_map.get(str(level_str).upper(), logging.INFO)


# Load configuration early; load_config falls back to defaults on its own
config = load_config()
logging.basicConfig(
    level=get_logging_level(config['logging'].get('level', 'INFO')),
    format=config['logging'].get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
)
logger = logging.getLogger(__name__)
logger.info(f"Starting {config['app']['name']} version {config['app']['version']}")

if not validate_config(config):
    logger.warning("Configuration has invalid values, defaults are used where needed")

# Page configuration
st.set_page_config(
    page_title=config['ui'].get('page_title', 'YAML Form'),
    page_icon="📝",
    layout="wide",
    initial_sidebar_state="expanded"
)


def main():
    """Main application entry point."""
    try:
        settings = get_form_settings(config)
        with show_loading("Opening vault..."):
            vault = MarkdownVault(settings.vault_root)
            vault.ensure_exists(with_sample=config['vault'].get('create_sample', True))
            SessionManager.initialize()

        render_sidebar(vault, settings)
        render_main_content(vault, settings)

    except Exception as e:
        ErrorHandler.handle_error(e, "application startup", ErrorType.SYSTEM)


def render_sidebar(vault: MarkdownVault, settings: FormSettings):
    """Render the note list, form settings and save-all command."""
    with st.sidebar:
        st.header(config['ui'].get('sidebar_title', 'Notes'))

        show_only_forms = st.toggle(
            "Only notes with a form",
            value=SessionManager.get_show_only_forms(),
        )
        SessionManager.set_show_only_forms(show_only_forms)

        documents = vault.list_documents()
        if show_only_forms:
            documents = [doc for doc in documents if vault.has_form(doc, settings.form_key)]

        if not documents:
            st.info("No notes found in the vault.")
            SessionManager.set_current_document(None)
        else:
            current = SessionManager.get_current_document()
            selected = st.radio(
                "Note",
                options=documents,
                index=documents.index(current) if current in documents else 0,
                label_visibility="collapsed",
            )
            SessionManager.set_current_document(selected)

        col1, col2 = st.columns(2)
        with col1:
            if st.button("💾 Save all", use_container_width=True,
                         disabled=not SessionManager.has_unsaved_changes()):
                render_save_all()
        with col2:
            if st.button("🔄 Reload", use_container_width=True):
                current = SessionManager.get_current_document()
                if current:
                    SessionManager.discard_form_session(current)
                st.rerun()

        st.divider()
        render_settings_panel(settings)

        if config['app'].get('debug'):
            with st.expander("Session"):
                st.json(SessionManager.get_session_info())
                st.json(get_config_summary(config))


def render_settings_panel(settings: FormSettings):
    """Default autosave and label column ratio, persisted to config.yaml."""
    global config

    with st.expander("⚙️ Form settings"):
        default_autosave = st.toggle("Autosave by default", value=settings.default_autosave)
        label_width = st.slider(
            "Label column width",
            min_value=1,
            max_value=6,
            value=int(settings.label_column_ratio[0]),
        )
        control_width = st.slider(
            "Control column width",
            min_value=1,
            max_value=12,
            value=int(settings.label_column_ratio[1]),
        )

        if st.button("Save settings", use_container_width=True):
            settings.default_autosave = default_autosave
            settings.label_column_ratio = [label_width, control_width]
            config = save_form_settings(config, settings)
            Notify.success("Settings saved. Reload a note to apply the autosave default.")
            logger.info(f"Form settings updated: {settings.to_config()['forms']}")


def render_save_all():
    """Save every open form with unsaved changes."""
    saved, blocked, failed = FormView.save_all(SessionManager.get_all_form_sessions())
    if failed:
        Notify.error(f"{failed} form(s) failed to save")
    if blocked:
        Notify.warn(f"{blocked} form(s) have required fields left empty")
    if saved:
        Notify.success(f"Saved {saved} form(s)")


def render_main_content(vault: MarkdownVault, settings: FormSettings):
    """Render the selected note's form and body."""
    document_id = SessionManager.get_current_document()
    if not document_id:
        st.info("👈 Select a note from the sidebar")
        return

    st.subheader(f"📝 {document_id}")
    FormView.mount(vault, document_id, settings)

    st.divider()
    try:
        _, body = vault.read_document(document_id)
        st.markdown(body)
    except Exception as e:
        ErrorHandler.handle_error(e, f"reading {document_id}")


if __name__ == "__main__":
    main()
