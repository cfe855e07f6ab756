"""
Settings that shape how forms are rendered and saved.

This is the settings provider the engine consults, for instance for the
autosave default when a schema does not specify one.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List
import logging

from .schema_model import DEFAULT_FORM_KEY

logger = logging.getLogger(__name__)

DEFAULT_LABEL_COLUMN_RATIO = [1, 3]


@dataclass
class FormSettings:
    """
    Form rendering settings.

    Attributes:
        default_autosave: Autosave mode for schemas without an ``autosave`` key
        label_column_ratio: Relative widths of the label and control columns
        form_key: Front matter key holding the form schema
        vault_root: Directory of Markdown notes
    """
    default_autosave: bool = False
    label_column_ratio: List[int] = field(default_factory=lambda: list(DEFAULT_LABEL_COLUMN_RATIO))
    form_key: str = DEFAULT_FORM_KEY
    vault_root: Path = Path("vault")

    @classmethod
    def from_config(cls, config: dict) -> 'FormSettings':
        """
        Create FormSettings from a configuration dictionary.

        Example:
            config = {'forms': {'default_autosave': True}}
            settings = FormSettings.from_config(config)
        """
        forms = config.get('forms', {}) or {}
        vault = config.get('vault', {}) or {}

        ratio = forms.get('label_column_ratio', DEFAULT_LABEL_COLUMN_RATIO)
        if not _is_valid_ratio(ratio):
            logger.warning(f"Invalid label_column_ratio {ratio!r}, using {DEFAULT_LABEL_COLUMN_RATIO}")
            ratio = DEFAULT_LABEL_COLUMN_RATIO

        return cls(
            default_autosave=bool(forms.get('default_autosave', False)),
            label_column_ratio=list(ratio),
            form_key=str(vault.get('form_key', DEFAULT_FORM_KEY) or DEFAULT_FORM_KEY),
            vault_root=Path(vault.get('root', 'vault')),
        )

    def to_config(self) -> Dict[str, Any]:
        """Config sections holding these settings, ready to merge and save."""
        return {
            'forms': {
                'default_autosave': self.default_autosave,
                'label_column_ratio': list(self.label_column_ratio),
            },
            'vault': {
                'root': str(self.vault_root),
                'form_key': self.form_key,
            },
        }


def _is_valid_ratio(ratio: Any) -> bool:
    if not isinstance(ratio, (list, tuple)) or len(ratio) != 2:
        return False
    return all(isinstance(part, (int, float)) and not isinstance(part, bool) and part > 0 for part in ratio)
