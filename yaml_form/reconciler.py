"""
Write-through of the staged model into live document metadata.
"""

import copy
from typing import Any, Callable, Dict
import logging

from .path_accessor import get_at_path, set_at_path

logger = logging.getLogger(__name__)


def merge_staged(metadata: Dict[str, Any], model_root: str, staged: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge the staged model into ``metadata`` in place.

    With an empty model root each staged key overwrites the matching top-level
    key and every other key is left alone. Otherwise the mapping at the model
    root is shallow-merged with the staged model (staged keys win) and stored
    back at the root. Keys the schema does not cover survive either way.

    Args:
        metadata: Live document metadata (mutated)
        model_root: Dot-path of the form's model root, "" for the top level
        staged: The staged model

    Returns:
        The mutated metadata
    """
    staged_copy = copy.deepcopy(staged) if isinstance(staged, dict) else {}

    if not model_root:
        for key, value in staged_copy.items():
            metadata[key] = value
        logger.debug(f"Merged {len(staged_copy)} keys into document root")
        return metadata

    existing = get_at_path(metadata, model_root)
    if not isinstance(existing, dict):
        existing = {}
    merged = dict(existing)
    merged.update(staged_copy)
    set_at_path(metadata, model_root, merged)
    logger.debug(f"Merged {len(staged_copy)} keys into '{model_root}'")
    return metadata


def build_updater(model_root: str, staged: Dict[str, Any]) -> Callable[[Dict[str, Any]], None]:
    """Return a metadata updater that applies ``merge_staged`` with a frozen snapshot."""
    snapshot = copy.deepcopy(staged)

    def updater(metadata: Dict[str, Any]) -> None:
        merge_staged(metadata, model_root, snapshot)

    return updater
