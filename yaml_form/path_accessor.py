"""
Dot-path access over nested mappings.

Paths look like ``form_data.sets.0.reps``. Integer segments index into lists
so repeater items can be addressed positionally.
"""

from typing import Any, List, Optional


def _split(path: str) -> List[str]:
    return path.split(".")


def _step(node: Any, segment: str) -> Any:
    """Descend one segment, or return None when the segment cannot be followed."""
    if isinstance(node, dict):
        return node.get(segment)
    if isinstance(node, list):
        index = _list_index(node, segment)
        return None if index is None else node[index]
    return None


def get_at_path(root: Any, path: Optional[str]) -> Any:
    """
    Read the value at ``path``.

    Returns ``root`` for an empty path and None as soon as a segment is missing
    or a non-container is reached before the path is exhausted.
    """
    if not path:
        return root

    node = root
    for segment in _split(path):
        if not isinstance(node, (dict, list)):
            return None
        node = _step(node, segment)
    return node


def _list_index(node: List[Any], segment: str) -> Optional[int]:
    """Index for ``segment`` if it addresses an existing element of ``node``."""
    try:
        index = int(segment)
    except ValueError:
        return None
    if 0 <= index < len(node):
        return index
    return None


def _can_descend(node: Any, segment: str) -> bool:
    if isinstance(node, dict):
        return True
    return isinstance(node, list) and _list_index(node, segment) is not None


def _assign(node: Any, segment: str, value: Any) -> None:
    if isinstance(node, list):
        node[int(segment)] = value
    else:
        node[segment] = value


def set_at_path(root: Any, path: Optional[str], value: Any) -> Any:
    """
    Write ``value`` at ``path`` and return the (possibly replaced) root.

    Intermediate mappings are created as needed. Lists are walked only with an
    in-range integer segment; any other intermediate, including a list the
    next segment cannot index, is overwritten with ``{}``. An empty path
    returns ``value`` itself, so callers must always use the return value.
    """
    if not path:
        return value

    parts = _split(path)
    if not _can_descend(root, parts[0]):
        root = {}

    node = root
    for position, segment in enumerate(parts[:-1]):
        child = _step(node, segment)
        if not _can_descend(child, parts[position + 1]):
            child = {}
            _assign(node, segment, child)
        node = child

    _assign(node, parts[-1], value)
    return root


def join_path(root: Optional[str], sub: Optional[str]) -> str:
    """Join two dot-paths, skipping the separator when either side is empty."""
    if not root:
        return sub or ""
    if not sub:
        return root
    return f"{root}.{sub}"
