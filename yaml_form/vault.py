"""
Vault of Markdown notes with YAML front matter.

This is the host the form engine reads schemas and data from and writes
saved values into. Document ids are POSIX paths relative to the vault root,
e.g. ``journal/2024-05-01.md``.
"""

import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

import yaml

from .exceptions import DocumentNotFoundError, HostWriteError

logger = logging.getLogger(__name__)

FRONT_MATTER_DELIMITER = "---"
FRONT_MATTER_END_MARKERS = ("---", "...")
NOTE_SUFFIX = ".md"

SAMPLE_NOTE_NAME = "daily-checkin.md"
SAMPLE_NOTE = """---
mood: Happy
form:
  modelRoot: ""
  autosave: false
  fields:
    - path: mood
      kind: select
      options: [Happy, Sad, Tired]
    - path: comment
      kind: textarea
      rows: 3
      visibleIf: {path: mood, equals: Sad}
    - path: title
      label: Title
      required: true
    - path: weights
      label: Weights (kg)
      kind: csvNumber
    - path: sets
      label: Sets
      kind: repeater
      itemSchema:
        - path: exercise
          required: true
        - path: reps
          kind: number
          min: 0
        - path: warmup
          kind: checkbox
        - path: note
          visibleIf: {path: warmup, isTruthy: true}
---
# Daily check-in

Edit the form above; values are written back into this note's front matter.
"""


class _FrontMatterLoader(yaml.SafeLoader):
    """SafeLoader that keeps dates and timestamps as plain strings."""


_FrontMatterLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != 'tag:yaml.org,2002:timestamp']
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def split_front_matter(text: str) -> Tuple[Optional[str], str]:
    """
    Split a note into its front matter YAML and body.

    Returns:
        Tuple of (front matter text or None when the note has none, body)
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].strip() in FRONT_MATTER_END_MARKERS:
            return "".join(lines[1:index]), "".join(lines[index + 1:])

    # Unterminated block: treat the whole note as body
    return None, text


def parse_front_matter(yaml_text: Optional[str]) -> Dict[str, Any]:
    """
    Parse front matter YAML into a mapping.

    Raises:
        yaml.YAMLError: If the YAML is malformed
        ValueError: If the front matter is not a mapping
    """
    if yaml_text is None or not yaml_text.strip():
        return {}
    data = yaml.load(yaml_text, Loader=_FrontMatterLoader)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Front matter must be a mapping, got {type(data).__name__}")
    return data


def compose_note(metadata: Dict[str, Any], body: str) -> str:
    """Render metadata and body back into note text."""
    if not metadata:
        return body
    dumped = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"{FRONT_MATTER_DELIMITER}\n{dumped}{FRONT_MATTER_DELIMITER}\n{body}"


class MarkdownVault:
    """Directory of Markdown notes exposing structured metadata access."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, document_id: str) -> threading.Lock:
        with self._locks_guard:
            if document_id not in self._locks:
                self._locks[document_id] = threading.Lock()
            return self._locks[document_id]

    def resolve(self, document_id: str) -> Path:
        """
        Map a document id onto a file inside the vault.

        Raises:
            DocumentNotFoundError: If the id escapes the vault or the file is missing
        """
        root = self.root.resolve()
        path = (root / document_id).resolve()
        if root != path and root not in path.parents:
            raise DocumentNotFoundError(document_id, self.root)
        if not path.is_file():
            raise DocumentNotFoundError(document_id, self.root)
        return path

    def ensure_exists(self, with_sample: bool = True) -> None:
        """Create the vault directory, seeding a sample note into an empty vault."""
        self.root.mkdir(parents=True, exist_ok=True)
        if with_sample and not self.list_documents():
            sample_path = self.root / SAMPLE_NOTE_NAME
            sample_path.write_text(SAMPLE_NOTE, encoding='utf-8')
            logger.info(f"Created sample note: {sample_path}")

    def list_documents(self) -> List[str]:
        """Return ids of all notes in the vault, sorted."""
        if not self.root.is_dir():
            logger.warning(f"Vault directory not found: {self.root}")
            return []
        return sorted(
            path.relative_to(self.root).as_posix()
            for path in self.root.rglob(f"*{NOTE_SUFFIX}")
            if path.is_file()
        )

    def read_document(self, document_id: str) -> Tuple[Dict[str, Any], str]:
        """
        Read a note's metadata and body.

        Raises:
            DocumentNotFoundError: If the note does not exist
            yaml.YAMLError / ValueError: If the front matter is malformed
        """
        path = self.resolve(document_id)
        text = path.read_text(encoding='utf-8')
        yaml_text, body = split_front_matter(text)
        return parse_front_matter(yaml_text), body

    def get_structured_metadata(self, document_id: str) -> Dict[str, Any]:
        """
        Return the note's front matter, or an empty mapping when it has none
        or it cannot be parsed.
        """
        try:
            metadata, _ = self.read_document(document_id)
        except (yaml.YAMLError, ValueError) as e:
            logger.warning(f"Unreadable front matter in {document_id}: {e}")
            return {}
        return metadata

    def has_form(self, document_id: str, form_key: str) -> bool:
        return form_key in self.get_structured_metadata(document_id)

    def mutate_structured_metadata(self, document_id: str,
                                   updater: Callable[[Dict[str, Any]], None]) -> Dict[str, Any]:
        """
        Apply ``updater`` to the note's metadata and write the note back atomically.

        The body is preserved byte for byte. Calls for the same document are
        serialised.

        Returns:
            The metadata as written

        Raises:
            DocumentNotFoundError: If the note does not exist
            HostWriteError: If the note cannot be parsed or written
        """
        with self._lock_for(document_id):
            path = self.resolve(document_id)
            try:
                text = path.read_text(encoding='utf-8')
                yaml_text, body = split_front_matter(text)
                metadata = parse_front_matter(yaml_text)
            except (OSError, yaml.YAMLError, ValueError) as e:
                raise HostWriteError(document_id, e) from e

            updater(metadata)

            try:
                self._atomic_write(path, compose_note(metadata, body))
            except (OSError, yaml.YAMLError) as e:
                raise HostWriteError(document_id, e) from e

        logger.info(f"Updated front matter of {document_id}")
        return metadata

    @staticmethod
    def _atomic_write(path: Path, content: str) -> None:
        fd, temp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
            os.replace(temp_name, path)
        except BaseException:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise
