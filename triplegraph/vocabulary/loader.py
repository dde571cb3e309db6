"""Load custom verb and role definitions from YAML.

Expected document shape:

    verbs:
      - id: expediting
        category: supply-chain
        danger_level: medium
        required_role: [warehouse_clerk]
        requires_approval: false
    roles:
      - id: dispatcher
        capabilities: [shipping, expediting]
        inherits: [warehouse_clerk]

Both top-level keys are optional.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from triplegraph.core.errors import VocabularyError
from triplegraph.core.schema import RoleDef, VerbDef


@dataclass
class Vocabulary:
    """Definitions read from one vocabulary document."""

    verbs: list[VerbDef] = field(default_factory=list)
    roles: list[RoleDef] = field(default_factory=list)


def parse_vocabulary(text: str, source: str = "<string>") -> Vocabulary:
    """Parse a YAML vocabulary document.

    Args:
        text: YAML text
        source: Name used in error messages

    Returns:
        Vocabulary with verbs and roles in document order

    Raises:
        VocabularyError: Invalid YAML, wrong shape, missing id or unknown
            danger_level
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise VocabularyError(source, f"invalid YAML: {e}") from e

    if data is None:
        return Vocabulary()
    if not isinstance(data, dict):
        raise VocabularyError(source, "top level must be a mapping")

    unknown = set(data) - {"verbs", "roles"}
    if unknown:
        raise VocabularyError(source, f"unknown keys: {sorted(unknown)}")

    vocab = Vocabulary()
    for index, entry in enumerate(_entries(data, "verbs", source)):
        try:
            vocab.verbs.append(VerbDef.from_dict(entry))
        except KeyError as e:
            raise VocabularyError(source, f"verbs[{index}] missing {e}") from e
        except ValueError as e:
            raise VocabularyError(source, f"verbs[{index}]: {e}") from e
    for index, entry in enumerate(_entries(data, "roles", source)):
        try:
            vocab.roles.append(RoleDef.from_dict(entry))
        except KeyError as e:
            raise VocabularyError(source, f"roles[{index}] missing {e}") from e
    return vocab


def load_vocabulary_file(path: str | Path) -> Vocabulary:
    """Read and parse a YAML vocabulary file.

    Raises:
        VocabularyError: File unreadable or content invalid
    """
    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise VocabularyError(str(file_path), str(e)) from e
    return parse_vocabulary(text, source=str(file_path))


def _entries(data: dict[str, Any], key: str, source: str) -> list[dict[str, Any]]:
    entries = data.get(key) or []
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise VocabularyError(source, f"{key} must be a list of mappings")
    return entries
