"""Load the state taxonomy from YAML.

The packaged ``taxonomy.yaml`` is the only place the alias lists are written
down; ``default_taxonomy`` reads it, and an override file falls back to it.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

import yaml

from .config import TAXONOMY_FILE
from .status import StateTaxonomy

logger = logging.getLogger(__name__)

PACKAGE_ROOT = Path(__file__).resolve().parent.parent

_CACHE: StateTaxonomy | None = None


def _read_lists(yaml_path: Path) -> dict:
    data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{yaml_path} must hold a mapping")
    return data


@lru_cache(maxsize=1)
def default_taxonomy() -> StateTaxonomy:
    """Taxonomy from the packaged ``taxonomy.yaml``.

    The packaged file ships with the application, so a broken copy is an
    installation error and is raised rather than papered over.
    """
    data = _read_lists(PACKAGE_ROOT / TAXONOMY_FILE)
    return StateTaxonomy.from_lists(data["completed_states"], data["in_progress_states"])


def load_state_taxonomy(base_path: str | Path | None = None, *, refresh: bool = False) -> StateTaxonomy:
    """Read ``taxonomy.yaml`` from ``base_path`` (package root by default).

    Expected keys are ``completed_states`` and ``in_progress_states``; either
    may be omitted to keep the packaged list. A missing file, unreadable YAML
    or overlapping lists fall back to the packaged taxonomy.
    """
    global _CACHE
    if _CACHE is not None and not refresh and base_path is None:
        return _CACHE
    defaults = default_taxonomy()
    yaml_path = Path(base_path or PACKAGE_ROOT) / TAXONOMY_FILE
    if not yaml_path.exists():
        taxonomy = defaults
    else:
        try:
            data = _read_lists(yaml_path)
            taxonomy = StateTaxonomy.from_lists(
                data.get("completed_states") or defaults.completed_states,
                data.get("in_progress_states") or defaults.in_progress_states,
            )
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Ignoring invalid taxonomy file %s: %s", yaml_path, exc)
            taxonomy = defaults
    if base_path is None:
        _CACHE = taxonomy
    return taxonomy
