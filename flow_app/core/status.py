"""Lifecycle classification of work-item states.

This module owns the only comparison against raw state strings. The
``StateTaxonomy`` holds the configured alias tuples (read from taxonomy.yaml by
taxonomy_config.py) and maps any source state onto the canonical
``WorkItemState`` enumeration. The ingestion boundary stores the result in a
``lifecycle`` column so downstream aggregators never look at raw states.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

import pandas as pd


class WorkItemState(str, Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class StateTaxonomy:
    """Completed and in-progress state aliases.

    Membership is a case-sensitive exact match: ``"done"`` is not ``"Done"``.
    A state found in neither set classifies as ``WorkItemState.OTHER``.

    Raises
    ------
    ValueError
        If a state name is listed as both completed and in progress.
    """

    completed_states: tuple[str, ...]
    in_progress_states: tuple[str, ...]
    _completed: frozenset[str] = field(init=False, repr=False, compare=False)
    _in_progress: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        completed = frozenset(self.completed_states)
        in_progress = frozenset(self.in_progress_states)
        overlap = completed & in_progress
        if overlap:
            raise ValueError(f"States cannot be both completed and in progress: {sorted(overlap)}")
        object.__setattr__(self, "completed_states", tuple(self.completed_states))
        object.__setattr__(self, "in_progress_states", tuple(self.in_progress_states))
        object.__setattr__(self, "_completed", completed)
        object.__setattr__(self, "_in_progress", in_progress)

    @classmethod
    def from_lists(cls, completed: Iterable[str], in_progress: Iterable[str]) -> StateTaxonomy:
        return cls(tuple(str(s) for s in completed), tuple(str(s) for s in in_progress))

    def classify(self, state: str | None) -> WorkItemState:
        """Map a raw source state to its lifecycle stage.

        Examples
        --------
        >>> taxonomy = StateTaxonomy(("Fechado",), ("Ativo",))
        >>> taxonomy.classify("Fechado")
        <WorkItemState.COMPLETED: 'completed'>
        >>> taxonomy.classify("fechado")
        <WorkItemState.OTHER: 'other'>
        """
        if state is None:
            return WorkItemState.OTHER
        if state in self._completed:
            return WorkItemState.COMPLETED
        if state in self._in_progress:
            return WorkItemState.IN_PROGRESS
        return WorkItemState.OTHER

    def is_completed(self, state: str | None) -> bool:
        return self.classify(state) is WorkItemState.COMPLETED

    def classify_series(self, states: pd.Series) -> pd.Series:
        """Vectorised ``classify`` returning the enum values as strings."""
        out = pd.Series(WorkItemState.OTHER.value, index=states.index, dtype=object)
        out[states.isin(list(self._in_progress))] = WorkItemState.IN_PROGRESS.value
        out[states.isin(list(self._completed))] = WorkItemState.COMPLETED.value
        return out


def completed_mask(df: pd.DataFrame) -> pd.Series:
    """Rows whose ingested lifecycle is completed."""
    if df.empty or "lifecycle" not in df.columns:
        return pd.Series(False, index=df.index)
    return df["lifecycle"] == WorkItemState.COMPLETED.value


def in_progress_mask(df: pd.DataFrame) -> pd.Series:
    if df.empty or "lifecycle" not in df.columns:
        return pd.Series(False, index=df.index)
    return df["lifecycle"] == WorkItemState.IN_PROGRESS.value
