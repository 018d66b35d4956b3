"""Domain data models for work items, derived metrics, and forecast results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .errors import DataQualityIssue


class WorkItemType(str, Enum):
    TASK = "Task"
    BUG = "Bug"
    FEATURE = "Feature"
    EPIC = "Epic"
    ISSUE = "Issue"
    PRODUCT_BACKLOG_ITEM = "Product Backlog Item"
    USER_STORY = "User Story"
    IMPEDIMENT = "Impediment"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str | None) -> WorkItemType:
        if not value:
            return cls.OTHER
        text = str(value).strip()
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        return cls.OTHER


@dataclass(frozen=True, slots=True)
class WorkItem:
    id: str | int
    title: str | None
    type: WorkItemType
    state: str | None
    created: datetime
    closed: datetime | None = None
    activated: datetime | None = None
    team: str | None = None
    assignee: str | None = None
    tags: frozenset[str] = field(default_factory=frozenset)
    priority: int | None = None
    story_points: float | None = None
    url: str | None = None


@dataclass(frozen=True, slots=True)
class DerivedMetrics:
    cycle_time: float | None
    lead_time: float | None
    time_in_status_days: dict[str, float] = field(default_factory=dict)
    issues: tuple[DataQualityIssue, ...] = ()


@dataclass(frozen=True, slots=True)
class ThroughputSample:
    week_key: str
    week_start: date
    count: int


@dataclass(frozen=True, slots=True)
class ThroughputSeries:
    samples: tuple[ThroughputSample, ...]
    insufficient_for_simulation: bool

    @property
    def pool(self) -> tuple[int, ...]:
        return tuple(s.count for s in self.samples)

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True, slots=True)
class ConfidenceLevels:
    p50: int
    p85: int
    p95: int

    def as_dict(self) -> dict[str, int]:
        return {"p50": self.p50, "p85": self.p85, "p95": self.p95}


@dataclass(frozen=True, slots=True)
class SimulationResult:
    mode: str  # "how_many" | "when"
    distribution: tuple[int, ...]
    confidence_levels: ConfidenceLevels
    trials: int
    capped_trials: int = 0
    warnings: tuple[str, ...] = ()
    ok: bool = True


@dataclass(frozen=True, slots=True)
class ForecastResult:
    how_many: SimulationResult
    when: SimulationResult
    pool: tuple[int, ...]
    weeks: int
    target_items: int
    ok: bool = True
