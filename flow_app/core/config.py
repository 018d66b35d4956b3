"""Central configuration, constants, and tuning knobs for flow analytics."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

# =============================================================================
# Locale Settings
# =============================================================================
TIMEZONE = "America/Sao_Paulo"

# =============================================================================
# Workflow State Taxonomy
# The completed and in-progress alias lists live only in the packaged
# taxonomy.yaml (see taxonomy_config.py).
# =============================================================================
TAXONOMY_FILE = "taxonomy.yaml"

# Ordered workflow columns used to apportion lead time (time in status) and
# to stack open items in the per-state cumulative flow view.
WORKFLOW_PHASES: Sequence[str] = (
    "New",
    "Para Desenvolver",
    "Active",
    "Aguardando Code Review",
    "Fazendo Code Review",
    "Aguardando QA",
    "Testando QA",
)

# Phases that count as hands-on work for flow efficiency; every other phase
# is treated as waiting time.
ACTIVE_WORK_PHASES: frozenset[str] = frozenset(
    {
        "Active",
        "Fazendo Code Review",
        "Testando QA",
    }
)

# Relative share of lead time spent in each WORKFLOW_PHASES column, by type.
TYPE_PHASE_PROFILES: Mapping[str, Sequence[float]] = {
    "Bug": (0.02, 0.03, 0.50, 0.10, 0.10, 0.10, 0.15),
    "Product Backlog Item": (0.03, 0.05, 0.35, 0.15, 0.12, 0.12, 0.18),
    "Task": (0.02, 0.03, 0.55, 0.10, 0.10, 0.08, 0.12),
    "User Story": (0.03, 0.05, 0.35, 0.15, 0.12, 0.12, 0.18),
    "Feature": (0.05, 0.08, 0.30, 0.15, 0.12, 0.12, 0.18),
    "default": (0.03, 0.05, 0.40, 0.12, 0.12, 0.12, 0.16),
}

# Open-item bands for the per-state cumulative flow view (top to bottom).
CFD_STATE_COLUMNS: Mapping[str, Sequence[str]] = {
    "Testando QA": ("Testando QA",),
    "Aguardando QA": ("Aguardando QA",),
    "Fazendo Code Review": ("Fazendo Code Review",),
    "Aguardando Code Review": ("Aguardando Code Review",),
    "Active / Desenvolvendo": ("Active", "Ativo", "Em Progresso"),
    "Para Desenvolver": ("Para Desenvolver",),
    "New / Novo": ("New", "Novo"),
}

# =============================================================================
# Forecast Settings
# =============================================================================
DEFAULT_TRIALS: int = 5000
DEFAULT_FORECAST_WEEKS: int = 4
DEFAULT_FORECAST_ITEMS: int = 20
CONFIDENCE_LEVELS: Sequence[float] = (0.50, 0.85, 0.95)
MIN_THROUGHPUT_SAMPLES: int = 2  # below this the pool cannot support resampling
WHEN_MAX_WEEKS: int = 200  # backstop for a single "when" trial
WHEN_CAP_WARNING_RATIO: float = 0.01  # share of capped trials that raises a warning

# =============================================================================
# Cumulative Flow / Throughput Settings
# =============================================================================
CFD_MAX_ROLLING_DAYS: int = 90
DEFAULT_PERIOD_DAYS: int = 90
THROUGHPUT_HISTOGRAM_BINS: Sequence[tuple[str, int, int | None]] = (
    ("1-5", 1, 5),
    ("6-10", 6, 10),
    ("11-15", 11, 15),
    ("16-20", 16, 20),
    ("21+", 21, None),
)
FLOW_EFFICIENCY_MIN_ITEMS: int = 3

# Open-item age bands in whole days: up to WARNING is normal, above CRITICAL
# is critical, anything between is a warning.
AGING_WARNING_DAYS: int = 15
AGING_CRITICAL_DAYS: int = 30
AGING_BANDS: Sequence[str] = ("critical", "warning", "normal")

# =============================================================================
# Work Item Frame Columns
# =============================================================================
WORK_ITEM_COLUMNS: Sequence[str] = (
    "id",
    "title",
    "type",
    "state",
    "lifecycle",
    "team",
    "assignee",
    "tags",
    "priority",
    "story_points",
    "created",
    "activated",
    "closed",
    "url",
)

DISPLAY_ORDER_ITEMS: Sequence[str] = (
    "Item",
    "title",
    "type",
    "state",
    "team",
    "assignee",
    "cycle_time",
    "lead_time",
    "created",
    "closed",
    "tags",
)

UNASSIGNED_LABEL = "Unassigned"
NO_TEAM_LABEL = "Sem Time"


@dataclass(slots=True)
class AppSettings:
    max_table_rows: int = 1000
    forecast_workers: int = 2
    trial_chunk_size: int = 1000  # trials between cancellation checks


SETTINGS = AppSettings()
