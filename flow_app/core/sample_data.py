"""Synthetic work-item records for demos and tests."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import numpy as np
import pytz

from .config import TIMEZONE
from .taxonomy_config import default_taxonomy

_TYPES = ("Product Backlog Item", "Bug", "Task", "User Story", "Feature")
_TYPE_WEIGHTS = (0.40, 0.25, 0.20, 0.10, 0.05)
_OPEN_STATES = (
    "New",
    "Para Desenvolver",
    "Active",
    "Em Progresso",
    "Aguardando Code Review",
    "Fazendo Code Review",
    "Aguardando QA",
    "Testando QA",
)
_TEAMS = ("Plataforma", "Pagamentos", "Mobile", None)
_PEOPLE = ("Ana Souza", "Bruno Lima", "Carla Dias", "Diego Rocha", "Elisa Prado", None)
_TAGS = ("backend", "frontend", "infra", "urgente", "débito técnico")
_BASE_URL = "https://dev.azure.com/example/project/_workitems/edit/"


def generate_sample_records(
    count: int = 200,
    seed: int | None = 42,
    now: datetime | None = None,
    *,
    horizon_days: int = 180,
    completed_share: float = 0.6,
) -> list[dict[str, Any]]:
    """Random records in the raw input format.

    About ``completed_share`` of the items end in a completed state; the rest
    sit in an open workflow state. Roughly a tenth of completed items carry no
    activation date so the cycle-time gaps show up in the dashboards.
    """
    rng = np.random.default_rng(seed)
    tz = pytz.timezone(TIMEZONE)
    current = now or datetime.now(tz)
    records: list[dict[str, Any]] = []
    for idx in range(count):
        item_id = 1000 + idx
        created = current - timedelta(days=float(rng.uniform(1, horizon_days)), hours=float(rng.uniform(0, 8)))
        item_type = str(rng.choice(_TYPES, p=_TYPE_WEIGHTS))
        record: dict[str, Any] = {
            "id": item_id,
            "title": f"{item_type} {item_id}",
            "workItemType": item_type,
            "createdDate": created.isoformat(),
            "team": _TEAMS[int(rng.integers(len(_TEAMS)))],
            "assignedTo": _PEOPLE[int(rng.integers(len(_PEOPLE)))],
            "priority": int(rng.integers(1, 5)),
            "storyPoints": float(rng.choice([1, 2, 3, 5, 8, 13])),
            "url": f"{_BASE_URL}{item_id}",
        }
        n_tags = int(rng.integers(0, 3))
        if n_tags:
            record["tags"] = "; ".join(rng.choice(_TAGS, size=n_tags, replace=False))

        age_days = (current - created).total_seconds() / 86400
        lead = float(rng.gamma(shape=2.0, scale=6.0))
        if rng.random() < completed_share and lead < age_days:
            closed = created + timedelta(days=lead)
            record["state"] = str(rng.choice(default_taxonomy().completed_states))
            record["closedDate"] = closed.isoformat()
            if rng.random() > 0.1:
                wait = lead * float(rng.uniform(0.05, 0.4))
                record["activatedDate"] = (created + timedelta(days=wait)).isoformat()
        else:
            state = str(rng.choice(_OPEN_STATES))
            record["state"] = state
            if state != "New" and rng.random() > 0.2:
                record["activatedDate"] = (created + timedelta(days=min(age_days, 2.0) / 2)).isoformat()
        records.append(record)
    return records
