"""Test configuration ensuring local package import when editable install not active.

If users invoke `pytest` outside the project's virtualenv, we still add the project
root to sys.path so `import flow_app` works. Also provides ``build_frame`` for
turning raw records into the enriched work-item frame the analytics expect.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def build_frame():
    from flow_app.analytics.metrics.derived import add_flow_metrics
    from flow_app.core.mappers import map_work_items, work_items_to_dataframe

    def _build(records):
        items, _ = map_work_items(records)
        return add_flow_metrics(work_items_to_dataframe(items))

    return _build
