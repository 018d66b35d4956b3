import pandas as pd
import pytest
import yaml

from flow_app.core.config import TAXONOMY_FILE
from flow_app.core.status import StateTaxonomy, WorkItemState
from flow_app.core.taxonomy_config import PACKAGE_ROOT, default_taxonomy, load_state_taxonomy


@pytest.fixture
def taxonomy():
    return default_taxonomy()


def test_classify_multilingual_aliases(taxonomy):
    assert taxonomy.classify("Concluído") is WorkItemState.COMPLETED
    assert taxonomy.classify("Pronto") is WorkItemState.COMPLETED
    assert taxonomy.classify("Testando QA") is WorkItemState.IN_PROGRESS
    assert taxonomy.classify("New") is WorkItemState.OTHER
    assert taxonomy.classify(None) is WorkItemState.OTHER


def test_classification_is_case_sensitive(taxonomy):
    assert taxonomy.classify("done") is WorkItemState.OTHER
    assert taxonomy.classify("Done ") is WorkItemState.OTHER


def test_overlapping_lists_rejected():
    with pytest.raises(ValueError):
        StateTaxonomy.from_lists(["Done", "Active"], ["Active"])


def test_taxonomy_requires_explicit_lists():
    with pytest.raises(TypeError):
        StateTaxonomy()


def test_classify_series_matches_scalar(taxonomy):
    states = pd.Series(["Done", "Active", "Removed", None])
    expected = [taxonomy.classify(s).value for s in states]
    assert list(taxonomy.classify_series(states)) == expected


def test_load_taxonomy_from_yaml(tmp_path):
    (tmp_path / "taxonomy.yaml").write_text(
        "completed_states:\n  - Shipped\nin_progress_states:\n  - Building\n", encoding="utf-8"
    )
    taxonomy = load_state_taxonomy(tmp_path)
    assert taxonomy.is_completed("Shipped")
    assert not taxonomy.is_completed("Done")
    assert taxonomy.classify("Building") is WorkItemState.IN_PROGRESS


def test_missing_or_invalid_yaml_falls_back(tmp_path, taxonomy):
    assert load_state_taxonomy(tmp_path) == taxonomy
    (tmp_path / "taxonomy.yaml").write_text(
        "completed_states: [Done]\nin_progress_states: [Done]\n", encoding="utf-8"
    )
    assert load_state_taxonomy(tmp_path) == taxonomy
    (tmp_path / "taxonomy.yaml").write_text("- just\n- a list\n", encoding="utf-8")
    assert load_state_taxonomy(tmp_path) == taxonomy


def test_omitted_key_keeps_packaged_list(tmp_path, taxonomy):
    (tmp_path / "taxonomy.yaml").write_text("completed_states: [Shipped]\n", encoding="utf-8")
    loaded = load_state_taxonomy(tmp_path)
    assert loaded.completed_states == ("Shipped",)
    assert loaded.in_progress_states == taxonomy.in_progress_states


def test_default_taxonomy_is_read_from_packaged_yaml(taxonomy):
    data = yaml.safe_load((PACKAGE_ROOT / TAXONOMY_FILE).read_text(encoding="utf-8"))
    assert taxonomy.completed_states == tuple(data["completed_states"])
    assert taxonomy.in_progress_states == tuple(data["in_progress_states"])
    assert load_state_taxonomy(refresh=True) == taxonomy


def test_alias_lists_are_not_duplicated_in_config():
    import flow_app.core.config as config

    assert not hasattr(config, "DEFAULT_COMPLETED_STATES")
    assert not hasattr(config, "DEFAULT_IN_PROGRESS_STATES")
