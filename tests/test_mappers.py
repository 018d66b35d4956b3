from flow_app.core.config import NO_TEAM_LABEL, UNASSIGNED_LABEL, WORK_ITEM_COLUMNS
from flow_app.core.errors import DataQualityKind
from flow_app.core.mappers import map_work_item, map_work_items, normalize_tags, work_items_to_dataframe
from flow_app.core.models import WorkItemType


def _raw(**overrides):
    raw = {
        "id": 42,
        "title": "Checkout timeout",
        "workItemType": "Bug",
        "state": "Fechado",
        "createdDate": "2024-03-01T12:00:00Z",
        "closedDate": "2024-03-05T12:00:00Z",
        "activatedDate": "2024-03-02T12:00:00Z",
        "assignedTo": {"displayName": "Ana Souza", "uniqueName": "ana@example.com"},
        "tags": "backend; urgente",
        "priority": "2",
        "storyPoints": "3",
    }
    raw.update(overrides)
    return raw


def test_map_work_item_fields():
    item = map_work_item(_raw())
    assert item.id == 42
    assert item.type is WorkItemType.BUG
    assert item.assignee == "Ana Souza"
    assert item.tags == frozenset({"backend", "urgente"})
    assert item.priority == 2
    assert item.story_points == 3.0
    assert item.closed > item.created


def test_missing_created_date_drops_record():
    items, issues = map_work_items([_raw(), _raw(id=43, createdDate=None)])
    assert [i.id for i in items] == [42]
    assert issues[0].item_id == 43
    assert issues[0].kind is DataQualityKind.MISSING_FIELD


def test_normalize_tags_variants():
    assert normalize_tags("a, b;c ;") == frozenset({"a", "b", "c"})
    assert normalize_tags(["x", None, " y "]) == frozenset({"x", "y"})
    assert normalize_tags(None) == frozenset()


def test_dataframe_columns_and_lifecycle():
    items, _ = map_work_items([_raw(), _raw(id=2, state="Em Progresso", closedDate=None), _raw(id=3, state="New")])
    df = work_items_to_dataframe(items)
    assert list(df.columns) == list(WORK_ITEM_COLUMNS)
    assert list(df["lifecycle"]) == ["completed", "in_progress", "other"]
    assert str(df["created"].dt.tz) == "America/Sao_Paulo"
    assert df.loc[0, "team"] == NO_TEAM_LABEL


def test_dataframe_defaults_for_missing_people():
    items, _ = map_work_items([_raw(assignedTo=None)])
    df = work_items_to_dataframe(items)
    assert df.loc[0, "assignee"] == UNASSIGNED_LABEL


def test_empty_input_gives_empty_frame():
    df = work_items_to_dataframe([])
    assert df.empty
    assert list(df.columns) == list(WORK_ITEM_COLUMNS)
