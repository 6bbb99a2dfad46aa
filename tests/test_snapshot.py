import pytest

from ui_query.errors import ElementNotFoundError, MalformedSelectorError, SnapshotParseError
from ui_query.snapshot import MatchedNode, Snapshot, index_snapshot, parse_bounds

from conftest import ACTION_BAR_PATH, COOLSTORY_XML


def test_parse_bounds_android() -> None:
    assert parse_bounds("[7,19][105,55]") == {'x': 7, 'y': 19, 'w': 98, 'h': 36}


def test_parse_bounds_ios() -> None:
    assert parse_bounds("{{10,20},{30,40}}") == {'x': 10, 'y': 20, 'w': 30, 'h': 40}


@pytest.mark.parametrize("value", [None, "", "[1,2]", "garbage"])
def test_parse_bounds_invalid(value) -> None:
    assert parse_bounds(value) is None


def test_snapshot_indexes_every_element(snapshot: Snapshot) -> None:
    assert snapshot.node_count == 15
    assert snapshot.root.name == "hierarchy"
    assert snapshot.root.path == ()
    assert snapshot.xml == COOLSTORY_XML


def test_iter_nodes_in_document_order(snapshot: Snapshot) -> None:
    paths = [node.path for node in snapshot.iter_nodes()]
    assert paths == sorted(paths)
    assert paths[:4] == [(), (0,), (0, 0), (0, 0, 0)]


def test_views_resolve_same_node(snapshot: Snapshot) -> None:
    node = snapshot.node_at(ACTION_BAR_PATH)

    assert node.element.get("bounds") == "[7,19][105,55]"
    assert node.tag.get("bounds") == "[7,19][105,55]"
    assert snapshot.path_of_tag(node.tag) == ACTION_BAR_PATH


def test_node_accessors(snapshot: Snapshot) -> None:
    title = snapshot.node_at((0, 0, 1, 1, 0, 0))

    assert title.text == "Cool Story"
    assert title.class_name == "android.widget.TextView"
    assert title.get("resource-id") == "android:id/action_bar_title"
    assert title.get("missing", "x") == "x"
    assert title.bounds == {'x': 37, 'y': 27, 'w': 62, 'h': 19}
    assert title.center == (68, 36)
    assert title.parent == snapshot.node_at((0, 0, 1, 1, 0))
    assert title.is_descendant_of(snapshot.node_at(ACTION_BAR_PATH))
    assert not title.is_descendant_of(title)


def test_children_of_node(snapshot: Snapshot) -> None:
    children = snapshot.node_at(ACTION_BAR_PATH).children
    assert [child.path for child in children] == [(0, 0, 1, 0), (0, 0, 1, 1)]


def test_node_at_unknown_path(snapshot: Snapshot) -> None:
    with pytest.raises(ElementNotFoundError):
        snapshot.node_at((0, 9))


def test_nodes_of_different_snapshots_differ() -> None:
    first = Snapshot(COOLSTORY_XML)
    second = Snapshot(COOLSTORY_XML)

    assert second.version > first.version
    assert first.snapshot_id != second.snapshot_id
    assert first.node_at(ACTION_BAR_PATH) != second.node_at(ACTION_BAR_PATH)
    assert first.node_at(ACTION_BAR_PATH) == first.node_at(ACTION_BAR_PATH)
    assert len({first.node_at(ACTION_BAR_PATH), MatchedNode(first, list(ACTION_BAR_PATH))}) == 1


@pytest.mark.parametrize(
    "xml",
    ["", "   ", "not xml", "<hierarchy><node></hierarchy>", "<hierarchy/><extra/>"],
)
def test_malformed_xml(xml: str) -> None:
    with pytest.raises(SnapshotParseError):
        index_snapshot(xml)


def test_evaluate_xpath_returns_sorted_paths(snapshot: Snapshot) -> None:
    paths = snapshot.evaluate_xpath("//*[@class='android.widget.Button'] | //*[@content-desc='derp']")
    assert paths == [(0, 0, 0), (0, 0, 2, 0), (0, 0, 2, 1), (0, 0, 2, 2)]


def test_evaluate_xpath_drops_non_nodes(snapshot: Snapshot) -> None:
    assert snapshot.evaluate_xpath("count(//*)") == []
    assert snapshot.evaluate_xpath("//*/@text") == []


def test_invalid_xpath(snapshot: Snapshot) -> None:
    with pytest.raises(MalformedSelectorError):
        snapshot.evaluate_xpath("//*[@text=")


def test_search_tags_in_subtree(snapshot: Snapshot) -> None:
    paths = snapshot.search_tags(lambda tag: tag.get("class") == "android.widget.FrameLayout", ACTION_BAR_PATH)
    assert paths == [(0, 0, 1, 0)]


def test_attributes_are_a_copy(snapshot: Snapshot) -> None:
    node = snapshot.node_at(ACTION_BAR_PATH)
    attributes = node.attributes
    attributes["bounds"] = "[0,0][1,1]"

    assert node.get("bounds") == "[7,19][105,55]"
    assert snapshot.evaluate_xpath("//*[@bounds='[7,19][105,55]']") == [ACTION_BAR_PATH]
