"""Tests for the GEXF media map and the media table."""

import csv
import io
import xml.etree.ElementTree as ET
from collections.abc import Sequence

from topicsnap.errors import LayoutUnavailable
from topicsnap.export import build_export_graph, export_gexf, gexf_description, media_csv, media_table
from topicsnap.layout import SpringLayoutService, apply_layout
from topicsnap.models import GraphEdge, GraphNode
from topicsnap.snapshot import snapshot_topic

GEXF = "{http://www.gexf.net/1.2draft}"
VIZ = "{http://www.gexf.net/1.1draft/viz}"


class BrokenLayout:
    def layout(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]):
        raise LayoutUnavailable("service down")


class FixedLayout:
    def layout(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]):
        return {2: (1.5, -2.0)}


def _overall(store):
    snapshot = snapshot_topic(store, 1, periods=["overall"])
    return store.timespans(snapshot.snapshots_id)[0]


class TestExportGraph:
    def test_nodes_and_edges(self, store, topic) -> None:
        nodes, edges = build_export_graph(store, _overall(store))
        assert [n.id for n in nodes] == [2, 3, 1]
        assert {(e.source, e.target) for e in edges} == {(1, 2), (2, 3), (3, 2)}

    def test_sizes_and_attributes(self, store, topic) -> None:
        nodes, _ = build_export_graph(store, _overall(store))
        by_id = {n.id: n for n in nodes}
        assert [n.size for n in nodes] == [20, 13, 6]
        assert by_id[2].attributes["media_type"] == "Blog"
        assert by_id[1].attributes["media_type"] == "Newspaper"
        assert by_id[3].attributes["media_type"] == "Not Typed"
        assert by_id[1].attributes["partisan_code"] == "partisan_2012_left"
        assert by_id[3].attributes["fake_news"] == 1
        assert by_id[2].attributes["inlink_count"] == 2

    def test_excluded_media_are_not_exported(self, store, topic) -> None:
        nodes, edges = build_export_graph(store, _overall(store), exclude_media_ids=[1])
        assert {n.id for n in nodes} == {2, 3}
        assert all(1 not in (e.source, e.target) for e in edges)

    def test_max_media(self, store, topic) -> None:
        nodes, _ = build_export_graph(store, _overall(store), max_media=2)
        assert {n.id for n in nodes} == {2, 3}


class TestLayout:
    def test_failed_layout_falls_back_to_origin(self, store, topic) -> None:
        nodes, _ = build_export_graph(store, _overall(store), layout_service=BrokenLayout())
        assert all((n.x, n.y) == (0.0, 0.0) for n in nodes)

    def test_missing_positions_default_to_origin(self, store, topic) -> None:
        nodes, _ = build_export_graph(store, _overall(store), layout_service=FixedLayout())
        by_id = {n.id: n for n in nodes}
        assert (by_id[2].x, by_id[2].y) == (1.5, -2.0)
        assert (by_id[1].x, by_id[1].y) == (0.0, 0.0)

    def test_large_graphs_are_not_laid_out(self) -> None:
        nodes = [GraphNode(id=i, label=str(i)) for i in range(3)]
        apply_layout(nodes, [], FixedLayout(), max_sources=3)
        assert all((n.x, n.y) == (0.0, 0.0) for n in nodes)

    def test_spring_layout_places_every_node(self) -> None:
        nodes = [GraphNode(id=i, label=str(i)) for i in range(1, 4)]
        edges = [GraphEdge(id=0, source=1, target=2), GraphEdge(id=1, source=2, target=3)]
        positions = SpringLayoutService().layout(nodes, edges)
        assert set(positions) == {1, 2, 3}


class TestGexf:
    def test_document(self, store, topic) -> None:
        timespan = _overall(store)
        root = ET.fromstring(export_gexf(store, timespan, layout_service=FixedLayout()))

        description = root.find(f"{GEXF}meta/{GEXF}description")
        assert description is not None
        assert description.text == gexf_description(store, timespan)
        assert description.text.startswith("Topic map of election for overall timespan\n")

        nodes = root.findall(f"{GEXF}graph/{GEXF}nodes/{GEXF}node")
        assert [n.get("label") for n in nodes] == ["Two Times", "Three Post", "One Daily"]
        assert nodes[0].find(f"{VIZ}size").get("value") == "20"
        assert nodes[0].find(f"{VIZ}position").get("x") == "1.5"
        assert set(nodes[0].find(f"{VIZ}color").attrib) == {"r", "g", "b"}

        edges = root.findall(f"{GEXF}graph/{GEXF}edges/{GEXF}edge")
        assert len(edges) == 3
        assert {e.get("weight") for e in edges} == {"1"}

    def test_focus_in_description(self, store, topic) -> None:
        fsd = store.add_focal_set_definition(1, name="Issues")
        store.add_focus_definition(fsd.focal_set_definitions_id, name="Voting", query="vote")

        class AllIndex:
            def search_for_story_ids(self, query, story_ids):
                return list(story_ids)

        snapshot = snapshot_topic(store, 1, periods=["overall"], search_index=AllIndex())
        focused = [t for t in store.timespans(snapshot.snapshots_id) if t.foci_id is not None][0]
        assert gexf_description(store, focused).endswith("for Voting focus")


class TestMediaTable:
    def test_rows_are_ordered_by_media_inlinks(self, store, topic) -> None:
        rows = media_table(store, _overall(store))
        assert [r["name"] for r in rows] == ["Two Times", "Three Post", "One Daily"]
        assert rows[0]["media_inlink_count"] == 2
        assert rows[2]["story_count"] == 2
        assert rows[2]["partisan_code"] == "partisan_2012_left"

    def test_csv(self, store, topic) -> None:
        text = media_csv(media_table(store, _overall(store)))
        reader = csv.DictReader(io.StringIO(text))
        rows = list(reader)
        assert "media_inlink_count" in (reader.fieldnames or [])
        assert rows[0]["url"] == "https://two.example"
