"""Unit tests for export graph reduction and node sizing."""

from topicsnap.graph import giant_component, scale_node_sizes, top_media, weighted_edges
from topicsnap.models import GraphEdge, MediumLink, MediumLinkCounts


def _edge(source: int, target: int) -> GraphEdge:
    return GraphEdge(id=0, source=source, target=target)


def _counts(*media: tuple[int, int]) -> list[MediumLinkCounts]:
    return [
        MediumLinkCounts(media_id=mid, media_inlink_count=n, inlink_count=n) for mid, n in media
    ]


class TestTopMedia:
    def test_most_linked_first(self) -> None:
        counts = _counts((1, 3), (2, 9), (3, 5))
        assert [c.media_id for c in top_media(counts, 2)] == [2, 3]

    def test_excluded_media_are_skipped(self) -> None:
        counts = _counts((1, 3), (2, 9), (3, 5))
        assert [c.media_id for c in top_media(counts, 2, exclude_media_ids=[2])] == [3, 1]


class TestGiantComponent:
    def test_keeps_largest_cluster(self) -> None:
        big = [_edge(1, 2), _edge(2, 3), _edge(3, 4), _edge(4, 1), _edge(1, 3)]
        small = [_edge(10, 11), _edge(11, 12), _edge(12, 10)]
        kept = giant_component(small + big)
        assert {(e.source, e.target) for e in kept} == {(e.source, e.target) for e in big}

    def test_edge_count_breaks_node_ties(self) -> None:
        sparse = [_edge(1, 2), _edge(2, 3)]
        dense = [_edge(10, 11), _edge(11, 12), _edge(12, 10)]
        kept = giant_component(sparse + dense)
        assert {e.source for e in kept} == {10, 11, 12}

    def test_lowest_node_breaks_full_ties(self) -> None:
        kept = giant_component([_edge(5, 6), _edge(1, 2)])
        assert [(e.source, e.target) for e in kept] == [(1, 2)]

    def test_empty(self) -> None:
        assert giant_component([]) == []


class TestWeightedEdges:
    def test_per_source_cap_keeps_strongest(self) -> None:
        counts = _counts((1, 0), (2, 1), (3, 5), (4, 2))
        links = [
            MediumLink(source_media_id=1, ref_media_id=2, link_count=1),
            MediumLink(source_media_id=1, ref_media_id=3, link_count=1),
            MediumLink(source_media_id=1, ref_media_id=4, link_count=3),
        ]
        edges = weighted_edges(links, counts, [1, 2, 3, 4], max_links_per_medium=2)
        assert [(e.source, e.target) for e in edges] == [(1, 4), (1, 3)]

    def test_weights(self) -> None:
        counts = _counts((1, 0), (2, 1))
        links = [MediumLink(source_media_id=1, ref_media_id=2, link_count=4)]
        assert weighted_edges(links, counts, [1, 2])[0].weight == 1
        assert weighted_edges(links, counts, [1, 2], include_weights=True)[0].weight == 4

    def test_links_to_unexported_media_are_dropped(self) -> None:
        counts = _counts((1, 0), (2, 1), (3, 1))
        links = [
            MediumLink(source_media_id=1, ref_media_id=2, link_count=1),
            MediumLink(source_media_id=1, ref_media_id=3, link_count=1),
        ]
        edges = weighted_edges(links, counts, [1, 2])
        assert [(e.source, e.target) for e in edges] == [(1, 2)]


class TestScaleNodeSizes:
    def test_scaled_to_max(self) -> None:
        assert scale_node_sizes([0, 1, 9]) == [2, 4, 20]

    def test_minimum_size(self) -> None:
        assert scale_node_sizes([0, 19]) == [2, 20]

    def test_empty(self) -> None:
        assert scale_node_sizes([]) == []
