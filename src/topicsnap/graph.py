"""Reduce a timespan's medium link graph to a bounded, connected export graph."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Collection, Iterable, Sequence

import networkx as nx

from topicsnap import config
from topicsnap.models import GraphEdge, MediumLink, MediumLinkCounts

logger = logging.getLogger(__name__)


def top_media(
    counts: Iterable[MediumLinkCounts],
    max_media: int = config.MAX_GEXF_MEDIA,
    exclude_media_ids: Collection[int] = (),
) -> list[MediumLinkCounts]:
    """Return the *max_media* media with the most media inlinks."""
    excluded = set(exclude_media_ids)
    ranked = sorted(
        (c for c in counts if c.media_id not in excluded),
        key=lambda c: (-c.media_inlink_count, c.media_id),
    )
    return ranked[:max_media]


def giant_component(edges: Sequence[GraphEdge]) -> list[GraphEdge]:
    """Return only the edges inside the largest weakly connected component.

    Components are compared by node count, then edge count; remaining ties go
    to the component holding the lowest node id.
    """
    if not edges:
        return []

    graph = nx.Graph()
    graph.add_edges_from((e.source, e.target) for e in edges)

    component_of: dict[int, int] = {}
    components: list[set[int]] = []
    for idx, nodes in enumerate(nx.connected_components(graph)):
        components.append(nodes)
        for node in nodes:
            component_of[node] = idx

    edge_counts: dict[int, int] = defaultdict(int)
    for e in edges:
        edge_counts[component_of[e.source]] += 1

    best = min(
        range(len(components)),
        key=lambda i: (-len(components[i]), -edge_counts[i], min(components[i])),
    )
    kept = [e for e in edges if component_of[e.source] == best]

    logger.debug("giant component: %d -> %d edges", len(edges), len(kept))
    return kept


def weighted_edges(
    links: Iterable[MediumLink],
    counts: Iterable[MediumLinkCounts],
    media_ids: Collection[int],
    *,
    max_media: int = config.MAX_GEXF_MEDIA,
    include_weights: bool = False,
    max_links_per_medium: int | None = None,
) -> list[GraphEdge]:
    """Build the directed edge list between exported media.

    Only links between the top *max_media* media are considered. With
    *max_links_per_medium*, each source keeps its strongest out links, ranked
    by link count and then by the target's inlink count.
    """
    top = {c.media_id: c for c in top_media(counts, max_media)}
    exported = set(media_ids)
    cap = max_links_per_medium or 1_000_000

    logger.debug(
        "weighted edges: max_media=%d include_weights=%s max_links_per_medium=%d",
        max_media,
        include_weights,
        cap,
    )

    by_source: dict[int, list[MediumLink]] = defaultdict(list)
    for link in links:
        if link.source_media_id in top and link.ref_media_id in top:
            by_source[link.source_media_id].append(link)

    edges: list[GraphEdge] = []
    for source in sorted(by_source):
        ranked = sorted(
            by_source[source],
            key=lambda l: (-l.link_count, -top[l.ref_media_id].inlink_count, l.ref_media_id),
        )
        for link in ranked[:cap]:
            if link.source_media_id not in exported or link.ref_media_id not in exported:
                continue
            edges.append(
                GraphEdge(
                    id=len(edges),
                    source=link.source_media_id,
                    target=link.ref_media_id,
                    weight=link.link_count if include_weights else 1,
                )
            )

    return giant_component(edges)


def scale_node_sizes(
    inlink_counts: Sequence[int],
    max_size: int = config.MAX_NODE_SIZE,
    min_size: int = config.MIN_NODE_SIZE,
) -> list[int]:
    """Scale ``inlink_count + 1`` so the largest node is *max_size*.

    Sizes are truncated to integers and raised to *min_size* where needed.
    """
    sizes = [count + 1 for count in inlink_counts]
    largest = max([1, *sizes])
    return [max(max_size * s // largest, min_size) for s in sizes]
