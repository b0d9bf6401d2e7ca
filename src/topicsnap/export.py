"""Timespan exports: the GEXF media map and the media table."""

from __future__ import annotations

import csv
import io
import logging
import time
import xml.etree.ElementTree as ET
from collections.abc import Collection, Sequence
from typing import Any

from topicsnap import config
from topicsnap.colors import ColorStore, color_set_for
from topicsnap.errors import IntegrityError
from topicsnap.graph import scale_node_sizes, top_media, weighted_edges
from topicsnap.layout import LayoutService, apply_layout
from topicsnap.models import GraphEdge, GraphNode, MediumLinkCounts, Timespan, Topic
from topicsnap.store import SnapshotStore
from topicsnap.tags import EXTRA_MEDIA_FIELDS, media_attributes

logger = logging.getLogger(__name__)

_GEXF_NS = "http://www.gexf.net/1.2draft"
_VIZ_NS = "http://www.gexf.net/1.1draft/viz"
_XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

# Node attributes written to the GEXF file, in column order.
NODE_ATTRIBUTE_TYPES: dict[str, str] = {
    "url": "string",
    "inlink_count": "integer",
    "story_count": "integer",
    "view_medium": "string",
    "media_type": "string",
    "facebook_share_count": "integer",
    "simple_tweet_count": "integer",
    "normalized_tweet_count": "float",
    **{field: "string" for field in EXTRA_MEDIA_FIELDS},
}

_MEDIUM_COUNT_FIELDS = list(MediumLinkCounts.model_fields)


def _require_topic(store: SnapshotStore, timespan: Timespan) -> Topic:
    snapshot = store.require_snapshot(timespan.snapshots_id)
    topic = store.get_topic(snapshot.topics_id)
    if topic is None:
        raise IntegrityError(f"topic {snapshot.topics_id} does not exist", timespan=timespan.label)
    return topic


def gexf_description(store: SnapshotStore, timespan: Timespan) -> str:
    topic = _require_topic(store, timespan)
    description = (
        f"Topic map of {topic.name} for {timespan.period.value} timespan\n"
        f"from {timespan.start_date.isoformat()} to {timespan.end_date.isoformat()}\n"
    )
    if timespan.foci_id is not None:
        focus = store.get_focus(timespan.foci_id)
        if focus is not None:
            description += f"for {focus.name} focus"
    return description


def _media_rows(
    store: SnapshotStore,
    topic: Topic,
    counts: Sequence[MediumLinkCounts],
) -> list[dict[str, Any]]:
    """Join medium counts with media names, urls and classification fields."""
    media_ids = [c.media_id for c in counts]
    media = {m.media_id: m for m in store.media(media_ids)}
    extra = media_attributes(store, topic, media_ids)

    rows: list[dict[str, Any]] = []
    for c in counts:
        medium = media.get(c.media_id)
        rows.append(
            {
                "media_id": c.media_id,
                "name": medium.name if medium else "",
                "url": medium.url if medium else "",
                **c.model_dump(),
                **extra[c.media_id],
            }
        )
    return rows


def build_export_graph(
    store: SnapshotStore,
    timespan: Timespan,
    *,
    max_media: int = config.MAX_GEXF_MEDIA,
    color_field: str = "media_type",
    include_weights: bool = False,
    max_links_per_medium: int | None = None,
    exclude_media_ids: Collection[int] = (),
    layout_service: LayoutService | None = None,
) -> tuple[list[GraphNode], list[GraphEdge]]:
    """Select, connect, size, color and lay out the media of a timespan."""
    topic = _require_topic(store, timespan)
    counts = store.medium_link_counts(timespan.timespans_id)

    selected = top_media(counts, max_media, exclude_media_ids)
    media = _media_rows(store, topic, selected)

    edges = weighted_edges(
        store.medium_links(timespan.timespans_id),
        counts,
        [m["media_id"] for m in media],
        max_media=max_media,
        include_weights=include_weights,
        max_links_per_medium=max_links_per_medium,
    )
    connected = {e.source for e in edges} | {e.target for e in edges}

    colors = ColorStore(store)
    color_set = color_set_for(color_field, topic.topics_id)

    nodes: list[GraphNode] = []
    for medium in media:
        if medium["media_id"] not in connected:
            continue
        medium["inlink_count"] = medium["media_inlink_count"]
        medium["view_medium"] = config.VIEW_MEDIUM_URL.format(media_id=medium["media_id"])

        attributes: dict[str, Any] = {}
        for name, kind in NODE_ATTRIBUTE_TYPES.items():
            value = medium.get(name)
            if value is None:
                value = "" if kind == "string" else 0
            attributes[name] = value

        nodes.append(
            GraphNode(
                id=medium["media_id"],
                label=medium["name"],
                attributes=attributes,
                color=colors.rgb(color_set, medium.get(color_field)),
                size=medium["inlink_count"],
            )
        )

    for node, size in zip(nodes, scale_node_sizes([n.size for n in nodes])):
        node.size = size

    apply_layout(nodes, edges, layout_service)

    logger.info("Export graph for %s: %d nodes, %d edges", timespan.label, len(nodes), len(edges))
    return nodes, edges


def write_gexf(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    description: str,
    creator: str = config.GEXF_CREATOR,
) -> str:
    """Serialize a graph as a GEXF 1.2 document with viz extensions."""
    root = ET.Element(
        "gexf",
        {
            "xmlns": _GEXF_NS,
            "xmlns:viz": _VIZ_NS,
            "xmlns:xsi": _XSI_NS,
            "xsi:schemaLocation": f"{_GEXF_NS} {_GEXF_NS}/gexf.xsd",
            "version": "1.2",
        },
    )

    meta = ET.SubElement(root, "meta", {"lastmodifieddate": time.strftime("%Y-%m-%d")})
    ET.SubElement(meta, "creator").text = creator
    ET.SubElement(meta, "description").text = description

    graph = ET.SubElement(root, "graph", {"mode": "static", "defaultedgetype": "directed"})

    attributes = ET.SubElement(graph, "attributes", {"class": "node", "mode": "static"})
    attribute_ids: dict[str, str] = {}
    for idx, (name, kind) in enumerate(NODE_ATTRIBUTE_TYPES.items()):
        attribute_ids[name] = str(idx)
        ET.SubElement(attributes, "attribute", {"id": str(idx), "title": name, "type": kind})

    nodes_el = ET.SubElement(graph, "nodes")
    for node in nodes:
        node_el = ET.SubElement(nodes_el, "node", {"id": str(node.id), "label": node.label})
        attvalues = ET.SubElement(node_el, "attvalues")
        for name, value in node.attributes.items():
            if name in attribute_ids:
                ET.SubElement(attvalues, "attvalue", {"for": attribute_ids[name], "value": str(value)})
        ET.SubElement(node_el, "viz:color", {k: str(v) for k, v in node.color.items()})
        ET.SubElement(node_el, "viz:size", {"value": str(node.size)})
        ET.SubElement(node_el, "viz:position", {"x": str(node.x), "y": str(node.y)})

    edges_el = ET.SubElement(graph, "edges")
    for edge in edges:
        ET.SubElement(
            edges_el,
            "edge",
            {
                "id": str(edge.id),
                "source": str(edge.source),
                "target": str(edge.target),
                "weight": str(edge.weight),
            },
        )

    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True).decode("utf-8")


def export_gexf(
    store: SnapshotStore,
    timespan: Timespan,
    *,
    max_media: int | None = None,
    color_field: str | None = None,
    include_weights: bool = False,
    max_links_per_medium: int | None = None,
    exclude_media_ids: Collection[int] = (),
    layout_service: LayoutService | None = None,
) -> str:
    """Return the GEXF media map of a timespan.

    - *max_media*: keep only the media with the most media inlinks.
    - *color_field*: node attribute that picks the color (``media_type``).
    - *include_weights*: weight edges by link count instead of 1.
    - *max_links_per_medium*: cap on out links kept per medium.
    - *exclude_media_ids*: media never exported.
    """
    nodes, edges = build_export_graph(
        store,
        timespan,
        max_media=max_media or config.MAX_GEXF_MEDIA,
        color_field=color_field or "media_type",
        include_weights=include_weights,
        max_links_per_medium=max_links_per_medium,
        exclude_media_ids=exclude_media_ids,
        layout_service=layout_service,
    )
    return write_gexf(nodes, edges, gexf_description(store, timespan))


def media_table(store: SnapshotStore, timespan: Timespan) -> list[dict[str, Any]]:
    """Per-medium counts of a timespan with classification fields, most linked first."""
    topic = _require_topic(store, timespan)
    counts = store.medium_link_counts(timespan.timespans_id)
    rows = _media_rows(store, topic, counts)
    fields = media_table_fields()
    return [{f: row.get(f) for f in fields} for row in rows]


def media_table_fields() -> list[str]:
    return ["name", "url", *_MEDIUM_COUNT_FIELDS, *EXTRA_MEDIA_FIELDS]


def media_csv(rows: Sequence[dict[str, Any]]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=media_table_fields(), extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()
