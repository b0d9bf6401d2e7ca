"""2D layout for exported graphs.

Layout is best-effort: when the service fails, nodes keep the default
``(0, 0)`` position and the export carries on.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

import networkx as nx
import requests

from topicsnap import config
from topicsnap.errors import LayoutUnavailable
from topicsnap.models import GraphEdge, GraphNode

logger = logging.getLogger(__name__)

Positions = dict[int, tuple[float, float]]


class LayoutService(Protocol):
    def layout(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> Positions:
        """Return ``{node_id: (x, y)}``; raise :class:`LayoutUnavailable` on failure."""
        ...


class HttpLayoutService:
    """POST the graph as JSON to a remote layout endpoint.

    The endpoint answers with ``{"positions": {"<node id>": [x, y], ...}}``.
    """

    def __init__(self, url: str, timeout: int = 600) -> None:
        if not url:
            raise ValueError("LAYOUT_URL is required but was empty.")
        self._url = url
        self._timeout = timeout
        self._session = requests.Session()

    def layout(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> Positions:
        payload: dict[str, Any] = {
            "nodes": [{"id": n.id, "size": n.size} for n in nodes],
            "edges": [{"source": e.source, "target": e.target, "weight": e.weight} for e in edges],
            "width": config.MAX_MAP_WIDTH,
        }
        try:
            resp = self._session.post(self._url, json=payload, timeout=self._timeout)
        except requests.RequestException as exc:
            raise LayoutUnavailable(f"layout request failed: {exc}") from exc
        if resp.status_code != 200:
            raise LayoutUnavailable(f"layout service returned {resp.status_code}: {resp.text[:500]}")

        try:
            raw: dict[str, list[float]] = resp.json()["positions"]
            return {int(node_id): (float(xy[0]), float(xy[1])) for node_id, xy in raw.items()}
        except (ValueError, KeyError, TypeError, IndexError) as exc:
            raise LayoutUnavailable(f"malformed layout response: {exc}") from exc


class SpringLayoutService:
    """Local force-directed layout with networkx, seeded for repeatable maps."""

    def __init__(self, seed: int = 1, width: int = config.MAX_MAP_WIDTH) -> None:
        self._seed = seed
        self._width = width

    def layout(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> Positions:
        graph = nx.Graph()
        graph.add_nodes_from(n.id for n in nodes)
        for e in edges:
            graph.add_edge(e.source, e.target, weight=e.weight)
        try:
            pos = nx.spring_layout(graph, seed=self._seed, scale=self._width / 2, weight="weight")
        except (nx.NetworkXException, ValueError) as exc:
            raise LayoutUnavailable(f"spring layout failed: {exc}") from exc
        return {int(node): (float(xy[0]), float(xy[1])) for node, xy in pos.items()}


def default_layout_service() -> LayoutService:
    if config.LAYOUT_URL:
        return HttpLayoutService(config.LAYOUT_URL)
    return SpringLayoutService()


def apply_layout(
    nodes: list[GraphNode],
    edges: Sequence[GraphEdge],
    service: LayoutService | None,
    max_sources: int = config.MAX_LAYOUT_SOURCES,
) -> None:
    """Set ``x``/``y`` on every node, falling back to ``(0, 0)``."""
    positions: Positions = {}

    if service is None:
        logger.info("No layout service configured; leaving default positions")
    elif len(nodes) < max_sources:
        logger.debug("laying out graph with %d sources ...", len(nodes))
        try:
            positions = service.layout(nodes, edges)
        except LayoutUnavailable as exc:
            logger.warning("Layout unavailable, using default positions: %s", exc)
    else:
        logger.warning("refusing to layout graph with more than %d sources", max_sources)

    for node in nodes:
        node.x, node.y = positions.get(node.id, (0.0, 0.0))
