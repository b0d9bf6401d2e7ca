"""Consistent node colors for graph exports.

A color is assigned once per ``(color set, key)`` and persisted, so the same
category keeps its color across exports. Some color sets are shared by all
topics; every other field gets a color set of its own per topic.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

from topicsnap.store import SnapshotStore

logger = logging.getLogger(__name__)

# Fields whose categories mean the same thing in every topic.
GLOBAL_COLOR_SETS = frozenset({"partisan_code", "media_type", "partisan_retweet"})

_PALETTE: list[str] = [
    "1f77b4", "ff7f0e", "2ca02c", "d62728", "9467bd", "8c564b", "e377c2",
    "7f7f7f", "bcbd22", "17becf", "aec7e8", "ffbb78", "98df8a", "ff9896",
    "c5b0d5", "c49c94", "f7b6d2", "c7c7c7", "dbdb8d", "9edae5",
]


class GlobalColorSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["global"] = "global"
    name: str

    @property
    def namespace(self) -> str:
        return self.name


class TopicColorSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["topic"] = "topic"
    topics_id: int
    name: str

    @property
    def namespace(self) -> str:
        return f"topic_{self.name}_{self.topics_id}"


ColorSet = Union[GlobalColorSet, TopicColorSet]


def color_set_for(field: str, topics_id: int) -> ColorSet:
    if field in GLOBAL_COLOR_SETS:
        return GlobalColorSet(name=field)
    return TopicColorSet(topics_id=topics_id, name=field)


def _hash(text: str) -> int:
    return int(hashlib.sha1(text.encode("utf-8")).hexdigest(), 16)


def rgb_from_hex(rgb_hex: str) -> dict[str, int]:
    """Convert ``'ff8800'`` into ``{'r': 255, 'g': 136, 'b': 0}``."""
    rgb_hex = rgb_hex.lstrip("#")
    return {
        "r": int(rgb_hex[0:2], 16),
        "g": int(rgb_hex[2:4], 16),
        "b": int(rgb_hex[4:6], 16),
    }


class ColorStore:
    """Hands out and remembers colors per color set."""

    def __init__(self, store: SnapshotStore) -> None:
        self._store = store

    def consistent_color(self, color_set: ColorSet, key: object) -> str:
        """Return the hex color for *key* in *color_set*, assigning one if new."""
        key = "none" if key is None or key == "" else str(key)
        namespace = color_set.namespace

        assigned = self._store.colors(namespace)
        if key in assigned:
            return assigned[key]

        color = self._pick(namespace, key, set(assigned.values()))
        return self._store.add_color(namespace, key, color)

    def rgb(self, color_set: ColorSet, key: object) -> dict[str, int]:
        return rgb_from_hex(self.consistent_color(color_set, key))

    @staticmethod
    def _pick(namespace: str, key: str, used: set[str]) -> str:
        # Start at a hash-derived slot and take the first free palette color.
        start = _hash(f"{namespace}:{key}") % len(_PALETTE)
        for offset in range(len(_PALETTE)):
            candidate = _PALETTE[(start + offset) % len(_PALETTE)]
            if candidate not in used:
                return candidate
        logger.debug("Palette exhausted for %s; deriving color from key", namespace)
        return f"{_hash(key) % 0xFFFFFF:06x}"
