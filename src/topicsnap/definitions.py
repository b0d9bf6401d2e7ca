"""Load topic definitions (custom date ranges and focal sets) from YAML."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from topicsnap.errors import ConfigurationError
from topicsnap.models import Topic, naive_utc
from topicsnap.store import SnapshotStore

logger = logging.getLogger(__name__)


def _as_datetime(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        return naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return naive_utc(datetime.fromisoformat(value))
        except ValueError:
            pass
    raise ConfigurationError(f"invalid date for {field}: {value!r}")


def _kw_clause(keywords: list[str]) -> str:
    return " OR ".join(f'"{kw}"' if " " in kw else kw for kw in keywords)


def focus_query(focus: dict[str, Any]) -> str:
    """Return a focus's boolean query, building one from ``keywords`` if needed."""
    query: str = focus.get("query") or ""
    keywords: list[str] = list(focus.get("keywords", []) or [])
    if not query and keywords:
        query = _kw_clause(keywords)
    if not query.strip():
        raise ConfigurationError(f"focus '{focus.get('name')}' needs a non-empty query or keywords")
    return query


def load_definitions(path: Path, store: SnapshotStore) -> Topic:
    """Parse a topic definition file and write it to *store*.

    The file holds:
    - ``topic``: ``topics_id``, ``name``, ``start_date``, ``end_date`` and
      optionally ``is_twitter_topic`` / ``media_type_tag_sets_id``
    - ``custom_dates``: list of ``{start, end}`` ranges for custom timespans
    - ``focal_sets``: list of ``{name, description, foci}``, each focus a
      ``{name, description, query}`` or ``{name, keywords}``
    """
    with open(path) as fh:
        cfg: dict[str, Any] = yaml.safe_load(fh) or {}

    raw_topic: dict[str, Any] | None = cfg.get("topic")
    if not raw_topic:
        raise ConfigurationError(f"{path} has no 'topic' section")

    topic = Topic(
        topics_id=raw_topic["topics_id"],
        name=raw_topic["name"],
        start_date=_as_datetime(raw_topic["start_date"], "start_date"),
        end_date=_as_datetime(raw_topic["end_date"], "end_date"),
        is_twitter_topic=bool(raw_topic.get("is_twitter_topic", False)),
        media_type_tag_sets_id=raw_topic.get("media_type_tag_sets_id"),
    )
    if topic.end_date <= topic.start_date:
        raise ConfigurationError(f"topic '{topic.name}' ends before it starts")

    if store.get_topic(topic.topics_id) is None:
        store.add_topic(topic)
    else:
        logger.info("Topic %d already stored; loading definitions only", topic.topics_id)

    for rng in cfg.get("custom_dates", []) or []:
        store.add_topic_date(
            topic.topics_id,
            _as_datetime(rng.get("start"), "custom_dates.start"),
            _as_datetime(rng.get("end"), "custom_dates.end"),
        )

    for focal_set in cfg.get("focal_sets", []) or []:
        name = focal_set.get("name")
        if not name:
            logger.warning("Skipping unnamed focal set in %s", path)
            continue
        fsd = store.add_focal_set_definition(
            topic.topics_id,
            name=name,
            description=focal_set.get("description", "") or "",
        )
        for focus in focal_set.get("foci", []) or []:
            store.add_focus_definition(
                fsd.focal_set_definitions_id,
                name=focus["name"],
                query=focus_query(focus),
                description=focus.get("description", "") or "",
            )
        logger.debug("Loaded focal set [%s] with %d foci", name, len(focal_set.get("foci", []) or []))

    return topic
