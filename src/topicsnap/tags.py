"""Classification fields for media, derived from media tags."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from topicsnap.models import Topic
from topicsnap.store import SnapshotStore

logger = logging.getLogger(__name__)

NOT_TYPED = "Not Typed"

# Extra fields added to exported media, in export order.
EXTRA_MEDIA_FIELDS = ("partisan_code", "partisan_retweet", "fake_news")


def media_types(tag_rows: Iterable[dict[str, Any]], topic: Topic) -> dict[int, str]:
    """Map media ids to a media type label.

    A topic-specific media type (from the topic's own tag set) wins unless it
    is ``Not Typed``; otherwise the universal ``media_type`` tag set is used.
    """
    topic_types: dict[int, str] = {}
    universal_types: dict[int, str] = {}
    for row in tag_rows:
        label = row["label"] or row["tag"]
        if topic.media_type_tag_sets_id is not None and row["tag_sets_id"] == topic.media_type_tag_sets_id:
            topic_types[row["media_id"]] = label
        elif row["tag_set"] == "media_type":
            universal_types[row["media_id"]] = label

    types: dict[int, str] = {}
    for media_id in set(topic_types) | set(universal_types):
        topic_type = topic_types.get(media_id)
        if topic_type and topic_type != NOT_TYPED:
            types[media_id] = topic_type
        else:
            types[media_id] = universal_types.get(media_id, NOT_TYPED)
    return types


def partisan_codes(tag_rows: Iterable[dict[str, Any]]) -> dict[int, str]:
    return {
        r["media_id"]: r["tag"]
        for r in tag_rows
        if r["tag_set"] == "collection" and r["tag"].startswith("partisan_2012_")
    }


def partisan_retweets(tag_rows: Iterable[dict[str, Any]]) -> dict[int, str]:
    return {
        r["media_id"]: r["tag"]
        for r in tag_rows
        if r["tag_set"] == "retweet_partisanship_2016_count_10"
    }


def fake_news(tag_rows: Iterable[dict[str, Any]]) -> set[int]:
    return {
        r["media_id"]
        for r in tag_rows
        if r["tag_set"] == "collection" and r["tag"] == "fake_news_20170112"
    }


def media_attributes(store: SnapshotStore, topic: Topic, media_ids: Iterable[int]) -> dict[int, dict[str, Any]]:
    """Return ``media_type`` plus the extra classification fields per medium.

    Media without a tag get ``Not Typed``, ``"null"`` partisanship and a
    ``fake_news`` value of 0.
    """
    media_ids = list(media_ids)
    rows = store.media_tags(media_ids)

    types = media_types(rows, topic)
    partisan = partisan_codes(rows)
    retweet = partisan_retweets(rows)
    fake = fake_news(rows)

    return {
        media_id: {
            "media_type": types.get(media_id, NOT_TYPED),
            "partisan_code": partisan.get(media_id, "null"),
            "partisan_retweet": retweet.get(media_id, "null"),
            "fake_news": 1 if media_id in fake else 0,
        }
        for media_id in media_ids
    }
