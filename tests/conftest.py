"""Shared fixtures: a throwaway store seeded with a small link topic."""

from datetime import datetime
from pathlib import Path

import pytest

from topicsnap.models import Medium, Story, StoryLink, Tag, TagSet, Topic
from topicsnap.store import SnapshotStore

DAY = datetime(2020, 1, 8)


@pytest.fixture
def store(tmp_path: Path) -> SnapshotStore:
    return SnapshotStore(db_path=tmp_path / "db" / "topicsnap.sqlite3")


@pytest.fixture
def topic(store: SnapshotStore) -> Topic:
    """Three media linking 1 -> 2, 2 <-> 3, plus a same-medium link and an undateable story."""
    topic = Topic(
        topics_id=1,
        name="election",
        start_date=datetime(2020, 1, 1),
        end_date=datetime(2020, 2, 1),
        media_type_tag_sets_id=5,
    )
    store.add_topic(topic)
    store.add_media(
        [
            Medium(media_id=1, name="One Daily", url="https://one.example"),
            Medium(media_id=2, name="Two Times", url="https://two.example"),
            Medium(media_id=3, name="Three Post", url="https://three.example"),
        ]
    )
    store.add_stories(
        1,
        [
            Story(stories_id=10, media_id=1, publish_date=DAY, facebook_share_count=3),
            Story(stories_id=11, media_id=1, publish_date=DAY),
            Story(stories_id=20, media_id=2, publish_date=DAY),
            Story(stories_id=30, media_id=3, publish_date=DAY),
            Story(stories_id=31, media_id=3, publish_date=DAY),
        ],
    )
    store.add_links(
        1,
        [
            StoryLink(stories_id=10, ref_stories_id=20),
            StoryLink(stories_id=11, ref_stories_id=20),
            StoryLink(stories_id=30, ref_stories_id=20),
            StoryLink(stories_id=20, ref_stories_id=30),
            StoryLink(stories_id=10, ref_stories_id=11),
        ],
    )
    store.add_tag_sets(
        [
            TagSet(tag_sets_id=1, name="media_type"),
            TagSet(tag_sets_id=2, name="date_invalid"),
            TagSet(tag_sets_id=3, name="collection"),
            TagSet(tag_sets_id=5, name="topic_media_type"),
        ]
    )
    store.add_tags(
        [
            Tag(tags_id=1, tag_sets_id=1, tag="newspaper", label="Newspaper"),
            Tag(tags_id=2, tag_sets_id=2, tag="undateable"),
            Tag(tags_id=3, tag_sets_id=3, tag="partisan_2012_left"),
            Tag(tags_id=4, tag_sets_id=3, tag="fake_news_20170112"),
            Tag(tags_id=5, tag_sets_id=5, tag="blog", label="Blog"),
        ]
    )
    store.tag_media(1, [1, 2])
    store.tag_media(5, [2])
    store.tag_media(3, [1])
    store.tag_media(4, [3])
    store.tag_stories(2, [31])
    return topic
