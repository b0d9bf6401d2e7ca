"""Domain models used across the snapshot pipeline."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, Field


def naive_utc(d: datetime) -> datetime:
    """Convert an offset-aware datetime to naive UTC; naive values pass through."""
    if d.tzinfo is None:
        return d
    return d.astimezone(UTC).replace(tzinfo=None)


# All stored and compared dates are naive UTC.
UTCDatetime = Annotated[datetime, AfterValidator(naive_utc)]


class Period(str, Enum):
    OVERALL = "overall"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class BotPolicy(str, Enum):
    NO_BOTS = "no bots"
    ONLY_BOTS = "only bots"
    ALL = "all"


# ── Topic / snapshot bookkeeping ──────────────────────────────────────────


class Topic(BaseModel):
    topics_id: int
    name: str
    start_date: UTCDatetime
    end_date: UTCDatetime
    is_twitter_topic: bool = False
    media_type_tag_sets_id: int | None = None


class Snapshot(BaseModel):
    snapshots_id: int
    topics_id: int
    start_date: UTCDatetime
    end_date: UTCDatetime
    snapshot_date: UTCDatetime | None = None
    note: str = ""
    bot_policy: BotPolicy = BotPolicy.NO_BOTS
    state: str = "running"


class FocalSetDefinition(BaseModel):
    focal_set_definitions_id: int
    topics_id: int
    name: str
    description: str = ""
    focal_technique: str = "Boolean Query"


class FocusDefinition(BaseModel):
    focus_definitions_id: int
    focal_set_definitions_id: int
    name: str
    description: str = ""
    query: str


class FocalSet(BaseModel):
    focal_sets_id: int
    snapshots_id: int
    name: str
    description: str = ""
    focal_technique: str = "Boolean Query"


class Focus(BaseModel):
    foci_id: int
    focal_sets_id: int
    name: str
    description: str = ""
    query: str


class Timespan(BaseModel):
    timespans_id: int
    snapshots_id: int
    start_date: UTCDatetime
    end_date: UTCDatetime
    period: Period
    foci_id: int | None = None
    story_count: int = 0
    story_link_count: int = 0
    medium_count: int = 0
    medium_link_count: int = 0
    tweet_count: int = 0

    @property
    def label(self) -> str:
        label = f"{self.period.value}: {self.start_date.date()} - {self.end_date.date()}"
        if self.foci_id is not None:
            label += f" [focus {self.foci_id}]"
        return label


# ── Topic content ─────────────────────────────────────────────────────────


class Medium(BaseModel):
    media_id: int
    name: str
    url: str = ""


class Story(BaseModel):
    stories_id: int
    media_id: int
    url: str = ""
    title: str = ""
    publish_date: UTCDatetime | None = None
    facebook_share_count: int | None = None


class StoryLink(BaseModel):
    """A topic link from ``stories_id`` to ``ref_stories_id``."""

    stories_id: int
    ref_stories_id: int


class TagSet(BaseModel):
    tag_sets_id: int
    name: str


class Tag(BaseModel):
    tags_id: int
    tag_sets_id: int
    tag: str
    label: str = ""


class TweetStory(BaseModel):
    """A tweet that shared a topic story, with the posting account's stats."""

    topic_tweets_id: int
    stories_id: int
    media_id: int
    twitter_user: str
    publish_date: UTCDatetime
    num_ch_tweets: int = 0
    tweet_count: int = 0
    user_tweets: int | None = None
    user_created_at: UTCDatetime | None = None


class TopicData(BaseModel):
    """Frozen copy of a topic's content taken at the start of a snapshot.

    ``links`` holds only cross-medium links. ``tweet_stories`` is already
    filtered by the snapshot's bot policy.
    """

    topic: Topic
    stories: list[Story] = Field(default_factory=list)
    media: list[Medium] = Field(default_factory=list)
    links: list[StoryLink] = Field(default_factory=list)
    tweet_stories: list[TweetStory] = Field(default_factory=list)
    undateable_stories_ids: set[int] = Field(default_factory=set)
    syndicated_stories_ids: set[int] = Field(default_factory=set)

    def stories_by_id(self) -> dict[int, Story]:
        return {s.stories_id: s for s in self.stories}

    def media_by_id(self) -> dict[int, Medium]:
        return {m.media_id: m for m in self.media}


# ── Per-timespan aggregates ───────────────────────────────────────────────


class StoryLinkCounts(BaseModel):
    stories_id: int
    media_inlink_count: int = 0
    inlink_count: int = 0
    outlink_count: int = 0
    simple_tweet_count: int | None = None
    normalized_tweet_count: float | None = None
    facebook_share_count: int | None = None


class MediumLink(BaseModel):
    source_media_id: int
    ref_media_id: int
    link_count: int = 0


class MediumLinkCounts(BaseModel):
    media_id: int
    media_inlink_count: int = 0
    sum_media_inlink_count: int = 0
    inlink_count: int = 0
    outlink_count: int = 0
    story_count: int = 0
    facebook_share_count: int | None = None
    simple_tweet_count: int | None = None
    normalized_tweet_count: float | None = None


class TimespanData(BaseModel):
    story_ids: list[int] = Field(default_factory=list)
    story_links: list[StoryLink] = Field(default_factory=list)
    story_link_counts: list[StoryLinkCounts] = Field(default_factory=list)
    medium_links: list[MediumLink] = Field(default_factory=list)
    medium_link_counts: list[MediumLinkCounts] = Field(default_factory=list)
    timespan_tweets: list[int] = Field(default_factory=list)


# ── Graph export ──────────────────────────────────────────────────────────


class GraphEdge(BaseModel):
    id: int
    source: int
    target: int
    weight: int = 1


class GraphNode(BaseModel):
    id: int
    label: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    color: dict[str, int] = Field(default_factory=dict)
    size: int = 0
    x: float = 0.0
    y: float = 0.0
