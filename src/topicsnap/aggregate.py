"""Link aggregation: story and medium link counts for one timespan.

Every function here is a pure function of the topic data and the period
membership, so recomputing a timespan always yields the same rows.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Collection, Iterable

from topicsnap.models import (
    MediumLink,
    MediumLinkCounts,
    Period,
    StoryLink,
    StoryLinkCounts,
    Timespan,
    TimespanData,
    TopicData,
)
from topicsnap.strategies import TopicStrategy

logger = logging.getLogger(__name__)


def _sum_optional(values: Iterable[int | float | None]) -> int | float | None:
    """Sum non-null values; None when every value is null (SQL ``sum``)."""
    present = [v for v in values if v is not None]
    return sum(present) if present else None


def timespan_tweets(data: TopicData, timespan: Timespan, period_stories: Collection[int]) -> list[int]:
    """Return the tweets counted for a timespan.

    Tweets must share a period story that is not itself a twitter.com page
    and, except for the overall timespan, be posted inside the window.
    """
    members = set(period_stories)
    media = data.media_by_id()
    overall = timespan.period is Period.OVERALL

    tweets: set[int] = set()
    for ts in data.tweet_stories:
        if ts.stories_id not in members:
            continue
        medium = media.get(ts.media_id)
        if medium is None or "twitter.com" in medium.url:
            continue
        if not overall and not (timespan.start_date <= ts.publish_date < timespan.end_date):
            continue
        tweets.add(ts.topic_tweets_id)
    return sorted(tweets)


def story_link_counts(
    data: TopicData,
    period_stories: Collection[int],
    story_links: Iterable[StoryLink],
    timespan_tweets: Collection[int],
) -> list[StoryLinkCounts]:
    members = set(period_stories)
    stories = data.stories_by_id()
    story_links = list(story_links)

    media_inlinks: dict[int, set[int]] = defaultdict(set)
    inlinks: dict[int, set[int]] = defaultdict(set)
    outlinks: dict[int, set[int]] = defaultdict(set)
    for link in story_links:
        source = stories.get(link.stories_id)
        if source is not None:
            media_inlinks[link.ref_stories_id].add(source.media_id)
        if link.stories_id in members:
            inlinks[link.ref_stories_id].add(link.stories_id)
        if link.ref_stories_id in members:
            outlinks[link.stories_id].add(link.ref_stories_id)

    tweet_ids = set(timespan_tweets)
    tweet_users: dict[int, set[str]] = defaultdict(set)
    normalized: dict[int, float] = defaultdict(float)
    for ts in data.tweet_stories:
        if ts.stories_id in members and ts.topic_tweets_id in tweet_ids:
            tweet_users[ts.stories_id].add(ts.twitter_user)
            normalized[ts.stories_id] += (ts.num_ch_tweets + 1) / (ts.tweet_count + 1)

    rows: list[StoryLinkCounts] = []
    for stories_id in sorted(members):
        story = stories.get(stories_id)
        tweeted = stories_id in tweet_users
        rows.append(
            StoryLinkCounts(
                stories_id=stories_id,
                media_inlink_count=len(media_inlinks.get(stories_id, ())),
                inlink_count=len(inlinks.get(stories_id, ())),
                outlink_count=len(outlinks.get(stories_id, ())),
                simple_tweet_count=len(tweet_users[stories_id]) if tweeted else None,
                normalized_tweet_count=normalized[stories_id] if tweeted else None,
                facebook_share_count=story.facebook_share_count if story else None,
            )
        )
    return rows


def medium_links(data: TopicData, story_links: Iterable[StoryLink]) -> list[MediumLink]:
    """Count story links between each ordered pair of media."""
    stories = data.stories_by_id()
    counts: dict[tuple[int, int], int] = defaultdict(int)
    for link in story_links:
        source = stories.get(link.stories_id)
        ref = stories.get(link.ref_stories_id)
        if source is None or ref is None:
            continue
        counts[(source.media_id, ref.media_id)] += 1

    return [
        MediumLink(source_media_id=a, ref_media_id=b, link_count=n)
        for (a, b), n in sorted(counts.items())
    ]


def medium_link_counts(
    data: TopicData,
    story_counts: Iterable[StoryLinkCounts],
    links: Iterable[MediumLink],
) -> list[MediumLinkCounts]:
    """Roll story counts up to their media."""
    stories = data.stories_by_id()

    by_medium: dict[int, list[StoryLinkCounts]] = defaultdict(list)
    for row in story_counts:
        story = stories.get(row.stories_id)
        if story is not None:
            by_medium[story.media_id].append(row)

    media_inlinks: dict[int, int] = defaultdict(int)
    for link in links:
        media_inlinks[link.ref_media_id] += 1

    rows: list[MediumLinkCounts] = []
    for media_id in sorted(by_medium):
        group = by_medium[media_id]
        rows.append(
            MediumLinkCounts(
                media_id=media_id,
                media_inlink_count=media_inlinks.get(media_id, 0),
                sum_media_inlink_count=sum(r.media_inlink_count for r in group),
                inlink_count=sum(r.inlink_count for r in group),
                outlink_count=sum(r.outlink_count for r in group),
                story_count=len(group),
                facebook_share_count=_sum_optional(r.facebook_share_count for r in group),
                simple_tweet_count=_sum_optional(r.simple_tweet_count for r in group),
                normalized_tweet_count=_sum_optional(r.normalized_tweet_count for r in group),
            )
        )
    return rows


def aggregate_timespan(
    data: TopicData,
    strategy: TopicStrategy,
    timespan: Timespan,
    period_stories: Collection[int],
) -> TimespanData:
    """Compute every aggregate table for a timespan from its membership."""
    tweets = timespan_tweets(data, timespan, period_stories)
    links = strategy.story_links(data, period_stories, tweets)
    story_counts = story_link_counts(data, period_stories, links, tweets)
    m_links = medium_links(data, links)
    m_counts = medium_link_counts(data, story_counts, m_links)

    logger.info(
        "Aggregated %s: %d stories, %d story links, %d media, %d medium links, %d tweets",
        timespan.label,
        len(story_counts),
        len(links),
        len(m_counts),
        len(m_links),
        len(tweets),
    )
    return TimespanData(
        story_ids=sorted(period_stories),
        story_links=links,
        story_link_counts=story_counts,
        medium_links=m_links,
        medium_link_counts=m_counts,
        timespan_tweets=tweets,
    )
