"""Topic strategies: how a topic decides period membership and story links.

Link topics use publish dates and the hyperlink graph. Twitter topics use
tweet dates and co-sharing by the same user. The strategy is chosen once per
topic with :func:`select_strategy`.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Collection
from datetime import datetime, timedelta
from typing import Protocol

from topicsnap.models import StoryLink, Timespan, Topic, TopicData

logger = logging.getLogger(__name__)


class TopicStrategy(Protocol):
    name: str

    def period_stories(self, data: TopicData, timespan: Timespan) -> set[int]:
        """Return the ids of stories that belong to a non-overall timespan."""
        ...

    def story_links(
        self,
        data: TopicData,
        period_stories: Collection[int],
        timespan_tweets: Collection[int],
    ) -> list[StoryLink]:
        """Return the distinct story links for the timespan."""
        ...


def _in_link_window(d: datetime | None, timespan: Timespan) -> bool:
    # end_date is exclusive, expressed as an inclusive bound one second earlier
    if d is None:
        return False
    return timespan.start_date <= d <= timespan.end_date - timedelta(seconds=1)


class LinkTopicStrategy:
    """Membership by story date or linking story date; edges from hyperlinks."""

    name = "link"

    def period_stories(self, data: TopicData, timespan: Timespan) -> set[int]:
        undateable = data.undateable_stories_ids
        stories = data.stories_by_id()

        def dated_in_window(stories_id: int) -> bool:
            story = stories.get(stories_id)
            return (
                story is not None
                and stories_id not in undateable
                and _in_link_window(story.publish_date, timespan)
            )

        selected = {sid for sid in stories if dated_in_window(sid)}
        for link in data.links:
            if link.ref_stories_id in stories and dated_in_window(link.stories_id):
                selected.add(link.ref_stories_id)

        logger.debug("link strategy selected %d stories for %s", len(selected), timespan.label)
        return selected

    def story_links(
        self,
        data: TopicData,
        period_stories: Collection[int],
        timespan_tweets: Collection[int],
    ) -> list[StoryLink]:
        members = set(period_stories)
        pairs = {
            (link.stories_id, link.ref_stories_id)
            for link in data.links
            if link.stories_id in members
            and link.ref_stories_id in members
            and link.stories_id not in data.syndicated_stories_ids
        }
        return [StoryLink(stories_id=a, ref_stories_id=b) for a, b in sorted(pairs)]


class TwitterTopicStrategy:
    """Membership by tweet date; edges from same-user, same-day co-sharing."""

    name = "twitter"

    def period_stories(self, data: TopicData, timespan: Timespan) -> set[int]:
        selected = {
            ts.stories_id
            for ts in data.tweet_stories
            if timespan.start_date <= ts.publish_date < timespan.end_date
        }
        logger.debug("twitter strategy selected %d stories for %s", len(selected), timespan.label)
        return selected

    def story_links(
        self,
        data: TopicData,
        period_stories: Collection[int],
        timespan_tweets: Collection[int],
    ) -> list[StoryLink]:
        members = set(period_stories)
        tweet_ids = set(timespan_tweets)

        # (user, day) -> {(stories_id, media_id)}
        shared: dict[tuple[str, object], set[tuple[int, int]]] = defaultdict(set)
        for ts in data.tweet_stories:
            if ts.topic_tweets_id in tweet_ids and ts.stories_id in members:
                shared[(ts.twitter_user, ts.publish_date.date())].add((ts.stories_id, ts.media_id))

        pairs: set[tuple[int, int]] = set()
        for stories in shared.values():
            for a_story, a_medium in stories:
                for b_story, b_medium in stories:
                    if a_medium != b_medium:
                        pairs.add((a_story, b_story))

        return [StoryLink(stories_id=a, ref_stories_id=b) for a, b in sorted(pairs)]


def select_strategy(topic: Topic) -> TopicStrategy:
    if topic.is_twitter_topic:
        return TwitterTopicStrategy()
    return LinkTopicStrategy()
