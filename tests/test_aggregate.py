"""Unit tests for timespan link aggregation."""

from datetime import datetime

from topicsnap.aggregate import aggregate_timespan, timespan_tweets
from topicsnap.models import (
    Medium,
    Period,
    Story,
    StoryLink,
    Timespan,
    Topic,
    TopicData,
    TweetStory,
)
from topicsnap.strategies import LinkTopicStrategy, TwitterTopicStrategy

DAY = datetime(2020, 1, 8)


def _timespan(period: Period = Period.OVERALL) -> Timespan:
    return Timespan(
        timespans_id=1,
        snapshots_id=1,
        start_date=datetime(2020, 1, 6),
        end_date=datetime(2020, 1, 13),
        period=period,
    )


def _make_data(twitter: bool = False, syndicated: set[int] | None = None) -> TopicData:
    return TopicData(
        topic=Topic(
            topics_id=1,
            name="t",
            start_date=datetime(2020, 1, 1),
            end_date=datetime(2020, 2, 1),
            is_twitter_topic=twitter,
        ),
        media=[
            Medium(media_id=1, name="one", url="https://one.example"),
            Medium(media_id=2, name="two", url="https://two.example"),
            Medium(media_id=3, name="three", url="https://three.example"),
            Medium(media_id=4, name="twitter", url="https://twitter.com"),
        ],
        stories=[
            Story(stories_id=10, media_id=1, publish_date=DAY, facebook_share_count=5),
            Story(stories_id=11, media_id=1, publish_date=DAY),
            Story(stories_id=20, media_id=2, publish_date=DAY, facebook_share_count=7),
            Story(stories_id=30, media_id=3, publish_date=DAY),
            Story(stories_id=40, media_id=4, publish_date=DAY),
        ],
        links=[
            StoryLink(stories_id=10, ref_stories_id=20),
            StoryLink(stories_id=11, ref_stories_id=20),
            StoryLink(stories_id=30, ref_stories_id=20),
            StoryLink(stories_id=20, ref_stories_id=30),
        ],
        syndicated_stories_ids=syndicated or set(),
    )


def _tweet(tweet_id: int, stories_id: int, media_id: int, user: str, when: datetime = DAY) -> TweetStory:
    return TweetStory(
        topic_tweets_id=tweet_id,
        stories_id=stories_id,
        media_id=media_id,
        twitter_user=user,
        publish_date=when,
    )


class TestLinkAggregation:
    def _aggregate(self, data: TopicData):
        stories = {s.stories_id for s in data.stories}
        return aggregate_timespan(data, LinkTopicStrategy(), _timespan(), stories)

    def test_story_counts(self) -> None:
        result = self._aggregate(_make_data())
        counts = {c.stories_id: c for c in result.story_link_counts}
        assert counts[20].media_inlink_count == 2
        assert counts[20].inlink_count == 3
        assert counts[20].outlink_count == 1
        assert counts[10].outlink_count == 1
        assert counts[10].facebook_share_count == 5

    def test_medium_links(self) -> None:
        result = self._aggregate(_make_data())
        links = {(m.source_media_id, m.ref_media_id): m.link_count for m in result.medium_links}
        assert links == {(1, 2): 2, (2, 3): 1, (3, 2): 1}

    def test_medium_counts(self) -> None:
        result = self._aggregate(_make_data())
        counts = {c.media_id: c for c in result.medium_link_counts}
        assert counts[2].media_inlink_count == 2
        assert counts[2].sum_media_inlink_count == 2
        assert counts[2].inlink_count == 3
        assert counts[1].story_count == 2
        assert counts[1].outlink_count == 2
        assert counts[1].facebook_share_count == 5
        assert counts[3].facebook_share_count is None

    def test_syndicated_source_links_are_dropped(self) -> None:
        result = self._aggregate(_make_data(syndicated={10}))
        assert StoryLink(stories_id=10, ref_stories_id=20) not in result.story_links
        assert len(result.story_links) == 3

    def test_links_outside_membership_are_dropped(self) -> None:
        data = _make_data()
        result = aggregate_timespan(data, LinkTopicStrategy(), _timespan(), {10, 20})
        assert result.story_links == [StoryLink(stories_id=10, ref_stories_id=20)]

    def test_recomputing_is_identical(self) -> None:
        data = _make_data()
        assert self._aggregate(data) == self._aggregate(data)


class TestTimespanTweets:
    def test_twitter_media_are_ignored(self) -> None:
        data = _make_data()
        data.tweet_stories = [_tweet(1, 10, 1, "a"), _tweet(2, 40, 4, "a")]
        assert timespan_tweets(data, _timespan(), {10, 40}) == [1]

    def test_dated_periods_use_tweet_date(self) -> None:
        data = _make_data()
        data.tweet_stories = [_tweet(1, 10, 1, "a"), _tweet(2, 10, 1, "b", datetime(2020, 1, 13))]
        assert timespan_tweets(data, _timespan(Period.WEEKLY), {10}) == [1]
        assert timespan_tweets(data, _timespan(Period.OVERALL), {10}) == [1, 2]


class TestTwitterAggregation:
    def test_co_shared_stories_link_across_media(self) -> None:
        data = _make_data(twitter=True)
        data.tweet_stories = [
            _tweet(1, 10, 1, "alice"),
            _tweet(2, 20, 2, "alice"),
            _tweet(3, 10, 1, "bob"),
            _tweet(4, 11, 1, "bob"),
        ]
        strategy = TwitterTopicStrategy()
        timespan = _timespan(Period.WEEKLY)
        stories = strategy.period_stories(data, timespan)
        result = aggregate_timespan(data, strategy, timespan, stories)

        assert result.story_links == [
            StoryLink(stories_id=10, ref_stories_id=20),
            StoryLink(stories_id=20, ref_stories_id=10),
        ]
        counts = {c.stories_id: c for c in result.story_link_counts}
        assert counts[10].simple_tweet_count == 2
        assert counts[10].normalized_tweet_count == 2.0

    def test_different_days_do_not_link(self) -> None:
        data = _make_data(twitter=True)
        data.tweet_stories = [
            _tweet(1, 10, 1, "alice", datetime(2020, 1, 7)),
            _tweet(2, 20, 2, "alice", datetime(2020, 1, 8)),
        ]
        strategy = TwitterTopicStrategy()
        timespan = _timespan(Period.WEEKLY)
        result = aggregate_timespan(data, strategy, timespan, strategy.period_stories(data, timespan))
        assert result.story_links == []

    def test_tweet_window_includes_start_and_excludes_end(self) -> None:
        data = _make_data(twitter=True)
        data.tweet_stories = [
            _tweet(1, 10, 1, "alice", datetime(2020, 1, 6)),
            _tweet(2, 20, 2, "bob", datetime(2020, 1, 13)),
            _tweet(3, 30, 3, "carol", datetime(2020, 1, 12, 23, 59, 59)),
        ]
        stories = TwitterTopicStrategy().period_stories(data, _timespan(Period.WEEKLY))
        assert stories == {10, 30}
