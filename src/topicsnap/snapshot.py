"""Snapshot orchestration: topic → timespans → membership → aggregates."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from topicsnap.aggregate import aggregate_timespan
from topicsnap.errors import ConfigurationError, FatalAggregationError, IntegrityError, TopicSnapError
from topicsnap.membership import resolve_period_stories
from topicsnap.models import BotPolicy, Focus, Period, Snapshot, Timespan, TimespanData, TopicData
from topicsnap.periods import parse_period, period_windows
from topicsnap.search import SearchIndex
from topicsnap.store import SnapshotStore
from topicsnap.strategies import TopicStrategy, select_strategy

logger = logging.getLogger(__name__)

ALLOWED_PERIODS: tuple[Period, ...] = (Period.CUSTOM, Period.OVERALL, Period.WEEKLY, Period.MONTHLY)


def validate_periods(periods: Iterable[str | Period] | None) -> list[Period]:
    """Return the requested periods, or every period when none are given."""
    requested = list(periods or [])
    if not requested:
        return list(ALLOWED_PERIODS)
    return [parse_period(p) for p in requested]


def create_timespan(
    store: SnapshotStore,
    snapshot: Snapshot,
    start_date: datetime,
    end_date: datetime,
    period: Period,
    focus: Focus | None = None,
) -> Timespan:
    """Return the timespan with this identity, creating it if it does not exist."""
    foci_id = focus.foci_id if focus else None
    existing = store.find_timespan(snapshot.snapshots_id, start_date, end_date, period, foci_id)
    if existing is not None:
        return existing
    return store.insert_timespan(snapshot.snapshots_id, start_date, end_date, period, foci_id)


def _check_written(store: SnapshotStore, timespan: Timespan, data: TimespanData) -> None:
    expected = {
        "story_links": len(data.story_links),
        "story_link_counts": len(data.story_link_counts),
        "medium_links": len(data.medium_links),
        "medium_link_counts": len(data.medium_link_counts),
        "timespan_tweets": len(data.timespan_tweets),
    }
    for table, count in expected.items():
        found = store.count_rows(table, timespan.timespans_id)
        if found != count:
            raise IntegrityError(f"{table} holds {found} rows, expected {count}")


def generate_timespan_data(
    store: SnapshotStore,
    data: TopicData,
    timespan: Timespan,
    *,
    strategy: TopicStrategy | None = None,
    focus: Focus | None = None,
    search_index: SearchIndex | None = None,
    **restrict_kwargs,
) -> Timespan:
    """Compute and store the aggregates of *timespan* unless they already exist."""
    if store.timespan_data_exists(timespan.timespans_id):
        logger.debug("timespan already exists.  skipping ...")
        return timespan

    strategy = strategy or select_strategy(data.topic)
    stage = "membership"
    try:
        stories = resolve_period_stories(
            data, strategy, timespan, focus, search_index, **restrict_kwargs
        )

        stage = "aggregation"
        result = aggregate_timespan(data, strategy, timespan, stories)

        stage = "write"
        store.write_timespan_data(timespan.timespans_id, result)
        _check_written(store, timespan, result)

        timespan = timespan.model_copy(
            update={
                "story_count": len(result.story_link_counts),
                "story_link_count": len(result.story_links),
                "medium_count": len(result.medium_link_counts),
                "medium_link_count": len(result.medium_links),
                "tweet_count": len(result.timespan_tweets),
            }
        )
        store.update_timespan_counts(timespan)
    except TopicSnapError as exc:
        exc.add_context(timespan=timespan.label, stage=stage)
        logger.error("Timespan %s failed during %s: %s", timespan.label, stage, exc)
        raise
    except Exception as exc:
        logger.exception("Timespan %s failed during %s", timespan.label, stage)
        raise FatalAggregationError(
            f"{type(exc).__name__}: {exc}", timespan=timespan.label, stage=stage
        ) from exc

    return timespan


def compute_timespan(
    store: SnapshotStore,
    data: TopicData,
    snapshot: Snapshot,
    period: str | Period,
    start_date: datetime,
    end_date: datetime,
    focus: Focus | None = None,
    **kwargs,
) -> Timespan:
    """Create (or find) a timespan and fill in its aggregates. Idempotent."""
    period = parse_period(period)
    timespan = create_timespan(store, snapshot, start_date, end_date, period, focus)

    label = timespan.label
    if focus is not None:
        label += f" [{focus.name}]"
    logger.info("generating %s ...", label)

    return generate_timespan_data(store, data, timespan, focus=focus, **kwargs)


def generate_period_timespans(
    store: SnapshotStore,
    data: TopicData,
    snapshot: Snapshot,
    period: str | Period,
    focus: Focus | None = None,
    **kwargs,
) -> list[Timespan]:
    """Compute every timespan of one period kind for a snapshot."""
    period = parse_period(period)
    custom_dates = store.topic_dates(snapshot.topics_id) if period is Period.CUSTOM else ()
    return [
        compute_timespan(store, data, snapshot, period, start, end, focus, **kwargs)
        for start, end in period_windows(period, snapshot.start_date, snapshot.end_date, custom_dates)
    ]


def _generate_focus_timespans(
    store: SnapshotStore,
    data: TopicData,
    snapshot: Snapshot,
    periods: list[Period],
    **kwargs,
) -> list[Timespan]:
    timespans: list[Timespan] = []
    for fsd in store.focal_set_definitions(snapshot.topics_id, focal_technique="Boolean Query"):
        focal_set = store.upsert_focal_set(snapshot.snapshots_id, fsd)
        for fd in store.focus_definitions(fsd.focal_set_definitions_id):
            focus = store.upsert_focus(focal_set.focal_sets_id, fd)
            for period in periods:
                timespans.extend(
                    generate_period_timespans(store, data, snapshot, period, focus, **kwargs)
                )
    return timespans


def snapshot_topic(
    store: SnapshotStore,
    topics_id: int,
    snapshots_id: int | None = None,
    note: str = "",
    bot_policy: str | BotPolicy | None = None,
    periods: Iterable[str | Period] | None = None,
    *,
    search_index: SearchIndex | None = None,
    now: datetime | None = None,
    **restrict_kwargs,
) -> Snapshot:
    """Snapshot a topic: every period's timespans, with and without each focus.

    An existing snapshot is reused when *snapshots_id* is given; its existing
    timespans are found rather than recomputed.
    """
    period_list = validate_periods(periods)

    topic = store.get_topic(topics_id)
    if topic is None:
        raise ConfigurationError(f"Unable to find topic '{topics_id}'")

    if snapshots_id is not None:
        snapshot = store.require_snapshot(snapshots_id)
    else:
        policy = BotPolicy(bot_policy) if bot_policy else BotPolicy.NO_BOTS
        snapshot = store.create_snapshot(topic, note=note, bot_policy=policy)

    logger.info(
        "=== snapshot %d start [topic=%d periods=%s] ===",
        snapshot.snapshots_id,
        topics_id,
        ",".join(p.value for p in period_list),
    )

    kwargs = {"search_index": search_index, **restrict_kwargs}

    try:
        data = store.load_topic_data(topic, snapshot.bot_policy, now=now)
        for period in period_list:
            generate_period_timespans(store, data, snapshot, period, None, **kwargs)
        _generate_focus_timespans(store, data, snapshot, period_list, **kwargs)
    except Exception:
        store.update_snapshot_state(snapshot.snapshots_id, "error")
        raise

    store.update_snapshot_state(snapshot.snapshots_id, "completed")
    logger.info("=== snapshot %d done ===", snapshot.snapshots_id)
    return store.require_snapshot(snapshot.snapshots_id)
