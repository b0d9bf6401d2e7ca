"""Period membership: which stories belong to a timespan."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Collection

from topicsnap import config
from topicsnap.errors import ConfigurationError, FatalAggregationError, TransientBackendError
from topicsnap.models import Focus, Period, Timespan, TopicData
from topicsnap.search import SearchIndex
from topicsnap.strategies import TopicStrategy

logger = logging.getLogger(__name__)


def validate_focus_query(query: str | None) -> str:
    if not query or not query.strip():
        raise ConfigurationError(f"focus boolean query '{query}' must include non-space character")
    return query


def restrict_to_focus(
    story_ids: Collection[int],
    query: str,
    search_index: SearchIndex | None,
    *,
    chunk_size: int = config.FOCUS_CHUNK_SIZE,
    min_chunk_size: int = config.FOCUS_MIN_CHUNK_SIZE,
    max_errors: int = config.FOCUS_MAX_SEARCH_ERRORS,
    sleep: Callable[[float], None] = time.sleep,
) -> set[int]:
    """Keep only the stories the search index confirms match *query*.

    Ids are sent in batches. A failed batch is retried with half the batch
    size (never below *min_chunk_size*) after an exponential pause; more than
    *max_errors* failures aborts with :class:`FatalAggregationError`.
    """
    query = validate_focus_query(query)

    if not story_ids:
        return set()
    if search_index is None:
        raise ConfigurationError("focus restriction requires a search index (set SOLR_URL)")

    pending = sorted(story_ids)
    matching: set[int] = set()
    error_count = 0

    while pending:
        size = min(chunk_size, len(pending))
        chunk, pending = pending[:size], pending[size:]

        try:
            found = search_index.search_for_story_ids(query, chunk)
        except TransientBackendError as exc:
            error_count += 1
            if error_count > max_errors:
                raise FatalAggregationError(f"too many search errors: {exc}", stage="focus") from exc

            chunk_size = max(chunk_size // 2, min_chunk_size)
            pending = chunk + pending
            pause = int(2 ** (error_count / 5))
            logger.warning(
                "Search error %d/%d, retrying with chunk size %d in %ds: %s",
                error_count,
                max_errors,
                chunk_size,
                pause,
                exc,
            )
            sleep(pause)
            continue

        matching.update(int(sid) for sid in found)

    # never admit ids the backend invented
    restricted = matching & set(story_ids)
    logger.debug("restricting timespan to focus query: %d stories", len(restricted))
    return restricted


def resolve_period_stories(
    data: TopicData,
    strategy: TopicStrategy,
    timespan: Timespan,
    focus: Focus | None = None,
    search_index: SearchIndex | None = None,
    **restrict_kwargs,
) -> set[int]:
    """Return the ids of all stories in *timespan*.

    The overall period takes every story in the topic. Other periods defer to
    the topic's strategy. A focus then narrows the set through the search
    index.
    """
    if focus is not None:
        validate_focus_query(focus.query)

    if timespan.period is Period.OVERALL:
        stories = {s.stories_id for s in data.stories}
    else:
        stories = strategy.period_stories(data, timespan)

    logger.debug("num_period_stories: %d", len(stories))

    if focus is not None:
        stories = restrict_to_focus(stories, focus.query, search_index, **restrict_kwargs)

    return stories
