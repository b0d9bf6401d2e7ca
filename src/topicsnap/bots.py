"""Bot classification for tweet-driven topics.

An account is a bot when it averages at least ``BOT_TWEETS_PER_DAY`` tweets
per day over its lifetime.
"""

from __future__ import annotations

from datetime import datetime

from topicsnap.config import BOT_TWEETS_PER_DAY
from topicsnap.models import BotPolicy, naive_utc


def account_age_days(created_at: datetime | None, now: datetime) -> int | None:
    """Whole days between account creation and *now*, or None if unknown."""
    if created_at is None:
        return None
    return (naive_utc(now) - naive_utc(created_at)).days


def tweets_per_day(tweets: int | None, days: float | None) -> float:
    # Unknown or sub-day ages count as one day.
    days = days if days and days >= 1 else 1
    return (tweets or 0) / days


def is_bot(tweets: int | None, days: float | None) -> bool:
    return tweets_per_day(tweets, days) >= BOT_TWEETS_PER_DAY


def include_account(policy: BotPolicy | str, tweets: int | None, days: float | None) -> bool:
    """Return True if an account's tweets pass the snapshot's bot policy."""
    policy = BotPolicy(policy)
    if policy is BotPolicy.NO_BOTS:
        return not is_bot(tweets, days)
    if policy is BotPolicy.ONLY_BOTS:
        return is_bot(tweets, days)
    return True
