"""SQLite-backed store for topic content, snapshots, timespans and aggregates."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from topicsnap.bots import account_age_days, include_account
from topicsnap.errors import IntegrityError
from topicsnap.models import (
    BotPolicy,
    FocalSet,
    FocalSetDefinition,
    Focus,
    FocusDefinition,
    Medium,
    MediumLink,
    MediumLinkCounts,
    Period,
    Snapshot,
    Story,
    StoryLink,
    Tag,
    TagSet,
    Timespan,
    TimespanData,
    Topic,
    TopicData,
    TweetStory,
    naive_utc,
)

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS topics (
    topics_id              INTEGER PRIMARY KEY,
    name                   TEXT NOT NULL,
    start_date             TEXT NOT NULL,
    end_date               TEXT NOT NULL,
    is_twitter_topic       INTEGER NOT NULL DEFAULT 0,
    media_type_tag_sets_id INTEGER
);
CREATE TABLE IF NOT EXISTS topic_dates (
    topics_id  INTEGER NOT NULL,
    start_date TEXT NOT NULL,
    end_date   TEXT NOT NULL,
    UNIQUE (topics_id, start_date, end_date)
);
CREATE TABLE IF NOT EXISTS media (
    media_id INTEGER PRIMARY KEY,
    name     TEXT NOT NULL,
    url      TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS stories (
    stories_id           INTEGER PRIMARY KEY,
    topics_id            INTEGER NOT NULL,
    media_id             INTEGER NOT NULL,
    url                  TEXT NOT NULL DEFAULT '',
    title                TEXT NOT NULL DEFAULT '',
    publish_date         TEXT,
    facebook_share_count INTEGER,
    ap_syndicated        INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS topic_links (
    topics_id      INTEGER NOT NULL,
    stories_id     INTEGER NOT NULL,
    ref_stories_id INTEGER NOT NULL,
    UNIQUE (topics_id, stories_id, ref_stories_id)
);
CREATE TABLE IF NOT EXISTS tag_sets (
    tag_sets_id INTEGER PRIMARY KEY,
    name        TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS tags (
    tags_id     INTEGER PRIMARY KEY,
    tag_sets_id INTEGER NOT NULL,
    tag         TEXT NOT NULL,
    label       TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS stories_tags_map (
    stories_id INTEGER NOT NULL,
    tags_id    INTEGER NOT NULL,
    UNIQUE (stories_id, tags_id)
);
CREATE TABLE IF NOT EXISTS media_tags_map (
    media_id INTEGER NOT NULL,
    tags_id  INTEGER NOT NULL,
    UNIQUE (media_id, tags_id)
);
CREATE TABLE IF NOT EXISTS tweet_stories (
    topics_id       INTEGER NOT NULL,
    topic_tweets_id INTEGER NOT NULL,
    stories_id      INTEGER NOT NULL,
    twitter_user    TEXT NOT NULL,
    publish_date    TEXT NOT NULL,
    num_ch_tweets   INTEGER NOT NULL DEFAULT 0,
    tweet_count     INTEGER NOT NULL DEFAULT 0,
    user_tweets     INTEGER,
    user_created_at TEXT,
    UNIQUE (topics_id, topic_tweets_id, stories_id)
);
CREATE TABLE IF NOT EXISTS snapshots (
    snapshots_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    topics_id     INTEGER NOT NULL,
    start_date    TEXT NOT NULL,
    end_date      TEXT NOT NULL,
    snapshot_date TEXT NOT NULL,
    note          TEXT NOT NULL DEFAULT '',
    bot_policy    TEXT NOT NULL DEFAULT 'no bots',
    state         TEXT NOT NULL DEFAULT 'running'
);
CREATE TABLE IF NOT EXISTS focal_set_definitions (
    focal_set_definitions_id INTEGER PRIMARY KEY AUTOINCREMENT,
    topics_id                INTEGER NOT NULL,
    name                     TEXT NOT NULL,
    description              TEXT NOT NULL DEFAULT '',
    focal_technique          TEXT NOT NULL DEFAULT 'Boolean Query',
    UNIQUE (topics_id, name)
);
CREATE TABLE IF NOT EXISTS focus_definitions (
    focus_definitions_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    focal_set_definitions_id INTEGER NOT NULL,
    name                     TEXT NOT NULL,
    description              TEXT NOT NULL DEFAULT '',
    query                    TEXT NOT NULL,
    UNIQUE (focal_set_definitions_id, name)
);
CREATE TABLE IF NOT EXISTS focal_sets (
    focal_sets_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    snapshots_id    INTEGER NOT NULL,
    name            TEXT NOT NULL,
    description     TEXT NOT NULL DEFAULT '',
    focal_technique TEXT NOT NULL,
    UNIQUE (snapshots_id, name)
);
CREATE TABLE IF NOT EXISTS foci (
    foci_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    focal_sets_id INTEGER NOT NULL,
    name          TEXT NOT NULL,
    description   TEXT NOT NULL DEFAULT '',
    query         TEXT NOT NULL,
    UNIQUE (focal_sets_id, name)
);
CREATE TABLE IF NOT EXISTS timespans (
    timespans_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    snapshots_id      INTEGER NOT NULL,
    start_date        TEXT NOT NULL,
    end_date          TEXT NOT NULL,
    period            TEXT NOT NULL,
    foci_id           INTEGER,
    story_count       INTEGER NOT NULL DEFAULT 0,
    story_link_count  INTEGER NOT NULL DEFAULT 0,
    medium_count      INTEGER NOT NULL DEFAULT 0,
    medium_link_count INTEGER NOT NULL DEFAULT 0,
    tweet_count       INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS story_links (
    timespans_id      INTEGER NOT NULL,
    source_stories_id INTEGER NOT NULL,
    ref_stories_id    INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS story_link_counts (
    timespans_id           INTEGER NOT NULL,
    stories_id             INTEGER NOT NULL,
    media_inlink_count     INTEGER NOT NULL,
    inlink_count           INTEGER NOT NULL,
    outlink_count          INTEGER NOT NULL,
    simple_tweet_count     INTEGER,
    normalized_tweet_count REAL,
    facebook_share_count   INTEGER
);
CREATE TABLE IF NOT EXISTS medium_links (
    timespans_id    INTEGER NOT NULL,
    source_media_id INTEGER NOT NULL,
    ref_media_id    INTEGER NOT NULL,
    link_count      INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS medium_link_counts (
    timespans_id           INTEGER NOT NULL,
    media_id               INTEGER NOT NULL,
    media_inlink_count     INTEGER NOT NULL,
    sum_media_inlink_count INTEGER NOT NULL,
    inlink_count           INTEGER NOT NULL,
    outlink_count          INTEGER NOT NULL,
    story_count            INTEGER NOT NULL,
    facebook_share_count   INTEGER,
    simple_tweet_count     INTEGER,
    normalized_tweet_count REAL
);
CREATE TABLE IF NOT EXISTS timespan_tweets (
    timespans_id    INTEGER NOT NULL,
    topic_tweets_id INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS color_sets (
    color_set TEXT NOT NULL,
    id        TEXT NOT NULL,
    color     TEXT NOT NULL,
    UNIQUE (color_set, id)
);
"""

# Tables holding one timespan's aggregate rows, in write order.
TIMESPAN_TABLES = (
    "story_links",
    "story_link_counts",
    "medium_links",
    "medium_link_counts",
    "timespan_tweets",
)


def _iso(d: datetime | None) -> str | None:
    return naive_utc(d).isoformat() if d else None


class SnapshotStore:
    """Relational store for one topic-mapping database.

    Topic content (media, stories, links, tags, tweet stories) is written by
    the crawler that feeds this database through the ``add_*`` and ``tag_*``
    methods; the CLI only loads topic definitions and reads content back.
    """

    def __init__(self, db_path: Path) -> None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._init_db()

    # ── topic content ───────────────────────────────────────────────────

    def add_topic(self, topic: Topic) -> None:
        self._insert_many("topics", [topic.model_dump()])

    def get_topic(self, topics_id: int) -> Topic | None:
        row = self._fetch_one("SELECT * FROM topics WHERE topics_id = ?", (topics_id,))
        return Topic.model_validate(row) if row else None

    def add_topic_date(self, topics_id: int, start_date: datetime, end_date: datetime) -> None:
        self._insert_many(
            "topic_dates",
            [{"topics_id": topics_id, "start_date": _iso(start_date), "end_date": _iso(end_date)}],
            ignore=True,
        )

    def topic_dates(self, topics_id: int) -> list[tuple[datetime, datetime]]:
        rows = self._fetch_all(
            "SELECT start_date, end_date FROM topic_dates WHERE topics_id = ? "
            "ORDER BY start_date, end_date",
            (topics_id,),
        )
        return [
            (datetime.fromisoformat(r["start_date"]), datetime.fromisoformat(r["end_date"]))
            for r in rows
        ]

    def add_media(self, media: Iterable[Medium]) -> None:
        self._insert_many("media", [m.model_dump() for m in media])

    def add_stories(
        self, topics_id: int, stories: Iterable[Story], syndicated: Iterable[int] = ()
    ) -> None:
        ap = set(syndicated)
        rows = []
        for story in stories:
            row = story.model_dump()
            row["publish_date"] = _iso(story.publish_date)
            row["topics_id"] = topics_id
            row["ap_syndicated"] = int(story.stories_id in ap)
            rows.append(row)
        self._insert_many("stories", rows)

    def add_links(self, topics_id: int, links: Iterable[StoryLink]) -> None:
        self._insert_many(
            "topic_links",
            [{"topics_id": topics_id, **link.model_dump()} for link in links],
            ignore=True,
        )

    def add_tag_sets(self, tag_sets: Iterable[TagSet]) -> None:
        self._insert_many("tag_sets", [t.model_dump() for t in tag_sets])

    def add_tags(self, tags: Iterable[Tag]) -> None:
        self._insert_many("tags", [t.model_dump() for t in tags])

    def tag_stories(self, tags_id: int, stories_ids: Iterable[int]) -> None:
        self._insert_many(
            "stories_tags_map",
            [{"stories_id": sid, "tags_id": tags_id} for sid in stories_ids],
            ignore=True,
        )

    def tag_media(self, tags_id: int, media_ids: Iterable[int]) -> None:
        self._insert_many(
            "media_tags_map",
            [{"media_id": mid, "tags_id": tags_id} for mid in media_ids],
            ignore=True,
        )

    def add_tweet_stories(self, topics_id: int, tweet_stories: Iterable[TweetStory]) -> None:
        rows = []
        for ts in tweet_stories:
            row = ts.model_dump(exclude={"media_id"})
            row["topics_id"] = topics_id
            row["publish_date"] = _iso(ts.publish_date)
            row["user_created_at"] = _iso(ts.user_created_at)
            rows.append(row)
        self._insert_many("tweet_stories", rows, ignore=True)

    def media(self, media_ids: Iterable[int] | None = None) -> list[Medium]:
        if media_ids is None:
            rows = self._fetch_all("SELECT * FROM media ORDER BY media_id")
        else:
            rows = self._fetch_in("SELECT * FROM media WHERE media_id IN ({ids})", media_ids)
        return [Medium.model_validate(r) for r in rows]

    def media_tags(self, media_ids: Iterable[int]) -> list[dict[str, Any]]:
        """Return ``media_id, tags_id, tag, label, tag_sets_id, tag_set`` rows."""
        return self._fetch_in(
            """
            SELECT mtm.media_id, t.tags_id, t.tag, t.label, ts.tag_sets_id, ts.name AS tag_set
            FROM media_tags_map mtm
                JOIN tags t ON t.tags_id = mtm.tags_id
                JOIN tag_sets ts ON ts.tag_sets_id = t.tag_sets_id
            WHERE mtm.media_id IN ({ids})
            ORDER BY mtm.media_id, t.tags_id
            """,
            media_ids,
        )

    def load_topic_data(
        self,
        topic: Topic,
        bot_policy: BotPolicy = BotPolicy.NO_BOTS,
        now: datetime | None = None,
    ) -> TopicData:
        """Copy a topic's content into a :class:`TopicData` for one snapshot.

        Only links between stories of different media are kept, and tweet
        stories are filtered by *bot_policy*.
        """
        now = naive_utc(now) if now else datetime.now(UTC).replace(tzinfo=None)
        tid = topic.topics_id

        story_rows = self._fetch_all(
            "SELECT * FROM stories WHERE topics_id = ? ORDER BY stories_id", (tid,)
        )
        stories = [Story.model_validate(r) for r in story_rows]
        syndicated = {r["stories_id"] for r in story_rows if r["ap_syndicated"]}

        media = [
            Medium.model_validate(r)
            for r in self._fetch_all(
                "SELECT * FROM media WHERE media_id IN "
                "(SELECT media_id FROM stories WHERE topics_id = ?) ORDER BY media_id",
                (tid,),
            )
        ]

        links = [
            StoryLink.model_validate(r)
            for r in self._fetch_all(
                """
                SELECT DISTINCT cl.stories_id, cl.ref_stories_id
                FROM topic_links cl
                    JOIN stories s ON s.stories_id = cl.stories_id AND s.topics_id = cl.topics_id
                    JOIN stories r ON r.stories_id = cl.ref_stories_id AND r.topics_id = cl.topics_id
                WHERE cl.topics_id = ? AND s.media_id <> r.media_id
                ORDER BY cl.stories_id, cl.ref_stories_id
                """,
                (tid,),
            )
        ]

        undateable = {
            r["stories_id"]
            for r in self._fetch_all(
                """
                SELECT DISTINCT stm.stories_id
                FROM stories_tags_map stm
                    JOIN stories s ON s.stories_id = stm.stories_id
                    JOIN tags t ON t.tags_id = stm.tags_id
                    JOIN tag_sets ts ON ts.tag_sets_id = t.tag_sets_id
                WHERE s.topics_id = ? AND ts.name = 'date_invalid' AND t.tag = 'undateable'
                """,
                (tid,),
            )
        }

        tweet_stories: list[TweetStory] = []
        dropped = 0
        for r in self._fetch_all(
            """
            SELECT ts.*, s.media_id
            FROM tweet_stories ts
                JOIN stories s ON s.stories_id = ts.stories_id AND s.topics_id = ts.topics_id
            WHERE ts.topics_id = ?
            ORDER BY ts.topic_tweets_id, ts.stories_id
            """,
            (tid,),
        ):
            tweet_story = TweetStory.model_validate(r)
            days = account_age_days(tweet_story.user_created_at, now)
            if include_account(bot_policy, tweet_story.user_tweets, days):
                tweet_stories.append(tweet_story)
            else:
                dropped += 1
        if dropped:
            logger.info("Bot policy '%s' dropped %d tweet stories", BotPolicy(bot_policy).value, dropped)

        return TopicData(
            topic=topic,
            stories=stories,
            media=media,
            links=links,
            tweet_stories=tweet_stories,
            undateable_stories_ids=undateable,
            syndicated_stories_ids=syndicated,
        )

    # ── snapshots and foci ──────────────────────────────────────────────

    def create_snapshot(
        self, topic: Topic, note: str = "", bot_policy: BotPolicy = BotPolicy.NO_BOTS
    ) -> Snapshot:
        row = {
            "topics_id": topic.topics_id,
            "start_date": _iso(topic.start_date),
            "end_date": _iso(topic.end_date),
            "snapshot_date": datetime.now(UTC).replace(tzinfo=None).isoformat(),
            "note": note,
            "bot_policy": BotPolicy(bot_policy).value,
        }
        snapshots_id = self._insert_returning_id("snapshots", row)
        return self.require_snapshot(snapshots_id)

    def require_snapshot(self, snapshots_id: int) -> Snapshot:
        row = self._fetch_one("SELECT * FROM snapshots WHERE snapshots_id = ?", (snapshots_id,))
        if row is None:
            raise IntegrityError(f"snapshot {snapshots_id} does not exist")
        return Snapshot.model_validate(row)

    def update_snapshot_state(self, snapshots_id: int, state: str) -> None:
        self._execute("UPDATE snapshots SET state = ? WHERE snapshots_id = ?", (state, snapshots_id))

    def add_focal_set_definition(
        self, topics_id: int, name: str, description: str = "", focal_technique: str = "Boolean Query"
    ) -> FocalSetDefinition:
        self._execute(
            """
            INSERT INTO focal_set_definitions (topics_id, name, description, focal_technique)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (topics_id, name)
                DO UPDATE SET description = excluded.description,
                              focal_technique = excluded.focal_technique
            """,
            (topics_id, name, description, focal_technique),
        )
        row = self._fetch_one(
            "SELECT * FROM focal_set_definitions WHERE topics_id = ? AND name = ?", (topics_id, name)
        )
        return FocalSetDefinition.model_validate(row)

    def add_focus_definition(
        self, focal_set_definitions_id: int, name: str, query: str, description: str = ""
    ) -> FocusDefinition:
        self._execute(
            """
            INSERT INTO focus_definitions (focal_set_definitions_id, name, description, query)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (focal_set_definitions_id, name)
                DO UPDATE SET description = excluded.description, query = excluded.query
            """,
            (focal_set_definitions_id, name, description, query),
        )
        row = self._fetch_one(
            "SELECT * FROM focus_definitions WHERE focal_set_definitions_id = ? AND name = ?",
            (focal_set_definitions_id, name),
        )
        return FocusDefinition.model_validate(row)

    def focal_set_definitions(
        self, topics_id: int, focal_technique: str = "Boolean Query"
    ) -> list[FocalSetDefinition]:
        rows = self._fetch_all(
            "SELECT * FROM focal_set_definitions WHERE topics_id = ? AND focal_technique = ? "
            "ORDER BY focal_set_definitions_id",
            (topics_id, focal_technique),
        )
        return [FocalSetDefinition.model_validate(r) for r in rows]

    def focus_definitions(self, focal_set_definitions_id: int) -> list[FocusDefinition]:
        rows = self._fetch_all(
            "SELECT * FROM focus_definitions WHERE focal_set_definitions_id = ? "
            "ORDER BY focus_definitions_id",
            (focal_set_definitions_id,),
        )
        return [FocusDefinition.model_validate(r) for r in rows]

    def upsert_focal_set(self, snapshots_id: int, fsd: FocalSetDefinition) -> FocalSet:
        self._execute(
            """
            INSERT INTO focal_sets (snapshots_id, name, description, focal_technique)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (snapshots_id, name) DO NOTHING
            """,
            (snapshots_id, fsd.name, fsd.description, fsd.focal_technique),
        )
        row = self._fetch_one(
            "SELECT * FROM focal_sets WHERE snapshots_id = ? AND name = ?", (snapshots_id, fsd.name)
        )
        return FocalSet.model_validate(row)

    def upsert_focus(self, focal_sets_id: int, fd: FocusDefinition) -> Focus:
        self._execute(
            """
            INSERT INTO foci (focal_sets_id, name, description, query)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (focal_sets_id, name) DO NOTHING
            """,
            (focal_sets_id, fd.name, fd.description, fd.query),
        )
        row = self._fetch_one(
            "SELECT * FROM foci WHERE focal_sets_id = ? AND name = ?", (focal_sets_id, fd.name)
        )
        return Focus.model_validate(row)

    def get_focus(self, foci_id: int) -> Focus | None:
        row = self._fetch_one("SELECT * FROM foci WHERE foci_id = ?", (foci_id,))
        return Focus.model_validate(row) if row else None

    # ── timespans ───────────────────────────────────────────────────────

    def find_timespan(
        self,
        snapshots_id: int,
        start_date: datetime,
        end_date: datetime,
        period: Period,
        foci_id: int | None,
    ) -> Timespan | None:
        row = self._fetch_one(
            """
            SELECT * FROM timespans
            WHERE snapshots_id = ? AND start_date = ? AND end_date = ?
                AND period = ? AND foci_id IS ?
            """,
            (snapshots_id, _iso(start_date), _iso(end_date), Period(period).value, foci_id),
        )
        return Timespan.model_validate(row) if row else None

    def insert_timespan(
        self,
        snapshots_id: int,
        start_date: datetime,
        end_date: datetime,
        period: Period,
        foci_id: int | None,
    ) -> Timespan:
        timespans_id = self._insert_returning_id(
            "timespans",
            {
                "snapshots_id": snapshots_id,
                "start_date": _iso(start_date),
                "end_date": _iso(end_date),
                "period": Period(period).value,
                "foci_id": foci_id,
            },
        )
        return self.require_timespan(timespans_id)

    def require_timespan(self, timespans_id: int) -> Timespan:
        row = self._fetch_one("SELECT * FROM timespans WHERE timespans_id = ?", (timespans_id,))
        if row is None:
            raise IntegrityError(f"timespan {timespans_id} does not exist")
        return Timespan.model_validate(row)

    def timespans(self, snapshots_id: int) -> list[Timespan]:
        rows = self._fetch_all(
            "SELECT * FROM timespans WHERE snapshots_id = ? ORDER BY timespans_id", (snapshots_id,)
        )
        return [Timespan.model_validate(r) for r in rows]

    def update_timespan_counts(self, timespan: Timespan) -> None:
        self._execute(
            """
            UPDATE timespans
            SET story_count = ?, story_link_count = ?, medium_count = ?,
                medium_link_count = ?, tweet_count = ?
            WHERE timespans_id = ?
            """,
            (
                timespan.story_count,
                timespan.story_link_count,
                timespan.medium_count,
                timespan.medium_link_count,
                timespan.tweet_count,
                timespan.timespans_id,
            ),
        )

    def timespan_data_exists(self, timespans_id: int, table: str = "medium_link_counts") -> bool:
        if table not in TIMESPAN_TABLES:
            raise ValueError(f"not a timespan table: {table}")
        row = self._fetch_one(f"SELECT 1 FROM {table} WHERE timespans_id = ? LIMIT 1", (timespans_id,))
        return row is not None

    def write_timespan_data(self, timespans_id: int, data: TimespanData) -> None:
        """Persist every aggregate table of a timespan in one transaction."""
        tables: dict[str, list[dict[str, Any]]] = {
            "story_links": [
                {"source_stories_id": link.stories_id, "ref_stories_id": link.ref_stories_id}
                for link in data.story_links
            ],
            "story_link_counts": [r.model_dump() for r in data.story_link_counts],
            "medium_links": [r.model_dump() for r in data.medium_links],
            "medium_link_counts": [r.model_dump() for r in data.medium_link_counts],
            "timespan_tweets": [{"topic_tweets_id": tid} for tid in data.timespan_tweets],
        }
        with self._transaction() as con:
            for table in TIMESPAN_TABLES:
                rows = [{"timespans_id": timespans_id, **row} for row in tables[table]]
                if rows:
                    self._executemany(con, table, rows)

    def medium_link_counts(self, timespans_id: int) -> list[MediumLinkCounts]:
        rows = self._fetch_all(
            "SELECT * FROM medium_link_counts WHERE timespans_id = ? "
            "ORDER BY media_inlink_count DESC, media_id",
            (timespans_id,),
        )
        return [MediumLinkCounts.model_validate(r) for r in rows]

    def medium_links(self, timespans_id: int) -> list[MediumLink]:
        rows = self._fetch_all(
            "SELECT * FROM medium_links WHERE timespans_id = ? ORDER BY source_media_id, ref_media_id",
            (timespans_id,),
        )
        return [MediumLink.model_validate(r) for r in rows]

    def count_rows(self, table: str, timespans_id: int) -> int:
        if table not in TIMESPAN_TABLES:
            raise ValueError(f"not a timespan table: {table}")
        row = self._fetch_one(f"SELECT COUNT(*) AS n FROM {table} WHERE timespans_id = ?", (timespans_id,))
        return int(row["n"]) if row else 0

    # ── colors ──────────────────────────────────────────────────────────

    def colors(self, color_set: str) -> dict[str, str]:
        rows = self._fetch_all("SELECT id, color FROM color_sets WHERE color_set = ?", (color_set,))
        return {r["id"]: r["color"] for r in rows}

    def add_color(self, color_set: str, key: str, color: str) -> str:
        """Store a color for ``(color_set, key)`` unless one exists; return the stored one."""
        self._execute(
            "INSERT OR IGNORE INTO color_sets (color_set, id, color) VALUES (?, ?, ?)",
            (color_set, key, color),
        )
        row = self._fetch_one(
            "SELECT color FROM color_sets WHERE color_set = ? AND id = ?", (color_set, key)
        )
        return row["color"]  # type: ignore[index]

    # ── private ─────────────────────────────────────────────────────────

    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(str(self._db_path))
        con.row_factory = sqlite3.Row
        return con

    def _init_db(self) -> None:
        con = self._connect()
        con.executescript(_SCHEMA)
        con.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            with con:
                yield con
        finally:
            con.close()

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        with self._transaction() as con:
            con.execute(sql, params)

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        con = self._connect()
        try:
            return [dict(r) for r in con.execute(sql, params).fetchall()]
        finally:
            con.close()

    def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        rows = self._fetch_all(sql, params)
        return rows[0] if rows else None

    def _fetch_in(self, sql: str, ids: Iterable[int]) -> list[dict[str, Any]]:
        ids = [int(i) for i in ids]
        if not ids:
            return []
        placeholders = ",".join("?" for _ in ids)
        return self._fetch_all(sql.format(ids=placeholders), ids)

    def _insert_many(self, table: str, rows: list[dict[str, Any]], ignore: bool = False) -> None:
        if not rows:
            return
        with self._transaction() as con:
            self._executemany(con, table, rows, ignore=ignore)

    def _insert_returning_id(self, table: str, row: dict[str, Any]) -> int:
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        with self._transaction() as con:
            cur = con.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(row.values())
            )
            return int(cur.lastrowid)  # type: ignore[arg-type]

    @staticmethod
    def _executemany(
        con: sqlite3.Connection, table: str, rows: list[dict[str, Any]], ignore: bool = False
    ) -> None:
        columns = list(rows[0])
        verb = "INSERT OR IGNORE" if ignore else "INSERT"
        sql = (
            f"{verb} INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        con.executemany(sql, [tuple(_sql_value(row[c]) for c in columns) for row in rows])


def _sql_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return _iso(value)
    if isinstance(value, bool):
        return int(value)
    if hasattr(value, "value"):  # enums
        return value.value
    return value
