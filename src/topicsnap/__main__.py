"""CLI entry-point: ``python -m topicsnap snapshot`` / ``export-gexf`` / ``export-media``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from topicsnap import config
from topicsnap.definitions import load_definitions
from topicsnap.errors import TopicSnapError
from topicsnap.export import export_gexf, media_csv, media_table
from topicsnap.layout import default_layout_service
from topicsnap.models import BotPolicy, Period
from topicsnap.search import SolrSearchIndex
from topicsnap.snapshot import snapshot_topic
from topicsnap.store import SnapshotStore

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _write_output(text: str, out: str | None, default: Path) -> None:
    path = Path(out) if out else default
    if out == "-":
        sys.stdout.write(text)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.info("Wrote %s (%d chars)", path, len(text))


def _run_snapshot(store: SnapshotStore, args: argparse.Namespace) -> None:
    search_index = SolrSearchIndex(config.SOLR_URL) if config.SOLR_URL else None
    if search_index is None:
        logger.info("SOLR_URL not set; focused timespans cannot be restricted.")

    snapshot = snapshot_topic(
        store,
        args.topic_id,
        snapshots_id=args.snapshot_id,
        note=args.note,
        bot_policy=args.bot_policy,
        periods=args.periods,
        search_index=search_index,
    )
    for timespan in store.timespans(snapshot.snapshots_id):
        logger.info(
            "  [%d] %s stories=%d story_links=%d media=%d medium_links=%d tweets=%d",
            timespan.timespans_id,
            timespan.label,
            timespan.story_count,
            timespan.story_link_count,
            timespan.medium_count,
            timespan.medium_link_count,
            timespan.tweet_count,
        )


def _run_export_gexf(store: SnapshotStore, args: argparse.Namespace) -> None:
    timespan = store.require_timespan(args.timespan_id)
    snapshot = store.require_snapshot(timespan.snapshots_id)
    layout = None if args.no_layout else default_layout_service()

    gexf = export_gexf(
        store,
        timespan,
        max_media=args.max_media,
        color_field=args.color_field,
        include_weights=args.include_weights,
        max_links_per_medium=args.max_links_per_medium,
        exclude_media_ids=args.exclude_media_ids or [],
        layout_service=layout,
    )
    _write_output(gexf, args.out, config.output_path(snapshot.topics_id, timespan.timespans_id, "gexf"))


def _run_export_media(store: SnapshotStore, args: argparse.Namespace) -> None:
    timespan = store.require_timespan(args.timespan_id)
    snapshot = store.require_snapshot(timespan.snapshots_id)
    text = media_csv(media_table(store, timespan))
    _write_output(text, args.out, config.output_path(snapshot.topics_id, timespan.timespans_id, "csv"))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="topicsnap",
        description="Snapshot topic link graphs into timespans and export media maps.",
    )
    parser.add_argument("--db", type=Path, default=config.DB_PATH, help="SQLite database path.")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging.")
    sub = parser.add_subparsers(dest="command")

    # ── load-definitions ──────────────────────────────────────────────
    defs_parser = sub.add_parser("load-definitions", help="Load a topic definition YAML file.")
    defs_parser.add_argument("path", type=Path)

    # ── snapshot ──────────────────────────────────────────────────────
    snap_parser = sub.add_parser("snapshot", help="Generate a snapshot of a topic.")
    snap_parser.add_argument("--topic-id", type=int, required=True)
    snap_parser.add_argument("--snapshot-id", type=int, help="Reuse an existing snapshot.")
    snap_parser.add_argument("--note", default="")
    snap_parser.add_argument(
        "--bot-policy",
        choices=[p.value for p in BotPolicy],
        default=BotPolicy.NO_BOTS.value,
    )
    snap_parser.add_argument(
        "--period",
        dest="periods",
        action="append",
        choices=[p.value for p in Period],
        help="Period to generate; repeatable (default: all).",
    )

    # ── export-gexf ───────────────────────────────────────────────────
    gexf_parser = sub.add_parser("export-gexf", help="Export a timespan media map as GEXF.")
    gexf_parser.add_argument("--timespan-id", type=int, required=True)
    gexf_parser.add_argument("--max-media", type=int, default=config.MAX_GEXF_MEDIA)
    gexf_parser.add_argument("--color-field", default="media_type")
    gexf_parser.add_argument("--include-weights", action="store_true")
    gexf_parser.add_argument("--max-links-per-medium", type=int)
    gexf_parser.add_argument("--exclude-media-id", dest="exclude_media_ids", type=int, action="append")
    gexf_parser.add_argument("--no-layout", action="store_true", help="Skip graph layout.")
    gexf_parser.add_argument("--out", help="Output path, or '-' for stdout.")

    # ── export-media ──────────────────────────────────────────────────
    media_parser = sub.add_parser("export-media", help="Export a timespan media table as CSV.")
    media_parser.add_argument("--timespan-id", type=int, required=True)
    media_parser.add_argument("--out", help="Output path, or '-' for stdout.")

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    store = SnapshotStore(db_path=args.db)
    try:
        if args.command == "load-definitions":
            topic = load_definitions(args.path, store)
            logger.info("Loaded definitions for topic %d (%s)", topic.topics_id, topic.name)
        elif args.command == "snapshot":
            _run_snapshot(store, args)
        elif args.command == "export-gexf":
            _run_export_gexf(store, args)
        elif args.command == "export-media":
            _run_export_media(store, args)
    except TopicSnapError as exc:
        logger.error("%s failed: %s", args.command, exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
