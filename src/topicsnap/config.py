"""Centralised configuration loaded from environment variables and dotenv."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Paths ──────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]
DB_PATH: Path = Path(
    os.getenv("TOPICSNAP_DB_PATH", str(PROJECT_ROOT / "var" / "topicsnap.sqlite3"))
)
OUTPUT_BASE: Path = Path(os.getenv("TOPICSNAP_OUTPUT_DIR", str(PROJECT_ROOT / "out")))

# ── External collaborators ────────────────────────────────────────────────
SOLR_URL: str = os.getenv("SOLR_URL", "")
LAYOUT_URL: str = os.getenv("LAYOUT_URL", "")

# ── Focus restriction (search index batching) ─────────────────────────────
FOCUS_CHUNK_SIZE: int = int(os.getenv("TOPICSNAP_FOCUS_CHUNK_SIZE", "1000"))
FOCUS_MIN_CHUNK_SIZE: int = int(os.getenv("TOPICSNAP_FOCUS_MIN_CHUNK_SIZE", "10"))
FOCUS_MAX_SEARCH_ERRORS: int = int(os.getenv("TOPICSNAP_FOCUS_MAX_SEARCH_ERRORS", "25"))

# ── Bot filtering ─────────────────────────────────────────────────────────
BOT_TWEETS_PER_DAY: int = 200

# ── GEXF export ───────────────────────────────────────────────────────────
MAX_GEXF_MEDIA: int = int(os.getenv("TOPICSNAP_MAX_GEXF_MEDIA", "500"))
MAX_LAYOUT_SOURCES: int = int(os.getenv("TOPICSNAP_MAX_LAYOUT_SOURCES", "2000"))
MAX_NODE_SIZE: int = 20
MIN_NODE_SIZE: int = 2
MAX_MAP_WIDTH: int = 800
GEXF_CREATOR: str = os.getenv("TOPICSNAP_GEXF_CREATOR", "topicsnap")
VIEW_MEDIUM_URL: str = os.getenv(
    "TOPICSNAP_VIEW_MEDIUM_URL", "https://sources.mediacloud.org/#/sources/{media_id}"
)


def output_path(topics_id: int, timespans_id: int, suffix: str) -> Path:
    """Return the default export path for a timespan artefact.

    ``suffix`` is the file extension without the dot, e.g. ``gexf`` or ``csv``.
    """
    return OUTPUT_BASE / f"topic-{topics_id}" / f"timespan-{timespans_id}.{suffix}"
