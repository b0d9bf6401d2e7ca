"""Minimal Solr client used to restrict timespans to a focus query."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

import requests

from topicsnap.errors import TransientBackendError

logger = logging.getLogger(__name__)


class SearchIndex(Protocol):
    def search_for_story_ids(self, query: str, story_ids: Sequence[int]) -> list[int]:
        """Return the subset of *story_ids* that match *query*."""
        ...


def build_story_query(query: str, story_ids: Sequence[int]) -> str:
    """Combine a boolean focus query with a story id restriction."""
    ids = " ".join(str(int(sid)) for sid in story_ids)
    return f"( {query} ) and stories_id:( {ids} )"


class SolrSearchIndex:
    """Thin wrapper around ``GET {url}/select`` returning ``stories_id`` values."""

    def __init__(self, url: str, rows: int = 1_000_000, timeout: int = 300) -> None:
        if not url:
            raise ValueError("SOLR_URL is required but was empty.")
        self._url = url.rstrip("/") + "/select"
        self._rows = rows
        self._timeout = timeout
        self._session = requests.Session()

    def search_for_story_ids(self, query: str, story_ids: Sequence[int]) -> list[int]:
        params: dict[str, Any] = {
            "q": build_story_query(query, story_ids),
            "rows": self._rows,
            "fl": "stories_id",
            "wt": "json",
        }
        data = self._post(params)
        try:
            docs: list[dict[str, Any]] = data["response"]["docs"]
            found = [int(doc["stories_id"]) for doc in docs if "stories_id" in doc]
        except (KeyError, TypeError, ValueError) as exc:
            raise TransientBackendError(f"malformed Solr response: {exc}") from exc
        logger.debug("Solr matched %d of %d stories", len(found), len(story_ids))
        return found

    def _post(self, params: dict[str, Any]) -> dict[str, Any]:
        # POST keeps long id lists out of the URL
        try:
            resp = self._session.post(self._url, data=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise TransientBackendError(f"Solr request failed: {exc}") from exc
        if resp.status_code != 200:
            raise TransientBackendError(
                f"Solr returned {resp.status_code}: {resp.text[:500]}"
            )
        try:
            return resp.json()  # type: ignore[no-any-return]
        except ValueError as exc:
            raise TransientBackendError(f"Solr returned invalid JSON: {exc}") from exc
