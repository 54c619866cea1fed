"""
Similarity Index collaborators.

The scheduling core only needs "which items are semantically close to this
one". Embedding search lives in an external service; this module provides
the capability interface and three implementations:

- StaticSimilarityIndex: in-memory mapping (fixtures, CLI, tests)
- HttpSimilarityIndex: client for the similarity service over HTTP
- GuardedSimilarityIndex: wraps any index so failures become empty results

Usage:
    index = GuardedSimilarityIndex(HttpSimilarityIndex("http://vdb:8080"))
    neighbours = index.batch_query(["item-1", "item-2"])
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import httpx
from loguru import logger

from cadence.core.errors import SimilarityUnavailable

SimilarityMap = dict[str, list[str]]


class SimilarityIndex(Protocol):
    """Read-only item_id -> ordered similar item ids."""

    def batch_query(self, item_ids: Sequence[str]) -> SimilarityMap: ...

    def lookup_similar(self, item_id: str) -> list[str]: ...


class StaticSimilarityIndex:
    """Similarity from a fixed mapping."""

    def __init__(self, mapping: Mapping[str, Sequence[str]] | None = None):
        self._mapping = {key: list(value) for key, value in (mapping or {}).items()}

    def batch_query(self, item_ids: Sequence[str]) -> SimilarityMap:
        return {item_id: list(self._mapping[item_id]) for item_id in item_ids if item_id in self._mapping}

    def lookup_similar(self, item_id: str) -> list[str]:
        return list(self._mapping.get(item_id, []))


class HttpSimilarityIndex:
    """
    HTTP client for the similarity service.

    ``POST {base_url}/similar`` with ``{"item_ids": [...]}`` answers
    ``{"results": {"<id>": ["<similar id>", ...]}}``.

    Raises SimilarityUnavailable on transport errors, non-200 responses
    and malformed payloads; wrap in GuardedSimilarityIndex to degrade.
    """

    SIMILAR_ENDPOINT = "/similar"

    def __init__(
        self,
        base_url: str,
        timeout: float = 2.0,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def __enter__(self) -> HttpSimilarityIndex:
        self._ensure_client()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _ensure_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def batch_query(self, item_ids: Sequence[str]) -> SimilarityMap:
        if not item_ids:
            return {}

        try:
            client = self._ensure_client()
            response = client.post(self.SIMILAR_ENDPOINT, json={"item_ids": list(item_ids)})
        except httpx.RequestError as e:
            raise SimilarityUnavailable(f"Connection error querying similarity service: {e}") from e

        if response.status_code != 200:
            raise SimilarityUnavailable(f"Similarity service returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise SimilarityUnavailable(f"Malformed similarity response: {e}") from e
        results = payload.get("results", {}) if isinstance(payload, dict) else None
        if not isinstance(results, dict):
            raise SimilarityUnavailable("Malformed similarity response: 'results' is not an object")

        similar = {str(key): [str(v) for v in value] for key, value in results.items() if isinstance(value, list)}
        logger.debug(f"Similarity lookup for {len(item_ids)} items returned {len(similar)} entries")
        return similar

    def lookup_similar(self, item_id: str) -> list[str]:
        return self.batch_query([item_id]).get(item_id, [])


class GuardedSimilarityIndex:
    """
    Never lets a similarity failure reach the scheduling core.

    Any error from the wrapped index is logged at WARNING and answered with
    an empty result, which disables interleaving-by-similarity and boosts.
    """

    def __init__(self, inner: SimilarityIndex | None):
        self.inner = inner

    def batch_query(self, item_ids: Sequence[str]) -> SimilarityMap:
        if self.inner is None or not item_ids:
            return {}
        try:
            return dict(self.inner.batch_query(item_ids))
        except Exception as e:
            logger.warning(f"Similarity lookup failed, continuing without it: {e}")
            return {}

    def lookup_similar(self, item_id: str) -> list[str]:
        if self.inner is None:
            return []
        try:
            return list(self.inner.lookup_similar(item_id))
        except Exception as e:
            logger.warning(f"Similarity lookup for {item_id} failed, continuing without it: {e}")
            return []
