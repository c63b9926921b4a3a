"""Provider abstraction for bucket data sources.

The chart engine never fetches data itself; hosts (the CLI and the viewer)
go through a :class:`BucketProvider` so zooming can re-query a narrower
time range from any backend.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .model import BucketFormatError, RawBucket

logger = logging.getLogger(__name__)


class BucketProvider(ABC):
    """Abstract source of latency buckets."""

    @abstractmethod
    def query(self, t0: float | None = None, t1: float | None = None) -> list[RawBucket]:
        """Buckets whose start time (ms) lies within [t0, t1]; open ends unbounded."""

    @abstractmethod
    def time_range(self) -> tuple[float, float] | None:
        """(earliest_ms, latest_ms) of the available data, or None when empty."""

    @property
    def label(self) -> str:
        return type(self).__name__


def parse_buckets(doc: Any) -> list[RawBucket]:
    """Accept a bare list of records or an API response ``{"data": [...]}``."""
    if isinstance(doc, dict):
        if "data" not in doc:
            raise BucketFormatError("expected a list of buckets or an object with 'data'")
        doc = doc["data"]
    if not isinstance(doc, list):
        raise BucketFormatError(f"bucket list must be an array, got {type(doc).__name__}")
    buckets = []
    for i, rec in enumerate(doc):
        try:
            buckets.append(RawBucket.from_dict(rec))
        except BucketFormatError as e:
            raise BucketFormatError(f"bucket {i}: {e}") from e
    return buckets


class MemoryProvider(BucketProvider):
    """Serves a fixed in-memory list of buckets."""

    def __init__(self, buckets: list[RawBucket]) -> None:
        self._buckets = sorted(buckets, key=lambda b: b.timestamp)

    def query(self, t0: float | None = None, t1: float | None = None) -> list[RawBucket]:
        out = []
        for b in self._buckets:
            ms = b.timestamp * 1000
            if t0 is not None and ms < t0:
                continue
            if t1 is not None and ms > t1:
                continue
            out.append(b)
        return out

    def time_range(self) -> tuple[float, float] | None:
        if not self._buckets:
            return None
        return (self._buckets[0].timestamp * 1000, self._buckets[-1].timestamp * 1000)


class JsonFileProvider(MemoryProvider):
    """Buckets loaded once from a JSON file on disk."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        with open(self._path, "r", encoding="utf-8") as f:
            try:
                doc = json.load(f)
            except ValueError as e:
                raise BucketFormatError(f"{self._path}: invalid JSON: {e}") from e
        super().__init__(parse_buckets(doc))
        logger.info("loaded %d buckets from %s", len(self._buckets), self._path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def label(self) -> str:
        return self._path.name
