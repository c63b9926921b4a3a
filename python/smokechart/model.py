"""Data records flowing through the chart engine.

RawBucket: one pre-aggregated latency window as delivered by the query layer.
ChartPoint: normalized per-bucket record (ms timestamps, packet loss).
ChartStats: aggregate summary shown in the stats panel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class BucketFormatError(ValueError):
    """A bucket record is missing fields or carries values of the wrong type."""


PERCENTILE_KEYS = ("p50", "p75", "p90", "p95", "p99")


@dataclass(frozen=True)
class Percentiles:
    p50: float
    p75: float
    p90: float
    p95: float
    p99: float

    def items(self) -> list[tuple[str, float]]:
        return [(k, getattr(self, k)) for k in PERCENTILE_KEYS]

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Percentiles | None:
        if not d:
            return None
        try:
            return cls(**{k: float(d[k]) for k in PERCENTILE_KEYS})
        except (KeyError, TypeError, ValueError):
            # partial percentile sets are treated as absent
            return None


@dataclass(frozen=True)
class RawBucket:
    timestamp: float  # unix seconds, bucket start
    timestamp_end: float  # unix seconds, bucket end
    min: float | None
    max: float | None
    avg: float | None
    count: int
    successful_count: int
    failed_count: int
    percentiles: Percentiles | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> RawBucket:
        """Build a bucket from an API-shaped record.

        Accepts ``timestamp_unix``/``timestamp_end_unix`` (the query API's
        names) or plain ``timestamp``/``timestamp_end`` numbers.
        """
        if not isinstance(d, dict):
            raise BucketFormatError(f"bucket must be an object, got {type(d).__name__}")
        try:
            start = d["timestamp_unix"] if "timestamp_unix" in d else d["timestamp"]
            end = d.get("timestamp_end_unix", d.get("timestamp_end", start))
            count = int(d.get("count", 0))
            failed = int(d.get("failed_count", 0))
            successful = int(d.get("successful_count", count - failed))
            return cls(
                timestamp=float(start),
                timestamp_end=float(end),
                min=_opt_float(d.get("min")),
                max=_opt_float(d.get("max")),
                avg=_opt_float(d.get("avg")),
                count=count,
                successful_count=successful,
                failed_count=failed,
                percentiles=Percentiles.from_dict(d.get("percentiles") or {}),
            )
        except KeyError as e:
            raise BucketFormatError(f"bucket missing field {e}") from None
        except (TypeError, ValueError) as e:
            raise BucketFormatError(f"bad bucket value: {e}") from None


def _opt_float(v: Any) -> float | None:
    return None if v is None else float(v)


@dataclass(frozen=True)
class ChartPoint:
    timestamp: float  # ms
    timestamp_end: float  # ms
    min: float | None
    max: float | None
    avg: float | None
    count: int
    successful_count: int
    failed_count: int
    packet_loss_percent: float
    percentiles: Percentiles | None = None

    @property
    def has_latency(self) -> bool:
        return self.min is not None and self.max is not None and self.avg is not None


@dataclass(frozen=True)
class ChartStats:
    median_rtt: float
    avg_rtt: float
    min_rtt: float
    max_rtt: float
    current_rtt: float
    std_dev: float
    avg_packet_loss: float
    max_packet_loss: float
    min_packet_loss: float
    current_packet_loss: float
    total_pings: int
    total_buckets: int
    last_sample_time: float  # ms
