#!/usr/bin/env python3
"""Generate a synthetic bucket file for chart and viewer testing.

Writes six hours of 60 s latency buckets to /tmp/smoke_buckets.json with a
daily-ish baseline drift, a congestion spike, a loss burst and a one-hour
outage gap.

Usage:
    python examples/generate_buckets.py

Then:
    smokechart render /tmp/smoke_buckets.json -o /tmp/smoke.svg --style gradient
    smokechart-viewer /tmp/smoke_buckets.json
"""

import json
import math
import random
import time

OUT_PATH = "/tmp/smoke_buckets.json"
STEP = 60
HOURS = 6
PINGS_PER_BUCKET = 20

# --- Scenario windows (bucket index ranges) ---

SPIKE = range(90, 110)
LOSS_BURST = range(200, 215)
OUTAGE = range(250, 310)


def make_bucket(i, start):
    ts = start + i * STEP
    base = 18.0 + 4.0 * math.sin(i / 40.0)
    if i in SPIKE:
        base *= 3.5

    failed = 0
    if i in LOSS_BURST:
        failed = random.randint(2, PINGS_PER_BUCKET)
    elif random.random() < 0.05:
        failed = 1

    ok = PINGS_PER_BUCKET - failed
    rec = {
        "timestamp_unix": ts,
        "timestamp_end_unix": ts + STEP,
        "count": PINGS_PER_BUCKET,
        "successful_count": ok,
        "failed_count": failed,
        "min": None, "max": None, "avg": None,
    }
    if ok == 0:
        return rec

    samples = sorted(random.gauss(base, base * 0.12) for _ in range(ok))
    samples = [max(0.5, s) for s in samples]

    def pct(q):
        return samples[min(len(samples) - 1, int(math.ceil(q * len(samples))) - 1)]

    rec.update(min=samples[0], max=samples[-1], avg=sum(samples) / len(samples))
    # roughly half the buckets carry percentiles, the rest use the fallback shading
    if i % 2 == 0 and ok >= 5:
        rec["percentiles"] = {
            "p50": pct(0.50), "p75": pct(0.75), "p90": pct(0.90),
            "p95": pct(0.95), "p99": pct(0.99),
        }
    return rec


def main():
    random.seed(4200)
    n = HOURS * 3600 // STEP
    start = int(time.time()) - n * STEP
    buckets = [make_bucket(i, start) for i in range(n) if i not in OUTAGE]
    with open(OUT_PATH, "w") as f:
        json.dump({"data": buckets}, f, indent=1)
    print(f"Wrote {len(buckets)} buckets to {OUT_PATH}")


if __name__ == "__main__":
    main()
