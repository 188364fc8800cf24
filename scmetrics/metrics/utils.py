from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from scmetrics.domain.models import Interval, MetricOperation, TimeSeriesDataPoint, TimeSeriesEntry

PEERS_KEY = "Peers"
DATE_FORMAT = "%Y-%m-%d"


def percentile(values: Sequence[float], pct: float) -> float:
    """Linear-interpolated percentile, ``pct`` in [0, 1]. Empty input yields 0.0."""
    if not values:
        return 0.0
    ordered = sorted(values)
    k = (len(ordered) - 1) * pct
    f = int(k)
    c = min(f + 1, len(ordered) - 1)
    if f == c:
        return float(ordered[f])
    return ordered[f] * (c - k) + ordered[c] * (k - f)


def aggregate(values: Iterable[float], operation: MetricOperation, *, summed: bool = False) -> float:
    """
    Apply an aggregation operation to a set of samples.

    ``summed`` marks dimensions whose samples are quantities to be totalled
    (lines of code, one-per-PR counts): COUNT then returns the total instead
    of the number of samples. Empty input yields 0.0 for every operation.
    """
    samples = [float(v) for v in values]
    if not samples:
        return 0.0
    if operation == MetricOperation.COUNT:
        return float(sum(samples)) if summed else float(len(samples))
    if operation == MetricOperation.AVERAGE:
        return sum(samples) / len(samples)
    if operation == MetricOperation.MEDIAN:
        return percentile(samples, 0.5)
    if operation == MetricOperation.MAX:
        return max(samples)
    if operation == MetricOperation.MIN:
        return min(samples)
    raise ValueError(f"unsupported metric operation: {operation}")


def bucket_start(ts: datetime, interval: Interval) -> date:
    """Truncate a timestamp to the start of its bucket (weeks start on Monday)."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    day = ts.date()
    if interval == Interval.DAILY:
        return day
    if interval == Interval.WEEKLY:
        return day - timedelta(days=day.weekday())
    if interval == Interval.MONTHLY:
        return day.replace(day=1)
    raise ValueError(f"unsupported interval: {interval}")


def bucket_key(ts: datetime, interval: Interval) -> str:
    return bucket_start(ts, interval).strftime(DATE_FORMAT)


def build_series(buckets: Dict[str, float], label: str) -> List[TimeSeriesEntry]:
    """One entry per bucket, sorted by date, each holding a single data point."""
    return [
        TimeSeriesEntry(date=key, data=[TimeSeriesDataPoint(key=label, value=value)])
        for key, value in sorted(buckets.items())
    ]


def merge_time_series_with_peers(
    subject: Sequence[TimeSeriesEntry],
    peers: Sequence[TimeSeriesEntry],
    peer_label: str = PEERS_KEY,
) -> List[TimeSeriesEntry]:
    """
    Overlay peer values onto the subject's series.

    The result has exactly the subject's dates, in the subject's order. Each
    entry keeps the subject's data points and gains one ``peer_label`` point
    when the peer series has the same date. Peer-only dates are dropped.
    """
    peer_values: Dict[str, float] = {}
    for entry in peers:
        # Peer series carry a single point per date; keep the first if a date repeats.
        if entry.data and entry.date not in peer_values:
            peer_values[entry.date] = entry.data[0].value

    merged: List[TimeSeriesEntry] = []
    for entry in subject:
        data = [point.model_copy() for point in entry.data]
        peer_value: Optional[float] = peer_values.get(entry.date)
        if peer_value is not None:
            data.append(TimeSeriesDataPoint(key=peer_label, value=peer_value))
        merged.append(TimeSeriesEntry(date=entry.date, data=data))
    return merged
