from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Sequence, Tuple

from scmetrics.backends.base import AggregationBackend
from scmetrics.domain.models import Interval, MetricDimension, MetricOperation, TimeSeriesEntry
from scmetrics.ledger.ledger import Ledger, as_utc
from scmetrics.metrics.utils import PEERS_KEY, aggregate, bucket_key, build_series

log = logging.getLogger(__name__)

# Dimensions whose samples are quantities to total rather than durations/scores to average.
SUMMED_DIMENSIONS = frozenset(
    {
        MetricDimension.MERGED_PRS,
        MetricDimension.REVIEWED_PRS,
        MetricDimension.LOC_ADDED,
        MetricDimension.LOC_REMOVED,
    }
)

Sample = Tuple[datetime, float]


class LedgerAggregationBackend(AggregationBackend):
    """
    Aggregation backend answering queries from an in-memory Ledger.

    PR-based dimensions consider merged PRs created inside the window and
    bucket them by merge date; review-based dimensions consider review
    comments inside the window and bucket by the first review of each PR.
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def _samples(
        self,
        dimension: MetricDimension,
        organization_id: str,
        account_ids: Sequence[str],
        prefixes: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> List[Sample]:
        if dimension in (MetricDimension.REVIEWED_PRS, MetricDimension.PR_REVIEW_COMPLEXITY):
            reviewed = self.ledger.get_reviewed_prs(
                organization_id,
                account_ids,
                start,
                end,
                prefixes,
                exclude_member_authored=dimension == MetricDimension.PR_REVIEW_COMPLEXITY,
            )
            if dimension == MetricDimension.REVIEWED_PRS:
                return [(ts, 1.0) for ts, _ in reviewed]
            return [(ts, float(pr.additions + pr.deletions)) for ts, pr in reviewed]

        prs = self.ledger.get_merged_prs(organization_id, account_ids, start, end, prefixes)
        if dimension == MetricDimension.TIME_TO_MERGE:
            return [(pr.merged_at, (as_utc(pr.merged_at) - as_utc(pr.created_at)).total_seconds()) for pr in prs]
        if dimension == MetricDimension.MERGED_PRS:
            return [(pr.merged_at, 1.0) for pr in prs]
        if dimension == MetricDimension.LOC_ADDED:
            return [(pr.merged_at, float(pr.additions)) for pr in prs]
        if dimension == MetricDimension.LOC_REMOVED:
            return [(pr.merged_at, float(pr.deletions)) for pr in prs]
        raise ValueError(f"unsupported metric dimension: {dimension}")

    def _peer_samples(self, dimension, organization_id, account_ids, start, end) -> Tuple[List[Sample], int]:
        """Samples gathered account by account, plus the number of peer accounts in the organization."""
        peers = self.ledger.resolve_accounts(organization_id, account_ids)
        samples: List[Sample] = []
        for account_id in peers:
            samples.extend(self._samples(dimension, organization_id, [account_id], (), start, end))
        return samples, len(peers)

    def _peer_value(self, dimension: MetricDimension, values: List[float], peer_count: int) -> float:
        if dimension in SUMMED_DIMENSIONS:
            return sum(values) / peer_count if peer_count else 0.0
        return aggregate(values, MetricOperation.AVERAGE)

    def compute_scalar(self, dimension, organization_id, account_ids, prefixes, start, end, operation) -> float:
        samples = self._samples(dimension, organization_id, account_ids, prefixes, start, end)
        log.debug("scalar %s for org %s: %d samples", dimension.value, organization_id, len(samples))
        return aggregate((v for _, v in samples), operation, summed=dimension in SUMMED_DIMENSIONS)

    def compute_series(
        self, dimension, organization_id, account_ids, prefixes, start, end, operation, label, interval
    ) -> List[TimeSeriesEntry]:
        samples = self._samples(dimension, organization_id, account_ids, prefixes, start, end)
        grouped: Dict[str, List[float]] = defaultdict(list)
        for ts, value in samples:
            grouped[bucket_key(ts, Interval(interval))].append(value)
        summed = dimension in SUMMED_DIMENSIONS
        return build_series({k: aggregate(v, operation, summed=summed) for k, v in grouped.items()}, label)

    def compute_peers_scalar(self, dimension, organization_id, account_ids, start, end) -> float:
        samples, peer_count = self._peer_samples(dimension, organization_id, account_ids, start, end)
        return self._peer_value(dimension, [v for _, v in samples], peer_count)

    def compute_peers_series(self, dimension, organization_id, account_ids, start, end, interval) -> List[TimeSeriesEntry]:
        samples, peer_count = self._peer_samples(dimension, organization_id, account_ids, start, end)
        grouped: Dict[str, List[float]] = defaultdict(list)
        for ts, value in samples:
            grouped[bucket_key(ts, Interval(interval))].append(value)
        return build_series({k: self._peer_value(dimension, v, peer_count) for k, v in grouped.items()}, PEERS_KEY)
