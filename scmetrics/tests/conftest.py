"""
Shared test fixtures and factory functions for scmetrics tests.

These factories help reduce duplication across test modules and provide
consistent test data creation patterns.
"""
import uuid
from datetime import datetime, timezone, timedelta
from typing import List, Optional

from scmetrics.backends.base import AggregationBackend
from scmetrics.domain.models import (
    CanonicalBundle,
    CommentType,
    MetricRuleParams,
    PRComment,
    PullRequest,
    SourceControlAccount,
    TimeSeriesDataPoint,
    TimeSeriesEntry,
)
from scmetrics.metrics.utils import PEERS_KEY


# Default base datetime for tests
DEFAULT_START = datetime(2026, 1, 1, tzinfo=timezone.utc)
DEFAULT_END = datetime(2026, 3, 31, 23, 59, 59, tzinfo=timezone.utc)
ORG_ID = "org-1"


def make_id(n: int) -> str:
    """Deterministic UUID string for test ids."""
    return str(uuid.UUID(int=n))


def make_account(
    n: int,
    username: str = "alice",
    organization_id: str = ORG_ID,
    member_id: Optional[str] = None,
) -> SourceControlAccount:
    """Create a SourceControlAccount for testing."""
    return SourceControlAccount(
        id=make_id(n),
        organization_id=organization_id,
        member_id=member_id,
        username=username,
    )


def make_pr(
    n: int,
    author: SourceControlAccount,
    created_at: Optional[datetime] = None,
    merged_at: Optional[datetime] = None,
    *,
    created_delta_hours: Optional[float] = None,
    merged_delta_hours: Optional[float] = None,
    base_time: Optional[datetime] = None,
    title: Optional[str] = None,
    additions: int = 10,
    deletions: int = 2,
) -> PullRequest:
    """
    Create a PullRequest for testing.

    Can specify times directly via created_at/merged_at, or use deltas from base_time.
    A PR with a merge time is closed, otherwise open.
    """
    base_time = base_time or DEFAULT_START

    if created_at is None:
        if created_delta_hours is not None:
            created_at = base_time + timedelta(hours=created_delta_hours)
        else:
            created_at = base_time

    if merged_at is None and merged_delta_hours is not None:
        merged_at = base_time + timedelta(hours=merged_delta_hours)

    return PullRequest(
        id=make_id(10_000 + n),
        source_control_account_id=author.id,
        repository_name="repo",
        title=title or f"PR {n}",
        status="closed" if merged_at else "open",
        created_at=created_at,
        merged_at=merged_at,
        additions=additions,
        deletions=deletions,
        changed_files=1,
    )


def make_comment(
    n: int,
    pr: PullRequest,
    author: SourceControlAccount,
    created_at: datetime,
    type: CommentType = CommentType.REVIEW,
    body: str = "Comment",
) -> PRComment:
    """Create a PRComment for testing."""
    return PRComment(
        id=make_id(20_000 + n),
        pr_id=pr.id,
        source_control_account_id=author.id,
        type=type,
        body=body,
        created_at=created_at,
    )


def make_bundle(
    accounts: Optional[list] = None,
    pull_requests: Optional[list] = None,
    comments: Optional[list] = None,
) -> CanonicalBundle:
    """Create a CanonicalBundle for testing with sensible defaults."""
    return CanonicalBundle(
        accounts=accounts or [],
        pull_requests=pull_requests or [],
        comments=comments or [],
    )


def make_params(
    organization_id: Optional[str] = ORG_ID,
    account_ids: Optional[List[str]] = None,
    peer_ids: Optional[List[str]] = None,
    prefixes: Optional[List[str]] = None,
    start_date: Optional[datetime] = DEFAULT_START,
    end_date: Optional[datetime] = DEFAULT_END,
    interval: Optional[str] = "monthly",
) -> MetricRuleParams:
    """Create MetricRuleParams for testing; ``None`` leaves a key out."""
    metric_params = {}
    if organization_id is not None:
        metric_params["organizationId"] = organization_id
    if account_ids is not None:
        metric_params["sourceControlAccountIDs"] = account_ids
    if peer_ids is not None:
        metric_params["peersSourceControlAccountIDs"] = peer_ids
    if prefixes is not None:
        metric_params["pr_prefixes"] = prefixes
    return MetricRuleParams(
        start_date=start_date,
        end_date=end_date,
        interval=interval,
        metric_params=metric_params,
    )


def make_series(label: str, points: dict) -> List[TimeSeriesEntry]:
    """Series with one ``label`` point per date, in the order given."""
    return [
        TimeSeriesEntry(date=date, data=[TimeSeriesDataPoint(key=label, value=value)])
        for date, value in points.items()
    ]


class StubBackend(AggregationBackend):
    """
    Backend returning fixed answers and recording every call.

    ``fail_on`` maps a method name to the exception it should raise.
    """

    def __init__(
        self,
        scalar: float = 0.0,
        peers_scalar: float = 0.0,
        series: Optional[dict] = None,
        peers_series: Optional[dict] = None,
        fail_on: Optional[dict] = None,
    ):
        self.scalar = scalar
        self.peers_scalar = peers_scalar
        self.series = series or {}
        self.peers_series = peers_series or {}
        self.fail_on = fail_on or {}
        self.calls: List[tuple] = []

    def _record(self, method: str, *args):
        self.calls.append((method,) + args)
        if method in self.fail_on:
            raise self.fail_on[method]

    def calls_to(self, method: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == method]

    def compute_scalar(self, dimension, organization_id, account_ids, prefixes, start, end, operation):
        self._record("compute_scalar", dimension, organization_id, account_ids, prefixes, start, end, operation)
        return self.scalar

    def compute_series(self, dimension, organization_id, account_ids, prefixes, start, end, operation, label, interval):
        self._record("compute_series", dimension, organization_id, account_ids, prefixes, start, end, operation, label, interval)
        return make_series(label, self.series)

    def compute_peers_scalar(self, dimension, organization_id, account_ids, start, end):
        self._record("compute_peers_scalar", dimension, organization_id, account_ids, start, end)
        return self.peers_scalar

    def compute_peers_series(self, dimension, organization_id, account_ids, start, end, interval):
        self._record("compute_peers_series", dimension, organization_id, account_ids, start, end, interval)
        return make_series(PEERS_KEY, self.peers_series)
