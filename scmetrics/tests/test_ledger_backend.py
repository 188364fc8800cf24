from datetime import datetime, timezone

import pytest

from scmetrics.backends.ledger import LedgerAggregationBackend
from scmetrics.domain.models import Interval, MetricDimension, MetricOperation
from scmetrics.ledger.ledger import Ledger
from scmetrics.metrics.utils import PEERS_KEY
from scmetrics.tests.conftest import (
    DEFAULT_END,
    DEFAULT_START,
    ORG_ID,
    make_account,
    make_bundle,
    make_comment,
    make_pr,
)

ALICE = make_account(1, "alice", member_id="m-1")
BOB = make_account(2, "bob", member_id="m-2")
CAROL = make_account(3, "carol", member_id="m-3")
EXTERNAL = make_account(4, "contractor")


def _backend():
    prs = [
        # alice: merged after 2h, 4h and 12h; one in February
        make_pr(1, ALICE, created_delta_hours=0, merged_delta_hours=2, additions=10, deletions=1),
        make_pr(2, ALICE, created_delta_hours=24, merged_delta_hours=28, additions=20, deletions=2),
        make_pr(3, ALICE, created_at=datetime(2026, 2, 10, tzinfo=timezone.utc),
                merged_at=datetime(2026, 2, 10, 12, tzinfo=timezone.utc), additions=30, deletions=3,
                title="OPS-3 deploy"),
        make_pr(4, ALICE, created_delta_hours=48),  # still open
        # bob: one merged after 1h
        make_pr(5, BOB, created_delta_hours=0, merged_delta_hours=1, additions=100, deletions=50),
        # contractor PRs reviewed by alice
        make_pr(6, EXTERNAL, created_delta_hours=0, additions=40, deletions=10),
        make_pr(7, EXTERNAL, created_delta_hours=0, additions=5, deletions=5),
    ]
    comments = [
        make_comment(1, prs[5], ALICE, datetime(2026, 1, 6, tzinfo=timezone.utc)),
        make_comment(2, prs[6], ALICE, datetime(2026, 2, 6, tzinfo=timezone.utc)),
        make_comment(3, prs[4], ALICE, datetime(2026, 1, 7, tzinfo=timezone.utc)),
        make_comment(4, prs[0], BOB, datetime(2026, 1, 8, tzinfo=timezone.utc)),
    ]
    bundle = make_bundle(accounts=[ALICE, BOB, CAROL, EXTERNAL], pull_requests=prs, comments=comments)
    return LedgerAggregationBackend(Ledger(bundle))


def scalar(dimension, operation, account_ids=(ALICE.id,), prefixes=()):
    return _backend().compute_scalar(dimension, ORG_ID, account_ids, prefixes, DEFAULT_START, DEFAULT_END, operation)


def test_merged_prs_and_loc():
    assert scalar(MetricDimension.MERGED_PRS, MetricOperation.COUNT) == 3.0
    assert scalar(MetricDimension.LOC_ADDED, MetricOperation.COUNT) == 60.0
    assert scalar(MetricDimension.LOC_REMOVED, MetricOperation.COUNT) == 6.0


def test_prefix_filter():
    assert scalar(MetricDimension.MERGED_PRS, MetricOperation.COUNT, prefixes=("OPS-",)) == 1.0


def test_empty_account_ids_mean_whole_organization():
    assert scalar(MetricDimension.MERGED_PRS, MetricOperation.COUNT, account_ids=()) == 4.0


@pytest.mark.parametrize(
    "operation, expected",
    [
        (MetricOperation.MEDIAN, 4 * 3600.0),
        (MetricOperation.AVERAGE, 6 * 3600.0),
        (MetricOperation.MIN, 2 * 3600.0),
        (MetricOperation.MAX, 12 * 3600.0),
    ],
)
def test_time_to_merge_operations(operation, expected):
    assert scalar(MetricDimension.TIME_TO_MERGE, operation) == expected


def test_reviewed_prs_and_review_complexity():
    assert scalar(MetricDimension.REVIEWED_PRS, MetricOperation.COUNT) == 3.0
    # bob's PR is member-authored, only the contractor PRs count
    assert scalar(MetricDimension.PR_REVIEW_COMPLEXITY, MetricOperation.AVERAGE) == 30.0


def test_series_buckets_by_merge_month():
    series = _backend().compute_series(
        MetricDimension.MERGED_PRS, ORG_ID, (ALICE.id,), (), DEFAULT_START, DEFAULT_END,
        MetricOperation.COUNT, "PRs Merged", Interval.MONTHLY,
    )
    assert [(e.date, e.data[0].key, e.data[0].value) for e in series] == [
        ("2026-01-01", "PRs Merged", 2.0),
        ("2026-02-01", "PRs Merged", 1.0),
    ]


def test_series_daily_buckets_skip_empty_days():
    series = _backend().compute_series(
        MetricDimension.TIME_TO_MERGE, ORG_ID, (ALICE.id,), (), DEFAULT_START, DEFAULT_END,
        MetricOperation.MEDIAN, "Median time to merge", "daily",
    )
    assert [e.date for e in series] == ["2026-01-01", "2026-01-02", "2026-02-10"]


def test_peer_scalar_is_per_account_for_counts():
    backend = _backend()
    peers = (BOB.id, CAROL.id)
    # bob merged one PR, carol none
    assert backend.compute_peers_scalar(MetricDimension.MERGED_PRS, ORG_ID, peers, DEFAULT_START, DEFAULT_END) == 0.5
    assert backend.compute_peers_scalar(MetricDimension.LOC_ADDED, ORG_ID, peers, DEFAULT_START, DEFAULT_END) == 50.0


def test_peer_scalar_is_sample_mean_for_durations():
    backend = _backend()
    value = backend.compute_peers_scalar(
        MetricDimension.TIME_TO_MERGE, ORG_ID, (ALICE.id, BOB.id), DEFAULT_START, DEFAULT_END
    )
    assert value == pytest.approx((2 + 4 + 12 + 1) * 3600.0 / 4)


def test_peer_series_is_labelled_peers():
    series = _backend().compute_peers_series(
        MetricDimension.MERGED_PRS, ORG_ID, (ALICE.id, BOB.id), DEFAULT_START, DEFAULT_END, Interval.MONTHLY
    )
    assert [(e.date, e.data[0].key, e.data[0].value) for e in series] == [
        ("2026-01-01", PEERS_KEY, 1.5),
        ("2026-02-01", PEERS_KEY, 0.5),
    ]


def test_unknown_peers_yield_zero():
    backend = _backend()
    assert backend.compute_peers_scalar(MetricDimension.MERGED_PRS, "org-x", (), DEFAULT_START, DEFAULT_END) == 0.0


def test_reviewed_prs_for_whole_organization():
    # alice reviewed bob's PR and two contractor PRs, bob reviewed one of alice's
    assert scalar(MetricDimension.REVIEWED_PRS, MetricOperation.COUNT, account_ids=()) == 4.0


def test_time_to_merge_with_mixed_naive_and_aware_timestamps():
    pr = make_pr(
        1,
        ALICE,
        created_at=datetime(2026, 1, 1, 8),
        merged_at=datetime(2026, 1, 1, 11, tzinfo=timezone.utc),
    )
    backend = LedgerAggregationBackend(Ledger(make_bundle(accounts=[ALICE], pull_requests=[pr])))

    value = backend.compute_scalar(
        MetricDimension.TIME_TO_MERGE, ORG_ID, (ALICE.id,), (), DEFAULT_START, DEFAULT_END, MetricOperation.MEDIAN
    )

    assert value == 3 * 3600.0
