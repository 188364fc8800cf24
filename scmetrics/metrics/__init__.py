from typing import Dict, List, Optional, Sequence, Type

from scmetrics.backends.base import AggregationBackend
from scmetrics.domain.models import (
    MetricDimension,
    MetricOperation,
    MetricRuleCategory,
    MetricRuleDescriptor,
    Unit,
)
from scmetrics.metrics.base import BackendMetricRule
from scmetrics.metrics.plugins.loc_changes import LOCAdded, LOCRemoved
from scmetrics.metrics.plugins.pr_review_complexity import PRReviewComplexity
from scmetrics.metrics.plugins.prs_merged import PRsMerged
from scmetrics.metrics.plugins.prs_reviewed import PRsReviewed
from scmetrics.metrics.plugins.time_to_merge import TimeToMerge

ACTIVITY = MetricRuleCategory(name="Activity", priority=1)
COLLABORATION = MetricRuleCategory(name="Collaboration", priority=2)
EFFICIENCY = MetricRuleCategory(name="Efficiency", priority=3)


def get_metrics() -> Dict[MetricDimension, Type[BackendMetricRule]]:
    return {
        MetricDimension.MERGED_PRS: PRsMerged,
        MetricDimension.LOC_ADDED: LOCAdded,
        MetricDimension.LOC_REMOVED: LOCRemoved,
        MetricDimension.REVIEWED_PRS: PRsReviewed,
        MetricDimension.TIME_TO_MERGE: TimeToMerge,
        MetricDimension.PR_REVIEW_COMPLEXITY: PRReviewComplexity,
    }


DEFAULT_DESCRIPTORS = (
    MetricRuleDescriptor(
        id="prs_merged_count",
        name="PRs Merged",
        description=(
            "Total number of pull requests that were successfully merged. Counts PRs with "
            "status 'closed' and a merged_at timestamp. Peer comparison shows the PRs merged "
            "per peer account."
        ),
        category=ACTIVITY,
        unit=Unit.COUNT,
        dimension=MetricDimension.MERGED_PRS,
        operation=MetricOperation.COUNT,
        icon_identifier="git-merge",
        icon_color="blue",
    ),
    MetricRuleDescriptor(
        id="loc_added_count",
        name="Lines of Code Added",
        description=(
            "Total lines of code added across all merged pull requests, taken from the PR "
            "additions field. Peer comparison shows the lines added per peer account."
        ),
        category=ACTIVITY,
        unit=Unit.COUNT,
        dimension=MetricDimension.LOC_ADDED,
        operation=MetricOperation.COUNT,
        icon_identifier="plus-circle",
        icon_color="green",
    ),
    MetricRuleDescriptor(
        id="loc_removed_count",
        name="Lines of Code Removed",
        description=(
            "Total lines of code removed across all merged pull requests, taken from the PR "
            "deletions field. Peer comparison shows the lines removed per peer account."
        ),
        category=ACTIVITY,
        unit=Unit.COUNT,
        dimension=MetricDimension.LOC_REMOVED,
        operation=MetricOperation.COUNT,
        icon_identifier="minus-circle",
        icon_color="red",
    ),
    MetricRuleDescriptor(
        id="prs_reviewed_count",
        name="PRs Reviewed",
        description=(
            "Total number of unique pull requests authored by others that the member left "
            "review comments on, whether or not the author is mapped to a member. Peer "
            "comparison shows the PRs reviewed per peer account."
        ),
        category=COLLABORATION,
        unit=Unit.COUNT,
        dimension=MetricDimension.REVIEWED_PRS,
        operation=MetricOperation.COUNT,
        icon_identifier="eye",
        icon_color="purple",
    ),
    MetricRuleDescriptor(
        id="median_time_to_merge",
        name="Median time to merge",
        description=(
            "Median time between PR creation and merge, from the created_at and merged_at "
            "timestamps. Peer comparison shows the average time to merge of peer PRs."
        ),
        category=EFFICIENCY,
        unit=Unit.SECONDS,
        dimension=MetricDimension.TIME_TO_MERGE,
        operation=MetricOperation.MEDIAN,
        icon_identifier="clock",
        icon_color="green",
    ),
    MetricRuleDescriptor(
        id="avg_pr_review_loc",
        name="Average PR Review LoC",
        description=(
            "Average lines of code (added plus removed) in the PRs reviewed by the member. "
            "PRs authored by any member of the organization are excluded. Peer comparison "
            "shows the average over the PRs peers reviewed."
        ),
        category=COLLABORATION,
        unit=Unit.COUNT,
        dimension=MetricDimension.PR_REVIEW_COMPLEXITY,
        operation=MetricOperation.AVERAGE,
        icon_identifier="bar-chart-3",
        icon_color="orange",
    ),
)


def build_rules(
    backend: AggregationBackend,
    descriptors: Optional[Sequence[MetricRuleDescriptor]] = None,
) -> List[BackendMetricRule]:
    """Instantiate one rule per descriptor, keeping the descriptors' order."""
    registry = get_metrics()
    rules = []
    for descriptor in DEFAULT_DESCRIPTORS if descriptors is None else descriptors:
        rule_cls = registry.get(descriptor.dimension)
        if rule_cls is None:
            raise ValueError(f"no metric rule registered for dimension {descriptor.dimension.value}")
        rules.append(rule_cls(descriptor, backend))
    return rules
