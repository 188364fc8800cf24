from scmetrics.domain.models import MetricDimension, MetricOperation
from scmetrics.metrics.base import BackendMetricRule


class PRReviewComplexity(BackendMetricRule):
    """
    Size of the pull requests a member reviews, as lines added plus lines
    removed per reviewed PR. PRs authored by members of the organization are
    left out so the score reflects external or unmapped contributions.
    """

    dimension = MetricDimension.PR_REVIEW_COMPLEXITY
    supported_operations = frozenset(
        {MetricOperation.AVERAGE, MetricOperation.MEDIAN, MetricOperation.MIN, MetricOperation.MAX}
    )

    def to_value(self, raw: float) -> float:
        return round(float(raw or 0.0), 2)
