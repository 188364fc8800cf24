from scmetrics.domain.models import MetricDimension, MetricOperation
from scmetrics.metrics.base import BackendMetricRule


class PRsReviewed(BackendMetricRule):
    """
    Distinct pull requests authored by someone else that the subject left a
    review on inside the window.
    """

    dimension = MetricDimension.REVIEWED_PRS
    supported_operations = frozenset({MetricOperation.COUNT})
