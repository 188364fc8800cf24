from scmetrics.domain.models import MetricDimension, MetricOperation
from scmetrics.metrics.base import BackendMetricRule


class PRsMerged(BackendMetricRule):
    """
    Number of merged pull requests created inside the window, optionally
    restricted to titles starting with one of the requested prefixes.
    """

    dimension = MetricDimension.MERGED_PRS
    supported_operations = frozenset({MetricOperation.COUNT})
