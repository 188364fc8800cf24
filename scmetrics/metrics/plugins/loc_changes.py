from scmetrics.domain.models import MetricDimension, MetricOperation
from scmetrics.metrics.base import BackendMetricRule


class LOCAdded(BackendMetricRule):
    """Lines added, summed over merged pull requests."""

    dimension = MetricDimension.LOC_ADDED
    supported_operations = frozenset({MetricOperation.COUNT})


class LOCRemoved(BackendMetricRule):
    """Lines removed, summed over merged pull requests."""

    dimension = MetricDimension.LOC_REMOVED
    supported_operations = frozenset({MetricOperation.COUNT})
