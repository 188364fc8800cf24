from scmetrics.domain.models import MetricDimension, MetricOperation
from scmetrics.metrics.base import BackendMetricRule


class TimeToMerge(BackendMetricRule):
    """
    Time between a pull request being opened and merged, in seconds.

    Reported in whole seconds. MEDIAN is the default operation; AVG, MIN and
    MAX are accepted too.
    """

    dimension = MetricDimension.TIME_TO_MERGE
    supported_operations = frozenset(
        {MetricOperation.MEDIAN, MetricOperation.AVERAGE, MetricOperation.MIN, MetricOperation.MAX}
    )

    def to_value(self, raw: float) -> float:
        return float(int(raw or 0))
