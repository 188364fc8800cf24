import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, FrozenSet, List, Tuple, TypeVar

from scmetrics.backends.base import AggregationBackend
from scmetrics.domain.models import (
    GraphMetric,
    MetricDimension,
    MetricOperation,
    MetricRuleCategory,
    MetricRuleDescriptor,
    MetricRuleParams,
    ParameterContext,
    PeerComparison,
    SnapshotMetric,
    TimeSeriesEntry,
)
from scmetrics.exceptions import BackendError, InvalidRequestError
from scmetrics.metrics.params import extract_parameters
from scmetrics.metrics.utils import merge_time_series_with_peers

log = logging.getLogger(__name__)

T = TypeVar("T")


class Metric(ABC):
    @property
    @abstractmethod
    def slug(self) -> str:
        """Unique identifier for the metric."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name."""
        pass

    @abstractmethod
    def category(self) -> MetricRuleCategory:
        """Reporting category the metric is grouped under."""
        pass

    @abstractmethod
    def calculate(self, params: MetricRuleParams) -> Tuple[SnapshotMetric, GraphMetric]:
        """Compute the snapshot and graph pair for one request."""
        pass


class BackendMetricRule(Metric):
    """
    A metric answered by an AggregationBackend for one dimension.

    Subclasses pin the dimension and the operations they accept; the
    descriptor supplies identity, unit, category, operation and peer policy.
    """

    dimension: MetricDimension
    supported_operations: FrozenSet[MetricOperation] = frozenset()
    graph_type = "line"

    def __init__(self, descriptor: MetricRuleDescriptor, backend: AggregationBackend):
        if descriptor.dimension != self.dimension:
            raise ValueError(
                f"{type(self).__name__} measures {self.dimension.value}, "
                f"descriptor {descriptor.id} declares {descriptor.dimension.value}"
            )
        self.descriptor = descriptor
        self.backend = backend

    @property
    def slug(self) -> str:
        return self.descriptor.id

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def operation(self) -> MetricOperation:
        return self.descriptor.operation

    def category(self) -> MetricRuleCategory:
        return self.descriptor.category

    def validate_operation(self) -> None:
        if self.supported_operations and self.operation not in self.supported_operations:
            raise InvalidRequestError(
                f"invalid metric operation for {self.name}: {self.operation.value}",
                field="operation",
                value=self.operation.value,
            )

    def wants_peers(self, ctx: ParameterContext) -> bool:
        if self.descriptor.peer_comparison == PeerComparison.ALWAYS:
            return True
        return ctx.has_peers

    def _query(self, scope: str, call: Callable[..., T], *args: Any) -> T:
        try:
            return call(*args)
        except InvalidRequestError:
            raise
        except Exception as e:
            raise BackendError(
                f"failed to calculate {scope} for {self.slug} ({self.dimension.value}): {e}",
                rule=self.slug,
                dimension=self.dimension.value,
                scope=scope,
            ) from e

    def subject_value(self, ctx: ParameterContext) -> float:
        return self._query(
            "subject scalar",
            self.backend.compute_scalar,
            self.dimension,
            ctx.organization_id,
            ctx.subject_account_ids,
            ctx.title_prefixes,
            ctx.start_date,
            ctx.end_date,
            self.operation,
        )

    def subject_series(self, ctx: ParameterContext) -> List[TimeSeriesEntry]:
        return self._query(
            "subject series",
            self.backend.compute_series,
            self.dimension,
            ctx.organization_id,
            ctx.subject_account_ids,
            ctx.title_prefixes,
            ctx.start_date,
            ctx.end_date,
            self.operation,
            self.name,
            ctx.interval,
        )

    def peers_value(self, ctx: ParameterContext) -> float:
        return self._query(
            "peers scalar",
            self.backend.compute_peers_scalar,
            self.dimension,
            ctx.organization_id,
            ctx.peer_account_ids,
            ctx.start_date,
            ctx.end_date,
        )

    def peers_series(self, ctx: ParameterContext) -> List[TimeSeriesEntry]:
        return self._query(
            "peers series",
            self.backend.compute_peers_series,
            self.dimension,
            ctx.organization_id,
            ctx.peer_account_ids,
            ctx.start_date,
            ctx.end_date,
            ctx.interval,
        )

    def to_value(self, raw: float) -> float:
        """Normalise a backend value before it is reported."""
        return float(raw or 0.0)

    def calculate(self, params: MetricRuleParams) -> Tuple[SnapshotMetric, GraphMetric]:
        ctx = extract_parameters(params)
        self.validate_operation()

        value = self.to_value(self.subject_value(ctx))
        series = self.subject_series(ctx)

        peers_value = 0.0
        if self.wants_peers(ctx):
            peers_value = self.to_value(self.peers_value(ctx))
            series = merge_time_series_with_peers(series, self.peers_series(ctx))
        log.debug("%s: value=%s peers_value=%s buckets=%d", self.slug, value, peers_value, len(series))

        snapshot = SnapshotMetric(
            label=self.name,
            description=self.descriptor.description,
            value=value,
            peers_value=peers_value,
            unit=self.descriptor.unit,
            icon_identifier=self.descriptor.icon_identifier,
            icon_color=self.descriptor.icon_color,
        )
        graph = GraphMetric(
            label=self.name,
            type=self.graph_type,
            unit=self.descriptor.unit,
            time_series=series,
        )
        return snapshot, graph
