from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Sequence

from scmetrics.domain.models import Interval, MetricDimension, MetricOperation, TimeSeriesEntry


class AggregationBackend(ABC):
    """
    Answers scalar and time-series aggregation queries over pull-request history.

    Subject queries take the rule's operation; an empty ``account_ids`` means
    every account of the organization. Peer queries aggregate per dimension
    on their own and label their single data point ``"Peers"``.
    """

    @abstractmethod
    def compute_scalar(
        self,
        dimension: MetricDimension,
        organization_id: str,
        account_ids: Sequence[str],
        prefixes: Sequence[str],
        start: datetime,
        end: datetime,
        operation: MetricOperation,
    ) -> float:
        pass

    @abstractmethod
    def compute_series(
        self,
        dimension: MetricDimension,
        organization_id: str,
        account_ids: Sequence[str],
        prefixes: Sequence[str],
        start: datetime,
        end: datetime,
        operation: MetricOperation,
        label: str,
        interval: Interval,
    ) -> List[TimeSeriesEntry]:
        pass

    @abstractmethod
    def compute_peers_scalar(
        self,
        dimension: MetricDimension,
        organization_id: str,
        account_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> float:
        pass

    @abstractmethod
    def compute_peers_series(
        self,
        dimension: MetricDimension,
        organization_id: str,
        account_ids: Sequence[str],
        start: datetime,
        end: datetime,
        interval: Interval,
    ) -> List[TimeSeriesEntry]:
        pass
