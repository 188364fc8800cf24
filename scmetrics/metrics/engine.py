import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple, Union

from scmetrics.backends.base import AggregationBackend
from scmetrics.domain.models import (
    GraphCategory,
    GraphMetric,
    MetricRuleDescriptor,
    MetricRuleParams,
    MetricsResponse,
    SnapshotCategory,
    SnapshotMetric,
)
from scmetrics.exceptions import MultipleRuleErrors
from scmetrics.metrics import build_rules
from scmetrics.metrics.base import Metric
from scmetrics.metrics.params import extract_parameters

log = logging.getLogger(__name__)

RuleResult = Tuple[SnapshotMetric, GraphMetric]


class MetricsEngine:
    """
    Runs a fixed, ordered set of metric rules against one request.

    The response holds one snapshot category and one graph category per rule,
    in registration order. Any failing rule fails the whole calculation.
    """

    def __init__(self, rules: Sequence[Metric], max_workers: int = 4):
        self.rules = tuple(rules)
        self.max_workers = max_workers

    @classmethod
    def from_backend(
        cls,
        backend: AggregationBackend,
        descriptors: Optional[Sequence[MetricRuleDescriptor]] = None,
        max_workers: int = 4,
    ) -> "MetricsEngine":
        return cls(build_rules(backend, descriptors), max_workers=max_workers)

    def calculate_metrics(
        self, params: Union[MetricRuleParams, Dict], parallel: bool = False
    ) -> MetricsResponse:
        if isinstance(params, dict):
            params = MetricRuleParams.from_payload(params)
        # Reject a bad request before any rule runs.
        extract_parameters(params)

        if parallel and len(self.rules) > 1:
            results = self._calculate_parallel(params)
        else:
            results = self._calculate_sequential(params)

        response = MetricsResponse()
        for rule, (snapshot, graph) in zip(self.rules, results):
            category = rule.category()
            response.snapshot_metrics.append(SnapshotCategory(category=category, metrics=[snapshot]))
            response.graph_metrics.append(GraphCategory(category=category, metrics=[graph]))

        log.info("Calculated %d metrics (parallel=%s)", len(results), parallel)
        return response

    def _calculate_sequential(self, params: MetricRuleParams) -> List[RuleResult]:
        results: List[RuleResult] = []
        for rule in self.rules:
            log.debug("Calculating %s", rule.slug)
            try:
                results.append(rule.calculate(params))
            except Exception as e:
                log.warning("Metric %s failed: %s", rule.slug, e)
                raise
        return results

    def _calculate_parallel(self, params: MetricRuleParams) -> List[RuleResult]:
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(rule.calculate, params) for rule in self.rules]

        results: List[RuleResult] = []
        errors: List[Exception] = []
        for rule, future in zip(self.rules, futures):
            error = future.exception()
            if error is not None:
                log.warning("Metric %s failed: %s", rule.slug, error)
                errors.append(error)
                continue
            log.debug("Calculated %s", rule.slug)
            results.append(future.result())

        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise MultipleRuleErrors(errors)
        return results
