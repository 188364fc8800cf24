from __future__ import annotations

import logging
from typing import Any, Dict

from celery import shared_task

from scmetrics.backends.ledger import LedgerAggregationBackend
from scmetrics.config import load_settings
from scmetrics.ingestion.dump import DumpIngestion
from scmetrics.metrics.engine import MetricsEngine

log = logging.getLogger(__name__)


@shared_task(bind=True)
def run_metrics(self, dump_dir: str, payload: Dict[str, Any], parallel: bool = False) -> Dict[str, Any]:
    settings = load_settings()
    ledger = DumpIngestion(dump_dir).load_ledger()
    engine = MetricsEngine.from_backend(
        LedgerAggregationBackend(ledger),
        max_workers=settings.max_workers,
    )
    log.info("Task %s: calculating metrics for dump %s", self.request.id, dump_dir)
    response = engine.calculate_metrics(payload, parallel=parallel or settings.parallel_rules)
    return response.model_dump(mode="json")
