#!/usr/bin/env python3
import argparse
import json
import sys
import os
import logging
from datetime import datetime, timedelta, timezone

# Add the project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))

from celery.exceptions import TimeoutError as CeleryTimeout

from scmetrics.backends.ledger import LedgerAggregationBackend
from scmetrics.celery_app import app as celery_app
from scmetrics.config import load_settings
from scmetrics.domain.models import MetricsResponse, Unit
from scmetrics.exceptions import MetricsError
from scmetrics.ingestion.dump import DumpIngestion
from scmetrics.metrics.engine import MetricsEngine
from scmetrics.metrics.params import (
    ACCOUNT_IDS_KEY,
    ORGANIZATION_ID_KEY,
    PEER_ACCOUNT_IDS_KEY,
    PR_PREFIXES_KEY,
)


def _split(value):
    if not value:
        return []
    return [v.strip() for v in value.split(',') if v.strip()]


def build_payload(args):
    now = datetime.now(timezone.utc)
    metric_params = {ORGANIZATION_ID_KEY: args.org}
    if args.accounts:
        metric_params[ACCOUNT_IDS_KEY] = _split(args.accounts)
    if args.peers:
        metric_params[PEER_ACCOUNT_IDS_KEY] = _split(args.peers)
    if args.prefixes:
        metric_params[PR_PREFIXES_KEY] = _split(args.prefixes)
    return {
        'start_date': args.date_from or (now - timedelta(days=90)).isoformat(),
        'end_date': args.date_to or now.isoformat(),
        'interval': args.interval,
        'metric_params': metric_params,
    }


def format_value(value, unit):
    if unit == Unit.SECONDS:
        return f"{value / 3600:.1f}h"
    if unit == Unit.PERCENTAGE:
        return f"{value:.1f}%"
    if float(value).is_integer():
        return f"{int(value)}"
    return f"{value:.2f}"


def print_report(response: MetricsResponse, has_peers: bool):
    print("📊 Source Control Metrics Report")
    print("=" * 80)
    for snapshot_category, graph_category in zip(response.snapshot_metrics, response.graph_metrics):
        for snapshot, graph in zip(snapshot_category.metrics, graph_category.metrics):
            line = f"[{snapshot_category.category.name}] {snapshot.label}: {format_value(snapshot.value, snapshot.unit)}"
            if has_peers:
                line += f" (peers: {format_value(snapshot.peers_value, snapshot.unit)})"
            print(line)
            for entry in graph.time_series:
                points = ", ".join(f"{p.key}={format_value(p.value, graph.unit)}" for p in entry.data)
                print(f"    {entry.date}: {points}")
    print()


def main():
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    parser = argparse.ArgumentParser(description='Generate a source-control metrics report from a canonical dump.')
    parser.add_argument('--dump-path', required=True, help='Dump directory holding dump_manifest.json and canonical/*.jsonl')
    parser.add_argument('--org', required=True, help='Organization id')
    parser.add_argument('--accounts', help='Comma-separated source control account ids (default: whole organization)')
    parser.add_argument('--peers', help='Comma-separated peer source control account ids')
    parser.add_argument('--prefixes', help='Comma-separated PR title prefixes')
    parser.add_argument('--from', dest='date_from', help='ISO start date (default: 90 days ago)')
    parser.add_argument('--to', dest='date_to', help='ISO end date (default: now)')
    parser.add_argument('--interval', default=settings.default_interval.value, help='daily, weekly or monthly')
    parser.add_argument('--parallel', action='store_true', default=settings.parallel_rules, help='Evaluate metric rules in parallel')
    parser.add_argument('--json', action='store_true', help='Print the raw JSON response')
    parser.add_argument('--queue', action='store_true', help='Run the calculation on a Celery worker')
    parser.add_argument('--timeout', type=int, default=300, help='Timeout in seconds to wait for the queued task (default 300s)')

    args = parser.parse_args()
    payload = build_payload(args)

    try:
        if args.queue:
            insp = celery_app.control.inspect(timeout=5)
            ping = insp.ping() if insp else None
            if not ping:
                raise SystemExit("Celery worker not reachable. Start one with: celery -A scmetrics.celery_app worker")

            task = celery_app.send_task(
                "scmetrics.tasks.calculate.run_metrics",
                kwargs={"dump_dir": args.dump_path, "payload": payload, "parallel": args.parallel},
            )
            print(f"Queued metrics task {task.id}, waiting for completion...")
            try:
                result = task.get(timeout=args.timeout)
            except CeleryTimeout:
                raise SystemExit(f"Metrics task {task.id} did not finish within {args.timeout}s. Check worker logs.")
            response = MetricsResponse.model_validate(result)
        else:
            ledger = DumpIngestion(args.dump_path).load_ledger()
            engine = MetricsEngine.from_backend(
                LedgerAggregationBackend(ledger),
                max_workers=settings.max_workers,
            )
            response = engine.calculate_metrics(payload, parallel=args.parallel)
    except MetricsError as e:
        raise SystemExit(f"Error: {e}")

    if args.json:
        print(json.dumps(response.model_dump(mode="json"), indent=2))
    else:
        print_report(response, has_peers=bool(args.peers))


if __name__ == '__main__':
    main()
