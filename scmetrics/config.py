from __future__ import annotations

import os
from dataclasses import dataclass

from scmetrics.domain.models import Interval

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    parallel_rules: bool = False
    max_workers: int = 4
    default_interval: Interval = Interval.MONTHLY
    log_level: str = "INFO"
    broker_url: str = "redis://localhost:16379/0"
    backend_url: str = "redis://localhost:16379/1"


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"Invalid value for {name}: expected a boolean, got {raw!r}")


def load_settings(env=None) -> Settings:
    """
    Read settings from the environment (or the given mapping).

    Raises:
        ValueError: If a variable is set to something unparseable.
    """
    env = os.environ if env is None else env

    parallel = _parse_bool("SCMETRICS_PARALLEL_RULES", env.get("SCMETRICS_PARALLEL_RULES", "false"))

    raw_workers = env.get("SCMETRICS_MAX_WORKERS", "4")
    try:
        max_workers = int(raw_workers)
    except ValueError as e:
        raise ValueError(f"Invalid value for SCMETRICS_MAX_WORKERS: {raw_workers!r}") from e
    if max_workers <= 0:
        raise ValueError("Invalid value for SCMETRICS_MAX_WORKERS: expected an integer greater than 0")

    raw_interval = env.get("SCMETRICS_DEFAULT_INTERVAL", Interval.MONTHLY.value)
    try:
        default_interval = Interval(raw_interval)
    except ValueError as e:
        raise ValueError(f"Invalid value for SCMETRICS_DEFAULT_INTERVAL: {raw_interval!r}") from e

    return Settings(
        parallel_rules=parallel,
        max_workers=max_workers,
        default_interval=default_interval,
        log_level=env.get("SCMETRICS_LOG_LEVEL", "INFO").upper(),
        broker_url=env.get("CELERY_BROKER_URL", "redis://localhost:16379/0"),
        backend_url=env.get("CELERY_BACKEND_URL", "redis://localhost:16379/1"),
    )
