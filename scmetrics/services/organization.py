import logging
from datetime import datetime
from typing import Iterable, Optional

from scmetrics.domain.models import (
    Interval,
    MetricRuleParams,
    OrganizationMetricsResponse,
    Team,
    TeamMetricsBreakdown,
)
from scmetrics.metrics.engine import MetricsEngine
from scmetrics.metrics.params import ORGANIZATION_ID_KEY, PR_PREFIXES_KEY

log = logging.getLogger(__name__)


def calculate_organization_metrics(
    engine: MetricsEngine,
    organization_id: str,
    start: datetime,
    end: datetime,
    interval: Optional[Interval] = None,
    teams: Iterable[Team] = (),
    parallel: bool = False,
) -> OrganizationMetricsResponse:
    """
    Metrics for a whole organization plus a breakdown per team.

    Teams are matched to pull requests through their title prefix; a team
    without a prefix is listed with empty metrics.
    """
    interval = Interval(interval or Interval.MONTHLY)

    def params_for(metric_params: dict) -> MetricRuleParams:
        return MetricRuleParams(
            start_date=start,
            end_date=end,
            interval=interval.value,
            metric_params=metric_params,
        )

    cumulative = engine.calculate_metrics(params_for({ORGANIZATION_ID_KEY: organization_id}), parallel=parallel)

    breakdown = []
    for team in teams:
        if not team.pr_prefix:
            log.debug("Team %s has no PR prefix, skipping metrics", team.id)
            breakdown.append(TeamMetricsBreakdown(team_id=team.id, team_name=team.name))
            continue
        team_metrics = engine.calculate_metrics(
            params_for({ORGANIZATION_ID_KEY: organization_id, PR_PREFIXES_KEY: [team.pr_prefix]}),
            parallel=parallel,
        )
        breakdown.append(
            TeamMetricsBreakdown(
                team_id=team.id,
                team_name=team.name,
                snapshot_metrics=team_metrics.snapshot_metrics,
                graph_metrics=team_metrics.graph_metrics,
            )
        )

    return OrganizationMetricsResponse(
        snapshot_metrics=cumulative.snapshot_metrics,
        graph_metrics=cumulative.graph_metrics,
        teams_breakdown=breakdown,
    )
