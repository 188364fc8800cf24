from pydantic import BaseModel, ConfigDict, Field, ValidationError
from datetime import datetime
from typing import Optional, List, Any, Tuple, Union
from enum import Enum

from scmetrics.exceptions import InvalidRequestError


class Interval(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class MetricOperation(str, Enum):
    AVERAGE = "AVG"
    COUNT = "COUNT"
    MEDIAN = "MEDIAN"
    MAX = "MAX"
    MIN = "MIN"


class MetricDimension(str, Enum):
    TIME_TO_MERGE = "TIME_TO_MERGE"
    MERGED_PRS = "MERGED_PRS"
    REVIEWED_PRS = "REVIEWED_PRS"
    LOC_ADDED = "LOC_ADDED"
    LOC_REMOVED = "LOC_REMOVED"
    PR_REVIEW_COMPLEXITY = "PR_REVIEW_COMPLEXITY"


class Unit(str, Enum):
    COUNT = "count"
    SECONDS = "seconds"
    PERCENTAGE = "percentage"


class PeerComparison(str, Enum):
    """When a rule queries the peer group."""

    WHEN_PEERS_PROVIDED = "when_peers_provided"
    ALWAYS = "always"


class CommentType(str, Enum):
    REVIEW = "REVIEW"
    ISSUE = "ISSUE"


# ---------------------------------------------------------------------------
# Source-control records (what the aggregation backend answers queries over)
# ---------------------------------------------------------------------------


class SourceControlAccount(BaseModel):
    id: str
    organization_id: str
    member_id: Optional[str] = None
    provider_name: str = "github"
    provider_id: Optional[str] = None
    username: str


class PullRequest(BaseModel):
    id: str
    source_control_account_id: str
    provider_id: Optional[str] = None
    repository_name: str = ""
    title: str
    status: str
    created_at: datetime
    merged_at: Optional[datetime] = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0

    @property
    def merged(self) -> bool:
        return self.merged_at is not None and self.status in ("closed", "merged")


class PRComment(BaseModel):
    id: str
    pr_id: str
    source_control_account_id: str
    type: CommentType
    body: str = ""
    created_at: datetime


class CanonicalBundle(BaseModel):
    accounts: List[SourceControlAccount]
    pull_requests: List[PullRequest]
    comments: List[PRComment]


# ---------------------------------------------------------------------------
# Rule identity
# ---------------------------------------------------------------------------


class MetricRuleCategory(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    priority: int


class MetricRuleDescriptor(BaseModel):
    """Static identity of a metric rule, defined once at process start."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    category: MetricRuleCategory
    unit: Unit
    dimension: MetricDimension
    operation: MetricOperation
    peer_comparison: PeerComparison = PeerComparison.WHEN_PEERS_PROVIDED
    icon_identifier: Optional[str] = None
    icon_color: Optional[str] = None


# ---------------------------------------------------------------------------
# Request side
# ---------------------------------------------------------------------------


class MetricRuleParams(BaseModel):
    """
    Raw, caller-supplied payload.

    Timestamps may arrive as ISO strings and ``metric_params`` stays opaque;
    both are parsed during extraction.
    """

    start_date: Optional[Union[datetime, str]] = None
    end_date: Optional[Union[datetime, str]] = None
    interval: Optional[str] = None
    metric_params: Optional[Any] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "MetricRuleParams":
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(loc) for loc in first.get("loc", ()))
            raise InvalidRequestError(f"invalid {field or 'payload'}: {first.get('msg')}", field=field) from e


class ParameterContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    organization_id: str
    start_date: datetime
    end_date: datetime
    interval: Interval
    subject_account_ids: Tuple[str, ...] = ()
    peer_account_ids: Tuple[str, ...] = ()
    title_prefixes: Tuple[str, ...] = ()

    @property
    def has_peers(self) -> bool:
        return len(self.peer_account_ids) > 0


# ---------------------------------------------------------------------------
# Response side
# ---------------------------------------------------------------------------


class SnapshotMetric(BaseModel):
    label: str
    description: str = ""
    value: float
    peers_value: float = 0.0
    unit: Unit
    icon_identifier: Optional[str] = None
    icon_color: Optional[str] = None


class TimeSeriesDataPoint(BaseModel):
    key: str
    value: float


class TimeSeriesEntry(BaseModel):
    date: str
    data: List[TimeSeriesDataPoint] = Field(default_factory=list)


class GraphMetric(BaseModel):
    label: str
    type: str = "line"
    unit: Unit
    time_series: List[TimeSeriesEntry] = Field(default_factory=list)


class SnapshotCategory(BaseModel):
    category: MetricRuleCategory
    metrics: List[SnapshotMetric]


class GraphCategory(BaseModel):
    category: MetricRuleCategory
    metrics: List[GraphMetric]


class MetricsResponse(BaseModel):
    snapshot_metrics: List[SnapshotCategory] = Field(default_factory=list)
    graph_metrics: List[GraphCategory] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Organization view
# ---------------------------------------------------------------------------


class Team(BaseModel):
    id: str
    name: str
    pr_prefix: Optional[str] = None


class TeamMetricsBreakdown(BaseModel):
    team_id: str
    team_name: str
    snapshot_metrics: List[SnapshotCategory] = Field(default_factory=list)
    graph_metrics: List[GraphCategory] = Field(default_factory=list)


class OrganizationMetricsResponse(BaseModel):
    snapshot_metrics: List[SnapshotCategory] = Field(default_factory=list)
    graph_metrics: List[GraphCategory] = Field(default_factory=list)
    teams_breakdown: List[TeamMetricsBreakdown] = Field(default_factory=list)


class MemberProfile(BaseModel):
    id: str
    organization_id: str
    name: str = ""
    title_id: Optional[str] = None
