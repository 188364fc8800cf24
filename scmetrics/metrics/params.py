"""
Shared parameter extraction for every metric rule.

``extract_parameters`` turns the opaque caller payload into a typed, frozen
``ParameterContext``. Validation runs in a fixed order and the first failure
raises ``InvalidRequestError``; nothing downstream runs on a partial result.
"""
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from scmetrics.domain.models import Interval, MetricRuleParams, ParameterContext
from scmetrics.exceptions import InvalidRequestError

ORGANIZATION_ID_KEY = "organizationId"
ACCOUNT_IDS_KEY = "sourceControlAccountIDs"
PEER_ACCOUNT_IDS_KEY = "peersSourceControlAccountIDs"
PR_PREFIXES_KEY = "pr_prefixes"

_VALID_INTERVALS = {i.value for i in Interval}
_DATETIME = TypeAdapter(datetime)


def _parse_date(raw: Union[datetime, str], field: str, label: str) -> datetime:
    try:
        ts = _DATETIME.validate_python(raw)
    except ValidationError as e:
        raise InvalidRequestError(f"invalid {label} format", field=field, value=raw) from e
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _decode_metric_params(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidRequestError("invalid metric params format", field="metric_params") from e
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidRequestError("invalid metric params format", field="metric_params") from e
        if isinstance(decoded, dict):
            return decoded
    raise InvalidRequestError("invalid metric params format", field="metric_params")


def _parse_account_ids(metric_params: Dict[str, Any], key: str, error_message: str) -> Tuple[str, ...]:
    """Validate an optional list of UUID strings, returning canonical ids in first-seen order."""
    if key not in metric_params or metric_params[key] is None:
        return ()

    raw_ids = metric_params[key]
    if not isinstance(raw_ids, (list, tuple)):
        raise InvalidRequestError(error_message, field=key, value=raw_ids)

    seen = set()
    ids: List[str] = []
    for raw_id in raw_ids:
        if not isinstance(raw_id, str):
            raise InvalidRequestError(error_message, field=key, value=raw_id)
        try:
            canonical = str(uuid.UUID(raw_id))
        except ValueError as e:
            raise InvalidRequestError(error_message, field=key, value=raw_id) from e
        if canonical not in seen:
            seen.add(canonical)
            ids.append(canonical)
    return tuple(ids)


def _parse_prefixes(metric_params: Dict[str, Any]) -> Tuple[str, ...]:
    raw = metric_params.get(PR_PREFIXES_KEY)
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(p for p in raw if isinstance(p, str))


def extract_parameters(params: Union[MetricRuleParams, Dict[str, Any]]) -> ParameterContext:
    """
    Validate a raw payload and build the request's ParameterContext.

    Args:
        params: A MetricRuleParams, or the plain payload dict it is built from.

    Raises:
        InvalidRequestError: On the first missing or malformed field.
    """
    if not isinstance(params, MetricRuleParams):
        params = MetricRuleParams.from_payload(params)

    if not params.interval:
        raise InvalidRequestError("interval is required", field="interval")
    if params.interval not in _VALID_INTERVALS:
        raise InvalidRequestError("invalid interval", field="interval", value=params.interval)

    if params.start_date is None:
        raise InvalidRequestError("start date is required", field="start_date")
    start_date = _parse_date(params.start_date, "start_date", "start date")
    if params.end_date is None:
        raise InvalidRequestError("end date is required", field="end_date")
    end_date = _parse_date(params.end_date, "end_date", "end date")
    if start_date > end_date:
        raise InvalidRequestError("start date must not be after end date", field="start_date", value=start_date)

    if params.metric_params is None:
        raise InvalidRequestError("metric params is required", field="metric_params")
    metric_params = _decode_metric_params(params.metric_params)

    organization_id: Optional[Any] = metric_params.get(ORGANIZATION_ID_KEY)
    if organization_id is None:
        raise InvalidRequestError("organization id is required", field=ORGANIZATION_ID_KEY)
    if not isinstance(organization_id, str):
        raise InvalidRequestError("invalid organization id format", field=ORGANIZATION_ID_KEY, value=organization_id)

    subject_ids = _parse_account_ids(metric_params, ACCOUNT_IDS_KEY, "invalid source control account id")
    peer_ids = _parse_account_ids(metric_params, PEER_ACCOUNT_IDS_KEY, "invalid peers source control account id")

    return ParameterContext(
        organization_id=organization_id,
        start_date=start_date,
        end_date=end_date,
        interval=Interval(params.interval),
        subject_account_ids=subject_ids,
        peer_account_ids=peer_ids,
        title_prefixes=_parse_prefixes(metric_params),
    )
