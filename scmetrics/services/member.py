import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from scmetrics.domain.models import Interval, MemberProfile, MetricRuleParams, MetricsResponse
from scmetrics.exceptions import NotFoundError
from scmetrics.ledger.ledger import Ledger
from scmetrics.metrics.engine import MetricsEngine
from scmetrics.metrics.params import ACCOUNT_IDS_KEY, ORGANIZATION_ID_KEY, PEER_ACCOUNT_IDS_KEY

log = logging.getLogger(__name__)


class AccountDirectory(ABC):
    """Resolves organization members to their source-control accounts."""

    @abstractmethod
    def get_member(self, organization_id: str, member_id: str) -> Optional[MemberProfile]:
        pass

    @abstractmethod
    def get_members_with_title(self, organization_id: str, title_id: str) -> List[MemberProfile]:
        pass

    @abstractmethod
    def get_account_ids(self, organization_id: str, member_ids: Iterable[str]) -> List[str]:
        pass


class LedgerAccountDirectory(AccountDirectory):
    """Directory over a ledger's accounts and a list of member profiles."""

    def __init__(self, ledger: Ledger, members: Iterable[MemberProfile]):
        self.ledger = ledger
        self.members: Dict[str, MemberProfile] = {m.id: m for m in members}

    def get_member(self, organization_id, member_id):
        member = self.members.get(member_id)
        if member is None or member.organization_id != organization_id:
            return None
        return member

    def get_members_with_title(self, organization_id, title_id):
        return [
            m for m in self.members.values()
            if m.organization_id == organization_id and m.title_id == title_id
        ]

    def get_account_ids(self, organization_id, member_ids):
        ids = []
        for member_id in member_ids:
            for account in self.ledger.get_accounts_for_member(member_id):
                if account.organization_id == organization_id:
                    ids.append(account.id)
        return ids


def calculate_member_metrics(
    engine: MetricsEngine,
    directory: AccountDirectory,
    organization_id: str,
    member_id: str,
    start: datetime,
    end: datetime,
    interval: Interval,
    parallel: bool = False,
) -> MetricsResponse:
    """
    Metrics for one member, compared against the members sharing their title.

    Raises:
        NotFoundError: If the member has no source-control accounts.
    """
    account_ids = directory.get_account_ids(organization_id, [member_id])
    if not account_ids:
        raise NotFoundError("no source control accounts found for member", resource=member_id)

    peer_ids: List[str] = []
    member = directory.get_member(organization_id, member_id)
    if member is not None and member.title_id:
        peers = directory.get_members_with_title(organization_id, member.title_id)
        peer_ids = directory.get_account_ids(organization_id, [p.id for p in peers if p.id != member_id])
    log.debug("Member %s: %d accounts, %d peer accounts", member_id, len(account_ids), len(peer_ids))

    params = MetricRuleParams(
        start_date=start,
        end_date=end,
        interval=Interval(interval).value,
        metric_params={
            ORGANIZATION_ID_KEY: organization_id,
            ACCOUNT_IDS_KEY: account_ids,
            PEER_ACCOUNT_IDS_KEY: peer_ids,
        },
    )
    return engine.calculate_metrics(params, parallel=parallel)
