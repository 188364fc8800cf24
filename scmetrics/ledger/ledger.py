import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from scmetrics.domain.models import CanonicalBundle, CommentType, PRComment, PullRequest, SourceControlAccount


def as_utc(ts: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC."""
    if ts is not None and ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def canonical_id(value: str) -> str:
    """Lowercase canonical form of a UUID id; other ids are returned unchanged."""
    try:
        return str(uuid.UUID(value))
    except (ValueError, AttributeError, TypeError):
        return value


def _in_window(ts: Optional[datetime], start: Optional[datetime], end: Optional[datetime]) -> bool:
    ts = as_utc(ts)
    if ts is None:
        return False
    if start and ts < as_utc(start):
        return False
    if end and ts > as_utc(end):
        return False
    return True


def _matches_prefix(title: str, prefixes: Sequence[str]) -> bool:
    if not prefixes:
        return True
    lowered = title.lower()
    return any(lowered.startswith(p.lower()) for p in prefixes)


class Ledger:
    """
    In-memory, read-only ledger that builds deterministic and time-ordered indexes
    from a CanonicalBundle for query-oriented access.
    """

    def __init__(self, bundle: CanonicalBundle):
        self.bundle = bundle

        # canonical account id -> account
        self.account_by_id: Dict[str, SourceControlAccount] = {}
        # organization_id -> accounts
        self.org_accounts: Dict[str, List[SourceControlAccount]] = defaultdict(list)
        # member_id -> accounts
        self.member_accounts: Dict[str, List[SourceControlAccount]] = defaultdict(list)

        # account_id -> sorted list of PRs by created_at
        self.account_prs: Dict[str, List[PullRequest]] = defaultdict(list)
        self.pr_by_id: Dict[str, PullRequest] = {}

        # account_id -> sorted list of review comments by created_at
        self.account_reviews: Dict[str, List[PRComment]] = defaultdict(list)
        # pr_id -> sorted list of comments by created_at
        self.pr_comments: Dict[str, List[PRComment]] = defaultdict(list)

        self._build_indexes()

    def _build_indexes(self):
        for account in self.bundle.accounts:
            self.account_by_id[canonical_id(account.id)] = account
            self.org_accounts[account.organization_id].append(account)
            if account.member_id:
                self.member_accounts[account.member_id].append(account)

        for pr in self.bundle.pull_requests:
            self.pr_by_id[pr.id] = pr
            self.account_prs[canonical_id(pr.source_control_account_id)].append(pr)
        for prs in self.account_prs.values():
            prs.sort(key=lambda p: as_utc(p.created_at))

        for comment in self.bundle.comments:
            self.pr_comments[comment.pr_id].append(comment)
            if comment.type == CommentType.REVIEW:
                self.account_reviews[canonical_id(comment.source_control_account_id)].append(comment)
        for comments in self.pr_comments.values():
            comments.sort(key=lambda c: as_utc(c.created_at))
        for comments in self.account_reviews.values():
            comments.sort(key=lambda c: as_utc(c.created_at))

    def get_account(self, account_id: str) -> Optional[SourceControlAccount]:
        return self.account_by_id.get(canonical_id(account_id))

    def get_pr(self, pr_id: str) -> Optional[PullRequest]:
        return self.pr_by_id.get(pr_id)

    def get_accounts_for_organization(self, organization_id: str) -> List[SourceControlAccount]:
        return self.org_accounts.get(organization_id, [])

    def get_accounts_for_member(self, member_id: str) -> List[SourceControlAccount]:
        return self.member_accounts.get(member_id, [])

    def resolve_accounts(self, organization_id: str, account_ids: Iterable[str]) -> List[str]:
        """
        Canonical account ids scoped to the organization. An empty selection means
        the whole organization; ids belonging to another organization are ignored.
        """
        org_ids = [canonical_id(a.id) for a in self.get_accounts_for_organization(organization_id)]
        selected = [canonical_id(a) for a in account_ids]
        if not selected:
            return org_ids
        allowed = set(org_ids)
        return [a for a in selected if a in allowed]

    def get_comments_for_pr(self, pr_id: str) -> List[PRComment]:
        """Get comments for a PR, time-ordered."""
        return self.pr_comments.get(pr_id, [])

    def get_merged_prs(
        self,
        organization_id: str,
        account_ids: Iterable[str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        prefixes: Sequence[str] = (),
    ) -> List[PullRequest]:
        """Merged PRs authored by the accounts, created inside the window and matching a title prefix."""
        merged: List[PullRequest] = []
        for account_id in self.resolve_accounts(organization_id, account_ids):
            for pr in self.account_prs.get(account_id, []):
                if not pr.merged:
                    continue
                if not _in_window(pr.created_at, start, end):
                    continue
                if not _matches_prefix(pr.title, prefixes):
                    continue
                merged.append(pr)
        merged.sort(key=lambda p: (as_utc(p.merged_at), p.id))
        return merged

    def get_reviewed_prs(
        self,
        organization_id: str,
        account_ids: Iterable[str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        prefixes: Sequence[str] = (),
        exclude_member_authored: bool = False,
    ) -> List[tuple]:
        """
        Distinct (first review time, PR) pairs for PRs the accounts reviewed inside the window.

        A review an account left on its own PR is never counted. With
        ``exclude_member_authored`` PRs whose author account is mapped to a
        member of the organization are skipped as well.
        """
        reviewers = self.resolve_accounts(organization_id, account_ids)
        first_review: Dict[str, datetime] = {}
        for account_id in reviewers:
            for comment in self.account_reviews.get(account_id, []):
                if not _in_window(comment.created_at, start, end):
                    continue
                pr = self.pr_by_id.get(comment.pr_id)
                if pr is None:
                    continue
                author_id = canonical_id(pr.source_control_account_id)
                if author_id == account_id:
                    continue
                if exclude_member_authored:
                    author = self.account_by_id.get(author_id)
                    if author and author.member_id and author.organization_id == organization_id:
                        continue
                if not _matches_prefix(pr.title, prefixes):
                    continue
                ts = as_utc(comment.created_at)
                if pr.id not in first_review or ts < first_review[pr.id]:
                    first_review[pr.id] = ts

        pairs = [(ts, self.pr_by_id[pr_id]) for pr_id, ts in first_review.items()]
        pairs.sort(key=lambda pair: (pair[0], pair[1].id))
        return pairs
