import json
import logging
from pathlib import Path
from typing import Callable, Iterator, List, TypeVar

from pydantic import ValidationError

from scmetrics.adapters.base import ProviderAdapter
from scmetrics.domain.models import CanonicalBundle, PRComment, PullRequest, SourceControlAccount
from scmetrics.exceptions import ParseError

log = logging.getLogger(__name__)

T = TypeVar("T")


def _read_jsonl(file: Path, build: Callable[[dict], T]) -> Iterator[T]:
    with file.open() as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                yield build(json.loads(line))
            except (json.JSONDecodeError, ValidationError, TypeError) as e:
                raise ParseError(
                    f"Failed to parse {file.name} line {line_number}: {e}",
                    source=str(file),
                    line_number=line_number,
                ) from e


class CanonicalAdapter(ProviderAdapter):
    """
    Parse a dump already written in the canonical record layout:

        canonical/accounts.jsonl
        canonical/pull_requests.jsonl
        canonical/pr_comments.jsonl

    Each file is optional; a missing file contributes no records.
    """

    provider = "canonical"

    def parse_dump(self, dump_path: str) -> CanonicalBundle:
        path = Path(dump_path) / "canonical"

        def load(name: str, build: Callable[[dict], T]) -> List[T]:
            file = path / name
            if not file.exists():
                log.debug("No %s in %s", name, path)
                return []
            return list(_read_jsonl(file, build))

        accounts = load("accounts.jsonl", lambda d: SourceControlAccount(**d))
        pull_requests = load("pull_requests.jsonl", lambda d: PullRequest(**d))
        comments = load("pr_comments.jsonl", lambda d: PRComment(**d))

        log.info(
            "Parsed %d accounts, %d pull requests, %d comments",
            len(accounts),
            len(pull_requests),
            len(comments),
        )
        return CanonicalBundle(accounts=accounts, pull_requests=pull_requests, comments=comments)
