"""
Custom exceptions for the source-control metrics engine.

Every failure surfaced by the engine is one of these. ``InvalidRequestError``
is raised before any backend call is issued; ``BackendError`` wraps whatever
the aggregation backend raised and records which rule and query failed.
"""
from typing import List, Optional


class MetricsError(Exception):
    """Base exception for all metrics-engine errors."""

    pass


class InvalidRequestError(MetricsError):
    """Raised when the caller-supplied parameters are missing or malformed."""

    def __init__(self, message: str, field: str = None, value=None):
        self.field = field
        self.value = value
        super().__init__(message)


class BackendError(MetricsError):
    """Raised when an aggregation backend query fails."""

    def __init__(self, message: str, rule: str = None, dimension: str = None, scope: str = None):
        self.rule = rule
        self.dimension = dimension
        self.scope = scope
        super().__init__(message)


class MultipleRuleErrors(MetricsError):
    """Raised in parallel evaluation when more than one rule failed."""

    def __init__(self, errors: List[Exception]):
        self.errors = list(errors)
        summary = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} metric rules failed: {summary}")


class NotFoundError(MetricsError):
    """Raised when a referenced member or account cannot be resolved."""

    def __init__(self, message: str, resource: Optional[str] = None):
        self.resource = resource
        super().__init__(message)


class ParseError(MetricsError):
    """Raised when parsing data from a dump fails."""

    def __init__(self, message: str, source: str = None, line_number: int = None):
        self.source = source
        self.line_number = line_number
        super().__init__(message)


class ManifestError(MetricsError):
    """Raised when manifest file is missing or invalid."""

    def __init__(self, message: str, path: str = None):
        self.path = path
        super().__init__(message)
