from abc import ABC, abstractmethod

from scmetrics.domain.models import CanonicalBundle
from scmetrics.ledger.ledger import Ledger


class Ingestion(ABC):
    """A source of source-control records."""

    @abstractmethod
    def ingest(self) -> CanonicalBundle:
        """Ingest data from the source and return a CanonicalBundle."""
        pass

    def load_ledger(self) -> Ledger:
        """Ingest and index the records for querying."""
        return Ledger(self.ingest())
