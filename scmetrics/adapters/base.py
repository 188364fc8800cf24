from abc import ABC, abstractmethod

from scmetrics.domain.models import CanonicalBundle


class ProviderAdapter(ABC):
    """Turns one provider's dump layout into source-control records."""

    provider: str

    @abstractmethod
    def parse_dump(self, dump_path: str) -> CanonicalBundle:
        """Parse the dump rooted at ``dump_path`` into a CanonicalBundle."""
        pass
