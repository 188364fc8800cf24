import json
import logging
import os

from scmetrics.adapters.registry import get_adapter
from scmetrics.domain.models import CanonicalBundle
from scmetrics.exceptions import ManifestError
from scmetrics.ingestion.base import Ingestion

log = logging.getLogger(__name__)

MANIFEST_NAME = 'dump_manifest.json'


class DumpIngestion(Ingestion):
    """Ingests source-control records from a filesystem dump directory."""

    def __init__(self, path: str):
        self.path = path

    def ingest(self) -> CanonicalBundle:
        """
        Load and parse a dump directory into a CanonicalBundle.

        Raises:
            ManifestError: If the manifest file is missing, invalid, or names
                a provider no adapter handles.
            ParseError: If a record file holds a malformed line.
        """
        manifest_path = os.path.join(self.path, MANIFEST_NAME)

        if not os.path.exists(manifest_path):
            raise ManifestError(
                f"Manifest file not found at {manifest_path}",
                path=manifest_path
            )

        try:
            with open(manifest_path, 'r') as f:
                manifest = json.load(f)
        except json.JSONDecodeError as e:
            raise ManifestError(
                f"Invalid JSON in manifest file: {e}",
                path=manifest_path
            ) from e

        provider = manifest.get('provider') if isinstance(manifest, dict) else None
        if not provider:
            raise ManifestError(
                "Manifest missing required 'provider' field",
                path=manifest_path
            )

        try:
            adapter = get_adapter(provider)
        except ValueError as e:
            raise ManifestError(str(e), path=manifest_path) from e

        log.info("Ingesting dump from %s (provider: %s)", self.path, provider)
        return adapter.parse_dump(self.path)
