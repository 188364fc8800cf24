from typing import Dict, Type

from scmetrics.adapters.base import ProviderAdapter
from scmetrics.adapters.canonical import CanonicalAdapter

ADAPTERS: Dict[str, Type[ProviderAdapter]] = {
    CanonicalAdapter.provider: CanonicalAdapter,
}


def get_adapter(provider: str) -> ProviderAdapter:
    adapter_cls = ADAPTERS.get(provider)
    if adapter_cls is None:
        raise ValueError(f"Unsupported provider: {provider}")
    return adapter_cls()
