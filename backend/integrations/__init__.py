"""External API integrations.

This package contains:
- Provider protocol: the interface the sync engine depends on
- Yodlee client: integration with the Yodlee aggregator API
- Exceptions: typed provider errors
"""

from integrations.provider_protocol import AggregatorProvider
from integrations.yodlee_client import YodleeClient

__all__ = [
    "AggregatorProvider",
    "YodleeClient",
]
