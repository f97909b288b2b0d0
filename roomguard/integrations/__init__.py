"""Provider clients and candidate aggregation for roomguard."""

from .aggregator import CandidateAggregator
from .provider_gateway import ProviderGateway, ProviderGatewayConfig, ProviderRetryPolicy

__all__ = [
    "CandidateAggregator",
    "ProviderGateway",
    "ProviderGatewayConfig",
    "ProviderRetryPolicy",
]
