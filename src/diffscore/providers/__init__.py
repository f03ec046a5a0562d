"""Provider gateway: the interface review providers implement, and a registry."""

from .protocols import CancellationToken, ProviderRequest, ProviderResult, ReviewProvider
from .registry import ProviderRegistry

__all__ = [
    "CancellationToken",
    "ProviderRegistry",
    "ProviderRequest",
    "ProviderResult",
    "ReviewProvider",
]
