"""Ordered provider registry."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from ..exceptions import InvalidConfigError
from ..logging_config import get_logger
from .protocols import ReviewProvider

logger = get_logger(__name__)


class ProviderRegistry:
    """Providers in registration order, keyed by ``provider_id``.

    Registration order is the order findings appear in a run.
    """

    def __init__(self, providers: Optional[Iterable[ReviewProvider]] = None):
        self._providers: dict[str, ReviewProvider] = {}
        for provider in providers or ():
            self.register(provider)

    def register(self, provider: ReviewProvider) -> None:
        if not isinstance(provider, ReviewProvider):
            raise TypeError(f"{provider!r} does not implement ReviewProvider")
        if provider.provider_id in self._providers:
            raise InvalidConfigError(
                "provider_id", provider.provider_id, "a provider with this id is already registered"
            )
        self._providers[provider.provider_id] = provider
        logger.debug(f"Registered provider {provider.provider_id} ({provider.name} {provider.version})")

    def unregister(self, provider_id: str) -> None:
        self._providers.pop(provider_id, None)

    def get(self, provider_id: str) -> Optional[ReviewProvider]:
        return self._providers.get(provider_id)

    def all(self) -> list[ReviewProvider]:
        return list(self._providers.values())

    def enabled(self) -> list[ReviewProvider]:
        return [p for p in self._providers.values() if p.enabled]

    def __iter__(self) -> Iterator[ReviewProvider]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers
