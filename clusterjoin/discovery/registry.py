"""Discovery provider contract and the provider-name dispatching registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol

from loguru import logger

from clusterjoin.core.errors import DiscoveryError
from clusterjoin.datastructures.type_aliases import (
    AddressString,
    DiscoveryArguments,
    DiscoveryDirectiveString,
    ProviderName,
)

from .directive import parse_directive


class DiscoveryProvider(Protocol):
    """Resolves a discovery directive into join candidates.

    Implementations raise ``DiscoveryError`` when resolution fails.
    """

    async def resolve(
        self, directive: DiscoveryDirectiveString
    ) -> list[AddressString]: ...


class DiscoveryBackend(ABC):
    """A single named discovery mechanism (``provider=<name>``)."""

    name: ProviderName = ""

    @abstractmethod
    async def discover(self, arguments: DiscoveryArguments) -> list[AddressString]:
        """Return candidate addresses for the directive arguments."""
        pass

    def help(self) -> str:
        return ""


class DiscoveryRegistry:
    """DiscoveryProvider that dispatches on the directive's provider name."""

    def __init__(self, backends: list[DiscoveryBackend] | None = None) -> None:
        self._backends: dict[ProviderName, DiscoveryBackend] = {}
        for backend in backends or []:
            self.register(backend)

    def register(self, backend: DiscoveryBackend, name: ProviderName = "") -> None:
        provider = name or backend.name
        if not provider:
            raise ValueError("Discovery backend needs a provider name")
        if provider in self._backends:
            raise ValueError(f"Discovery provider already registered: {provider}")
        self._backends[provider] = backend
        logger.debug(f"Registered discovery provider {provider}")

    def unregister(self, name: ProviderName) -> None:
        self._backends.pop(name, None)

    def providers(self) -> tuple[ProviderName, ...]:
        return tuple(sorted(self._backends))

    async def resolve(
        self, directive: DiscoveryDirectiveString
    ) -> list[AddressString]:
        parsed = parse_directive(directive)
        backend = self._backends.get(parsed.provider)
        if backend is None:
            known = ", ".join(self.providers()) or "none"
            raise DiscoveryError(
                f"Unknown discovery provider {parsed.provider!r} (known: {known})"
            )

        try:
            addresses = await backend.discover(parsed.arguments)
        except DiscoveryError:
            raise
        except Exception as e:
            raise DiscoveryError(
                f"Discovery provider {parsed.provider!r} failed: {e}"
            ) from e

        return [address for address in addresses if address]


def create_default_registry() -> DiscoveryRegistry:
    """Registry with the built-in providers."""
    from .file_backend import FileDiscoveryBackend

    return DiscoveryRegistry([FileDiscoveryBackend()])
