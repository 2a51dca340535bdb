"""Channel identifier resolution with ordered fallback strategies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

import httpx
from rich.console import Console

from vingest.services.catalog import CatalogError, YouTubeCatalogClient
from vingest.utils.validation import is_channel_id

Lookup = Callable[[str], Awaitable[Optional[str]]]


class ChannelNotFoundError(LookupError):
    """Raised when no strategy could resolve a channel identifier."""

    def __init__(self, identifier: str, attempted: Sequence[str]) -> None:
        self.identifier = identifier
        self.attempted = list(attempted)
        tried = ", ".join(self.attempted) or "no strategies"
        super().__init__(
            f"Channel not found: {identifier}. Tried {tried}. Please check the channel exists and is public."
        )


@dataclass(frozen=True, slots=True)
class ResolutionStrategy:
    """A single way of turning user input into a channel ID."""

    name: str
    applies: Callable[[str], bool]
    lookup: Lookup


async def first_success(
    identifier: str,
    strategies: Sequence[ResolutionStrategy],
    *,
    console: Optional[Console] = None,
) -> Tuple[Optional[str], List[str]]:
    """Evaluate ``strategies`` in order and return the first non-empty result.

    Returns the resolved value (or ``None``) together with the names of the strategies that ran.
    Catalog and transport errors are treated as a miss for that strategy.
    """

    attempted: List[str] = []
    for strategy in strategies:
        if not strategy.applies(identifier):
            continue
        attempted.append(strategy.name)
        try:
            result = await strategy.lookup(identifier)
        except (CatalogError, httpx.HTTPError) as exc:
            if console is not None:
                console.log(f"[yellow]Resolver:[/yellow] {strategy.name} lookup failed: {exc}")
            continue
        if result:
            if console is not None:
                console.log(f"[green]Resolver:[/green] {identifier!r} resolved via {strategy.name} -> {result}")
            return result, attempted
    return None, attempted


def _strip_handle(identifier: str) -> str:
    return identifier[1:] if identifier.startswith("@") else identifier


class ChannelResolver:
    """Resolve handles, channel IDs, legacy usernames and channel names to canonical channel IDs."""

    def __init__(self, catalog: YouTubeCatalogClient, *, console: Optional[Console] = None) -> None:
        self._catalog = catalog
        self._console = console or Console()
        self._strategies: Tuple[ResolutionStrategy, ...] = (
            ResolutionStrategy("handle", lambda value: value.startswith("@"), self._lookup_handle),
            ResolutionStrategy("channel_id", is_channel_id, self._lookup_channel_id),
            ResolutionStrategy("username", lambda value: True, self._lookup_username),
            ResolutionStrategy("search", lambda value: True, self._lookup_search),
        )

    @property
    def strategies(self) -> Tuple[ResolutionStrategy, ...]:
        return self._strategies

    async def resolve_channel_id(self, identifier: str) -> str:
        """Return the canonical channel ID for ``identifier``.

        Raises
        ------
        ChannelNotFoundError
            If every applicable strategy came back empty or failed.
        """

        self._console.log(f"[blue]Resolver:[/blue] resolving channel identifier {identifier!r}")
        channel_id, attempted = await first_success(identifier, self._strategies, console=self._console)
        if channel_id is None:
            raise ChannelNotFoundError(identifier, attempted)
        return channel_id

    async def _lookup_handle(self, identifier: str) -> Optional[str]:
        return await self._catalog.find_channel_by_handle(identifier)

    async def _lookup_channel_id(self, identifier: str) -> Optional[str]:
        return await self._catalog.find_channel_by_id(identifier)

    async def _lookup_username(self, identifier: str) -> Optional[str]:
        return await self._catalog.find_channel_by_username(_strip_handle(identifier))

    async def _lookup_search(self, identifier: str) -> Optional[str]:
        candidates = await self._catalog.search_channels(identifier)
        return candidates[0] if candidates else None


__all__ = ["ChannelNotFoundError", "ChannelResolver", "ResolutionStrategy", "first_success"]
