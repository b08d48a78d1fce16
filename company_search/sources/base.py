"""Shared primitives for source adapters."""
from abc import ABC
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

import httpx

from ..models import Entity

IDENTIFIER = "identifier"
FULLTEXT = "fulltext"
LOCATION = "location"


@dataclass
class SourceResult:
    """Entities produced by one adapter call plus an optional advisory note."""
    records: List[Entity] = field(default_factory=list)
    advisory: Optional[str] = None

    @classmethod
    def empty(cls, advisory: Optional[str] = None) -> "SourceResult":
        return cls(records=[], advisory=advisory)


class SourceAdapter(ABC):
    """
    One upstream strategy. `capabilities` says which query shapes it serves:
    direct identifier lookup, full-text name search, or location listing.
    """

    name: str = "source"
    capabilities: FrozenSet[str] = frozenset()
    default_timeout: float = 10.0

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self.client = client
        self.timeout = float(timeout or self.default_timeout)

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    @asynccontextmanager
    async def session(self):
        """Yields the injected client, or a fresh one closed on exit."""
        if self.client is not None:
            yield self.client
            return
        async with httpx.AsyncClient(follow_redirects=True) as client:
            yield client

    async def lookup(self, identifier: str) -> SourceResult:
        raise NotImplementedError(f"{self.name} does not support identifier lookup")

    async def search_text(self, name: str, locality: Optional[str] = None) -> SourceResult:
        raise NotImplementedError(f"{self.name} does not support full-text search")

    async def search_location(self, locality: str) -> SourceResult:
        raise NotImplementedError(f"{self.name} does not support location listing")
