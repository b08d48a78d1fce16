"""
Offline sample source. Unlike the live adapters it filters free-text keywords
over name and identifier, so every query shape is served locally.
"""
import asyncio
from typing import List, Optional

from ..models import Contact, Entity, Location, Sector
from .base import FULLTEXT, IDENTIFIER, LOCATION, SourceAdapter, SourceResult

SAMPLE_COMPANIES: List[Entity] = [
    Entity(
        id="uuid-1",
        name="TechNova Solutions s.r.o.",
        registry_id="12345678",
        location=Location(city="Praha", street="Václavské náměstí 1", postal_code="110 00"),
        employee_count_band="11-50",
        sector=Sector.IT,
        contact=Contact(email="info@technova.cz", phone="+420 123 456 789",
                        website="https://technova.example.com"),
        social_links={"linkedin": "https://linkedin.com/company/technova-solutions"},
    ),
    Entity(
        id="uuid-2",
        name="FinSecure a.s.",
        registry_id="87654321",
        location=Location(city="Brno", street="Česká 10", postal_code="602 00"),
        employee_count_band="50+",
        sector=Sector.FINANCE,
        contact=Contact(email="kontakt@finsecure.cz", phone="+420 987 654 321",
                        website="https://finsecure.example.com"),
    ),
    Entity(
        id="uuid-3",
        name="Kovosport Praha",
        registry_id="11223344",
        location=Location(city="Praha", street="Sportovní 5", postal_code="140 00"),
        employee_count_band="1-10",
        sector=Sector.OTHER,
        contact=Contact(email="info@kovosport.cz", phone="+420 111 222 333",
                        website="https://kovosport.example.com"),
        social_links={"twitter": "https://twitter.com/kovosport"},
    ),
    Entity(
        id="uuid-4",
        name="DataMinds CZ",
        registry_id="99887766",
        location=Location(city="Ostrava", street="Porubská 120", postal_code="708 00"),
        employee_count_band="11-50",
        sector=Sector.IT,
        contact=Contact(email="hello@dataminds.cz", phone="+420 555 666 777",
                        website="https://dataminds.example.com"),
        social_links={"linkedin": "https://linkedin.com/company/dataminds"},
    ),
    Entity(
        id="uuid-5",
        name="MediCare Plus",
        registry_id="55443322",
        location=Location(city="Praha", street="Nemocniční 8", postal_code="120 00"),
        employee_count_band="50+",
        sector=Sector.HEALTHCARE,
        contact=Contact(email="recepce@medicareplus.cz", phone="+420 222 333 444",
                        website="https://medicareplus.example.com"),
    ),
]


class MockSource(SourceAdapter):
    name = "mock"
    capabilities = frozenset({IDENTIFIER, FULLTEXT, LOCATION})

    def __init__(self, companies: Optional[List[Entity]] = None, latency: float = 0.0):
        super().__init__()
        self.companies = list(SAMPLE_COMPANIES if companies is None else companies)
        self.latency = latency

    async def _matching(self, predicate) -> SourceResult:
        if self.latency:
            await asyncio.sleep(self.latency)
        return SourceResult(records=[c for c in self.companies if predicate(c)])

    def _keyword_match(self, keyword: str):
        lowered = keyword.lower()
        return lambda c: lowered in c.name.lower() or keyword in c.registry_id

    async def lookup(self, identifier: str) -> SourceResult:
        return await self._matching(self._keyword_match(identifier))

    async def search_text(self, name: str, locality: Optional[str] = None) -> SourceResult:
        return await self._matching(self._keyword_match(name))

    async def search_location(self, locality: str) -> SourceResult:
        lowered = locality.lower()
        return await self._matching(lambda c: lowered in c.location.city.lower())
