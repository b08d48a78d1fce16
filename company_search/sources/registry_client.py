"""
Client for the national business registry REST API (ARES).
Direct lookup by the 8-digit identifier, or paged full-text search by name.
"""
import asyncio
import re
from typing import Any, Dict, Optional

import httpx

from ..errors import MalformedUpstreamPayload, UpstreamRejected, UpstreamUnavailable
from ..models import Contact, Entity, Location
from ..normalizer import clean_text, join_street, normalize_postal_code
from ..sector_classifier import classifier
from ..utils import logger, with_timeout
from .base import FULLTEXT, IDENTIFIER, SourceAdapter, SourceResult

REGISTRY_BASE_URL = "https://ares.gov.cz/ekonomicke-subjekty-v-be/rest"
REQUEST_TIMEOUT = 8
PAGE_SIZE = 20

IDENTIFIER_PATTERN = re.compile(r'^[0-9]{8}$')

# Statistical employee-category codes grouped into the public bands.
EMPLOYEE_CATEGORY_BANDS = {
    '110': '1-10',
    '120': '1-10',
    '210': '11-50',
    '220': '11-50',
    '230': '11-50',
}


def is_identifier(keyword: Optional[str]) -> bool:
    return bool(keyword) and bool(IDENTIFIER_PATTERN.match(keyword))


def employee_band(subject: Dict[str, Any]) -> str:
    stats = subject.get('statistickeUdaje') or {}
    code = clean_text(stats.get('kategoriePoctuPracovniku') if isinstance(stats, dict) else None)
    if not code:
        return ''
    if code in EMPLOYEE_CATEGORY_BANDS:
        return EMPLOYEE_CATEGORY_BANDS[code]
    if code.isdigit() and int(code) >= 240:
        return '50+'
    return ''


class RegistryClient(SourceAdapter):
    """Async client for registry lookups and searches."""

    name = "registry"
    capabilities = frozenset({IDENTIFIER, FULLTEXT})
    default_timeout = REQUEST_TIMEOUT

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None,
                 base_url: str = REGISTRY_BASE_URL, page_size: int = PAGE_SIZE):
        super().__init__(client=client, timeout=timeout)
        self.base_url = base_url.rstrip('/')
        self.page_size = int(page_size)

    async def _send(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """
        Performs one bounded request and returns the decoded JSON body.

        Raises UpstreamUnavailable, UpstreamRejected or MalformedUpstreamPayload.
        """
        async def call():
            async with self.session() as client:
                return await client.request(
                    method, url, headers={"Accept": "application/json"},
                    timeout=self.timeout, **kwargs
                )

        try:
            resp = await with_timeout(self.timeout)(call)()
        except asyncio.TimeoutError as exc:
            raise UpstreamUnavailable(f"Registry request timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Registry connection error: {exc}") from exc

        if resp.status_code != 200:
            raise UpstreamRejected(f"Registry returned status {resp.status_code}", resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise MalformedUpstreamPayload("Registry response was not valid JSON") from exc
        if not isinstance(data, dict):
            raise MalformedUpstreamPayload("Registry response was not a JSON object")
        return data

    async def lookup(self, identifier: str) -> SourceResult:
        """
        Direct read by identifier. Any failure means "not found": at most one
        entity, never an exception.
        """
        url = f"{self.base_url}/ekonomicke-subjekty/{identifier}"
        try:
            subject = await self._send("GET", url)
        except UpstreamRejected as exc:
            logger.info(f"Registry lookup {identifier}: {exc}")
            return SourceResult.empty(f"No company with identifier {identifier} was found.")
        except (UpstreamUnavailable, MalformedUpstreamPayload) as exc:
            logger.warning(f"Registry lookup {identifier} failed: {exc}")
            return SourceResult.empty("The business registry is currently unavailable.")

        entity = self.to_entity(subject)
        if entity is None:
            return SourceResult.empty(f"No company with identifier {identifier} was found.")
        return SourceResult(records=[entity])

    async def search_text(self, name: str, locality: Optional[str] = None) -> SourceResult:
        url = f"{self.base_url}/ekonomicke-subjekty/vyhledat"
        body: Dict[str, Any] = {"start": 0, "pocet": self.page_size, "obchodniJmeno": name}
        if locality:
            body["sidlo"] = {"textovaAdresa": locality}

        try:
            data = await self._send("POST", url, json=body)
        except UpstreamRejected as exc:
            logger.warning(f"Registry search '{name}' rejected: {exc}")
            return SourceResult.empty(
                f"The business registry rejected the search (HTTP {exc.status_code})."
            )
        except (UpstreamUnavailable, MalformedUpstreamPayload) as exc:
            logger.warning(f"Registry search '{name}' failed: {exc}")
            return SourceResult.empty("The business registry is currently unavailable.")

        records = []
        for subject in data.get('ekonomickeSubjekty') or []:
            entity = self.to_entity(subject)
            if entity is not None:
                records.append(entity)
        logger.info(f"Registry search '{name}': {len(records)} of {data.get('pocetCelkem', '?')} subjects")
        if not records:
            return SourceResult.empty(f"No companies matching '{name}' were found in the registry.")
        return SourceResult(records=records)

    def to_entity(self, subject: Any) -> Optional[Entity]:
        """Maps one registry subject to an Entity; returns None when it has no name."""
        if not isinstance(subject, dict):
            return None
        name = clean_text(subject.get('obchodniJmeno'))
        if not name:
            return None
        ico = clean_text(subject.get('ico'))

        seat = subject.get('sidlo') if isinstance(subject.get('sidlo'), dict) else {}
        location = Location(
            city=clean_text(seat.get('nazevObce')),
            street=join_street(
                seat.get('nazevUlice') or seat.get('nazevCastiObce'),
                seat.get('cisloDomovni'),
                seat.get('cisloOrientacni'),
                seat.get('cisloOrientacniPismeno'),
            ),
            postal_code=normalize_postal_code(seat.get('psc')),
        )

        codes = subject.get('czNace') or []
        if codes:
            sector = classifier.classify_codes(codes)
        else:
            sector = classifier.classify_text(name)

        return Entity(
            id=ico or name,
            name=name,
            registry_id=ico,
            location=location,
            employee_count_band=employee_band(subject),
            sector=sector,
            contact=Contact(),
        )
