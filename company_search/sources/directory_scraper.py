"""
HTML business directory scraper.

Listing pages embed their results as JSON-LD blocks; we collect LocalBusiness
and Organization items, page by page, until enough unique companies are found.
"""
import asyncio
import json
import re
from typing import Any, Dict, List, Optional

import httpx
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from fake_useragent import UserAgent
import warnings

from ..errors import UpstreamRejected, UpstreamUnavailable
from ..models import Contact, Entity, Location
from ..normalizer import (
    as_list, city_from_locality, clean_text, first_external_link, host_of,
    normalize_postal_code, social_links_from_urls,
)
from ..sector_classifier import classifier
from ..utils import logger, with_timeout
from .base import LOCATION, SourceAdapter, SourceResult

# Suppress BS4 warning for XML parsed as HTML
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

DIRECTORY_BASE_URL = "https://www.firmy.cz"
SEARCH_PHRASE = "firmy"
REQUEST_TIMEOUT = 12.5
TARGET_COUNT = 25

ACCEPTED_TYPES = {"LocalBusiness", "Organization"}
DETAIL_ID_PATTERN = re.compile(r'/([0-9]+)-[\w\-]+')


def _types_of(item: Dict[str, Any]) -> set:
    return {t for t in as_list(item.get('@type')) if isinstance(t, str)}


def flatten_items(data: Any) -> List[Dict[str, Any]]:
    """Unwraps lists, @graph containers and ItemList elements into plain items."""
    items = []
    for node in as_list(data):
        if not isinstance(node, dict):
            continue
        if '@graph' in node:
            items.extend(flatten_items(node['@graph']))
            continue
        if 'ItemList' in _types_of(node):
            for element in as_list(node.get('itemListElement')):
                if isinstance(element, dict) and isinstance(element.get('item'), dict):
                    items.extend(flatten_items(element['item']))
                else:
                    items.extend(flatten_items(element))
            continue
        items.append(node)
    return items


def extract_structured_items(html: str) -> List[Dict[str, Any]]:
    """
    Parses every JSON-LD block of a page and keeps business items.
    A malformed block is skipped on its own; the rest of the page still counts.
    """
    soup = BeautifulSoup(html, 'lxml')
    items = []
    for script in soup.find_all('script', attrs={'type': 'application/ld+json'}):
        raw = script.string or script.get_text() or ''
        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug(f"Skipping malformed JSON-LD block ({len(raw)} chars)")
            continue
        for item in flatten_items(data):
            if _types_of(item) & ACCEPTED_TYPES:
                items.append(item)
    return items


def detail_id(*urls) -> str:
    """Numeric segment preceding the slug of a directory detail URL."""
    for url in urls:
        if isinstance(url, str):
            match = DETAIL_ID_PATTERN.search(url)
            if match:
                return match.group(1)
    return ''


def _first_text(value) -> str:
    for candidate in as_list(value):
        text = clean_text(candidate)
        if text:
            return text
    return ''


def _registry_id(item: Dict[str, Any]) -> str:
    for key in ('identifier', 'taxID', 'vatID'):
        for value in as_list(item.get(key)):
            if isinstance(value, dict):
                value = value.get('value')
            digits = re.sub(r'[^0-9]', '', clean_text(value))
            if len(digits) == 8:
                return digits
    return ''


def _employee_band(item: Dict[str, Any]) -> str:
    value = item.get('numberOfEmployees')
    if isinstance(value, dict):
        value = value.get('value') or value.get('maxValue')
    try:
        count = int(str(value).strip())
    except (TypeError, ValueError):
        return ''
    if count <= 0:
        return ''
    if count <= 10:
        return '1-10'
    if count <= 50:
        return '11-50'
    return '50+'


class DirectoryScraper(SourceAdapter):
    """Collects companies for a locality from the directory's listing pages."""

    name = "directory"
    capabilities = frozenset({LOCATION})
    default_timeout = REQUEST_TIMEOUT

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None,
                 base_url: str = DIRECTORY_BASE_URL, target_count: int = TARGET_COUNT,
                 max_pages: int = 3, search_phrase: str = SEARCH_PHRASE):
        super().__init__(client=client, timeout=timeout)
        self.base_url = base_url.rstrip('/')
        self.domain = host_of(self.base_url)
        self.target_count = int(target_count)
        self.max_pages = max(int(max_pages), 2)
        self.search_phrase = search_phrase
        self.ua = UserAgent()

    def get_headers(self) -> dict:
        return {
            "User-Agent": self.ua.random,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "cs-CZ,cs;q=0.9,en;q=0.5",
        }

    def search_params(self, locality: str, page: int) -> dict:
        return {"q": self.search_phrase, "where": locality, "page": page}

    async def _download(self, locality: str, page: int) -> str:
        async def call():
            async with self.session() as client:
                return await client.get(
                    f"{self.base_url}/",
                    params=self.search_params(locality, page),
                    headers=self.get_headers(),
                    timeout=self.timeout,
                )

        try:
            resp = await with_timeout(self.timeout)(call)()
        except asyncio.TimeoutError as exc:
            raise UpstreamUnavailable(f"page {page} timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"page {page} connection error: {exc}") from exc
        if resp.status_code >= 400:
            raise UpstreamRejected(f"page {page} returned status {resp.status_code}", resp.status_code)
        return resp.text

    async def fetch_page(self, locality: str, page: int) -> Optional[List[Dict[str, Any]]]:
        """
        Returns the business items of one listing page, or None when the page
        could not be fetched. Failures stay local to the page.
        """
        try:
            html = await self._download(locality, page)
            return extract_structured_items(html)
        except (UpstreamUnavailable, UpstreamRejected) as exc:
            logger.warning(f"Directory {locality}: {exc}")
            return None

    @staticmethod
    def _dedup_key(item: Dict[str, Any]) -> str:
        name = _first_text(item.get('name')).lower()
        return name or _first_text(item.get('url') or item.get('@id'))

    def merge(self, pages: List[Optional[List[Dict[str, Any]]]], seen: set, merged: list) -> None:
        """Appends unseen items in page order, updating `seen` as it goes."""
        for items in pages:
            for item in items or []:
                key = self._dedup_key(item)
                if not key or key in seen:
                    continue
                seen.add(key)
                merged.append(item)

    async def collect(self, locality: str) -> tuple:
        """
        Fetches pages 1 and 2 concurrently, then further pages one at a time
        while still short of the target. Returns (items, pages_ok, pages_total).
        """
        seen: set = set()
        merged: list = []
        first_pages = await asyncio.gather(
            self.fetch_page(locality, 1),
            self.fetch_page(locality, 2),
        )
        self.merge(first_pages, seen, merged)
        outcomes = list(first_pages)

        page = 3
        last = first_pages[-1]
        while len(merged) < self.target_count and page <= self.max_pages:
            # A page that loaded but held nothing means the listing is exhausted.
            if last is not None and not last:
                break
            last = await self.fetch_page(locality, page)
            outcomes.append(last)
            self.merge([last], seen, merged)
            page += 1

        pages_ok = sum(1 for o in outcomes if o is not None)
        return merged, pages_ok, len(outcomes)

    async def search_location(self, locality: str) -> SourceResult:
        items, pages_ok, pages_total = await self.collect(locality)
        records = [e for e in (self.to_entity(item) for item in items) if e is not None]
        logger.info(f"Directory {locality}: {len(records)} companies from {pages_ok}/{pages_total} pages")
        if not records:
            if pages_ok == 0:
                return SourceResult.empty("The business directory is currently unavailable.")
            return SourceResult.empty(f"No companies were found in {locality}.")
        return SourceResult(records=records)

    def to_entity(self, item: Dict[str, Any]) -> Optional[Entity]:
        name = _first_text(item.get('name'))
        if not name:
            return None
        page_url = _first_text(item.get('url'))
        node_id = _first_text(item.get('@id'))
        same_as = [u for u in as_list(item.get('sameAs')) if isinstance(u, str)]

        address = next((a for a in as_list(item.get('address')) if isinstance(a, dict)), {})
        location = Location(
            city=city_from_locality(address.get('addressLocality')),
            street=clean_text(address.get('streetAddress')),
            postal_code=normalize_postal_code(address.get('postalCode')),
        )

        email = _first_text(item.get('email'))
        if email.lower().startswith('mailto:'):
            email = email[7:]
        contact = Contact(
            email=email,
            phone=_first_text(item.get('telephone')),
            website=first_external_link([page_url, node_id] + same_as, self.domain),
        )

        description = _first_text(item.get('description'))
        source_id = detail_id(node_id, page_url)
        return Entity(
            id=source_id or name,
            name=name,
            registry_id=_registry_id(item),
            location=location,
            employee_count_band=_employee_band(item),
            sector=classifier.classify_text(name, description),
            contact=contact,
            social_links=social_links_from_urls(same_as),
        )
