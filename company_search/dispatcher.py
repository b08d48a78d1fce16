"""
Query dispatcher: validates a query, routes it to a source adapter, filters,
enriches contacts, deduplicates and sorts the resulting entities.
"""
import asyncio
from typing import Iterable, List, Optional

import httpx
import icu

from .contact_scraper import ContactEnricher, ContactScraper
from .models import Contact, Entity, Query, SearchResult, SECTOR_PRIORITY
from .sources import (
    FULLTEXT, IDENTIFIER, LOCATION, DirectoryScraper, MockSource, RegistryClient,
    SourceAdapter, SourceResult, is_identifier,
)
from .utils import load_settings, logger, section

EMPTY_QUERY_ADVICE = "Enter a company name, an identification number or a location to search."
NO_MATCH_ADVICE = "No companies match the selected filters."

# strategy -> (adapter names in preference order, contact enrichment enabled)
STRATEGIES = {
    "auto": (("registry", "directory"), True),
    "registry": (("registry",), False),
    "registry+enrichment": (("registry",), True),
    "directory": (("directory",), False),
    "mock": (("mock",), False),
}

CAPABILITY_LABELS = {
    IDENTIFIER: "identification number",
    FULLTEXT: "company name",
    LOCATION: "location-only",
}


# Czech collation: "ch" follows "h", and háček letters follow their base letter.
CZECH_COLLATOR = icu.Collator.createInstance(icu.Locale("cs_CZ"))


def name_collation_key(name: str) -> bytes:
    return CZECH_COLLATOR.getSortKey(name)


def sort_entities(entities: Iterable[Entity]) -> List[Entity]:
    # sorted() is stable, so equal sector+name keep their arrival order.
    return sorted(
        entities,
        key=lambda e: (SECTOR_PRIORITY.index(e.sector), name_collation_key(e.name)),
    )


def dedupe(entities: Iterable[Entity]) -> List[Entity]:
    seen = set()
    unique = []
    for entity in entities:
        if entity.id in seen:
            continue
        seen.add(entity.id)
        unique.append(entity)
    return unique


def apply_filters(entities: Iterable[Entity], query: Query) -> List[Entity]:
    """Sector equality, city substring and employee band, regardless of source."""
    result = list(entities)
    if query.sector is not None:
        result = [e for e in result if e.sector == query.sector]
    if query.location:
        needle = query.location.casefold()
        result = [e for e in result if needle in e.location.city.casefold()]
    band = query.band_filter
    if band:
        result = [e for e in result if e.employee_count_band == band]
    return result


def merge_contact(entity: Entity, found: Contact) -> Entity:
    """Non-empty enriched fields win; everything else keeps the base value."""
    base = entity.contact
    contact = Contact(
        email=found.email or base.email,
        phone=found.phone or base.phone,
        website=found.website or base.website,
    )
    if contact == base:
        return entity
    return entity.model_copy(update={"contact": contact})


class Dispatcher:

    def __init__(self, adapters: List[SourceAdapter], enricher: Optional[ContactEnricher] = None):
        self.adapters = list(adapters)
        self.enricher = enricher

    @classmethod
    def from_settings(cls, settings: Optional[dict] = None, client: Optional[httpx.AsyncClient] = None,
                      strategy: Optional[str] = None) -> "Dispatcher":
        settings = load_settings() if settings is None else settings
        strategy = strategy or settings.get("source_strategy", "auto")
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown source strategy '{strategy}'. Choose from: {', '.join(STRATEGIES)}")
        names, enrich = STRATEGIES[strategy]

        registry_cfg = section(settings, "registry")
        directory_cfg = section(settings, "directory")
        enrichment_cfg = section(settings, "enrichment")

        factories = {
            "registry": lambda: RegistryClient(
                client=client,
                timeout=registry_cfg.get("timeout"),
                **{k: registry_cfg[k] for k in ("base_url", "page_size") if k in registry_cfg},
            ),
            "directory": lambda: DirectoryScraper(
                client=client,
                timeout=directory_cfg.get("timeout"),
                **{k: directory_cfg[k] for k in ("base_url", "target_count", "max_pages", "search_phrase")
                   if k in directory_cfg},
            ),
            "mock": lambda: MockSource(),
        }
        adapters = [factories[name]() for name in names]

        enricher = None
        if enrich and enrichment_cfg.get("enabled", True):
            enricher = ContactScraper(
                client=client,
                timeout=enrichment_cfg.get("timeout"),
                **{k: enrichment_cfg[k] for k in ("base_url", "window") if k in enrichment_cfg},
            )
        logger.debug(f"Dispatcher strategy={strategy} adapters={names} enrichment={enricher is not None}")
        return cls(adapters, enricher)

    def adapter_for(self, capability: str) -> Optional[SourceAdapter]:
        return next((a for a in self.adapters if a.supports(capability)), None)

    @staticmethod
    def required_capability(query: Query) -> Optional[str]:
        if is_identifier(query.keyword):
            return IDENTIFIER
        if query.keyword:
            return FULLTEXT
        if query.location:
            return LOCATION
        return None

    async def collect(self, adapter: SourceAdapter, capability: str, query: Query) -> SourceResult:
        if capability == IDENTIFIER:
            return await adapter.lookup(query.keyword)
        if capability == FULLTEXT:
            return await adapter.search_text(query.keyword, query.location)
        return await adapter.search_location(query.location)

    async def enrich(self, entities: List[Entity]) -> List[Entity]:
        """
        One enrichment call per entity, all concurrent. A failed call leaves
        that entity as it was; siblings are unaffected.
        """
        if self.enricher is None or not entities:
            return entities
        outcomes = await asyncio.gather(
            *(self.enricher.fetch_contact(e.registry_id) for e in entities),
            return_exceptions=True,
        )
        enriched = []
        for entity, outcome in zip(entities, outcomes):
            if isinstance(outcome, BaseException):
                logger.debug(f"Enrichment for {entity.id} failed: {outcome!r}")
                enriched.append(entity)
            else:
                enriched.append(merge_contact(entity, outcome))
        return enriched

    async def search(self, query: Query) -> SearchResult:
        capability = self.required_capability(query)
        if capability is None:
            return SearchResult(error=EMPTY_QUERY_ADVICE)

        adapter = self.adapter_for(capability)
        if adapter is None:
            label = CAPABILITY_LABELS[capability]
            logger.info(f"No configured source supports {capability} queries")
            return SearchResult(error=f"No configured source supports {label} searches.")

        logger.info(f"Routing {capability} query to {adapter.name}")
        raw = await self.collect(adapter, capability, query)

        entities = apply_filters(raw.records, query)
        entities = await self.enrich(entities)
        entities = sort_entities(dedupe(entities))

        advisory = None
        if not entities:
            advisory = raw.advisory or NO_MATCH_ADVICE
        logger.info(f"{adapter.name}: {len(raw.records)} raw, {len(entities)} returned")
        return SearchResult(data=entities, error=advisory)
