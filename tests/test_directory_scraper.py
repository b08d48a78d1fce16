import asyncio
import time

import httpx
import pytest

from company_search.models import Sector
from company_search.sources.directory_scraper import (
    DirectoryScraper, detail_id, extract_structured_items,
)
from tests.helpers import DIRECTORY_HOST, business, listing_page, make_client

BASE_URL = f"https://{DIRECTORY_HOST}"


def paged_handler(pages, calls=None):
    """Serves `pages[n]` for ?page=n; a non-string value is returned as the response itself."""
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        if calls is not None:
            calls.append(page)
        body = pages.get(page, listing_page())
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, text=body)
    return handler


def test_extracts_businesses_from_graph_and_item_list():
    html = listing_page(
        {"@context": "https://schema.org", "@graph": [business("Alfa Software"), {"@type": "WebPage"}]},
        {"@type": "ItemList", "itemListElement": [
            {"@type": "ListItem", "position": 1, "item": business("Beta Bank", type_="Organization")},
        ]},
        {"@type": "BreadcrumbList"},
    )
    names = [item["name"] for item in extract_structured_items(html)]
    assert names == ["Alfa Software", "Beta Bank"]


def test_malformed_block_is_skipped_alone():
    html = listing_page('{"@type": "LocalBusiness", "name": ', business("Gama Klinika"))
    items = extract_structured_items(html)
    assert [item["name"] for item in items] == ["Gama Klinika"]


def test_detail_id_from_url():
    assert detail_id(None, "https://www.firmy.cz/detail/12960383-alfa-praha.html") == "12960383"
    assert detail_id("https://acme.cz/") == ""


@pytest.mark.asyncio
async def test_pages_one_and_two_are_merged_in_first_seen_order():
    pages = {
        1: listing_page(business("Alfa Software", 1), business("Beta Bank", 2)),
        2: listing_page(business("beta bank", 3), business("Gama Klinika", 4)),
        3: listing_page(),
    }
    async with make_client(paged_handler(pages)) as client:
        items, pages_ok, pages_total = await DirectoryScraper(client=client, base_url=BASE_URL).collect("Praha")

    assert [item["name"] for item in items] == ["Alfa Software", "Beta Bank", "Gama Klinika"]
    assert pages_ok == pages_total == 3


@pytest.mark.asyncio
async def test_third_page_fetched_only_while_short_of_target():
    calls = []
    pages = {
        1: listing_page(business("Alfa", 1), business("Beta", 2)),
        2: listing_page(business("Gama", 3)),
        3: listing_page(business("Delta", 4)),
    }
    async with make_client(paged_handler(pages, calls)) as client:
        scraper = DirectoryScraper(client=client, base_url=BASE_URL, target_count=3)
        items, _, _ = await scraper.collect("Brno")
    assert len(items) == 3
    assert 3 not in calls

    calls.clear()
    async with make_client(paged_handler(pages, calls)) as client:
        scraper = DirectoryScraper(client=client, base_url=BASE_URL, target_count=10)
        items, _, _ = await scraper.collect("Brno")
    assert [item["name"] for item in items] == ["Alfa", "Beta", "Gama", "Delta"]
    assert calls.count(3) == 1


@pytest.mark.asyncio
async def test_third_page_skipped_when_second_page_is_empty():
    calls = []
    pages = {1: listing_page(business("Alfa", 1)), 2: listing_page()}
    async with make_client(paged_handler(pages, calls)) as client:
        items, pages_ok, pages_total = await DirectoryScraper(client=client, base_url=BASE_URL).collect("Brno")
    assert len(items) == 1
    assert 3 not in calls
    assert (pages_ok, pages_total) == (2, 2)


@pytest.mark.asyncio
async def test_failed_page_does_not_discard_the_others():
    pages = {
        1: httpx.Response(503, text="busy"),
        2: listing_page(business("Beta Bank", 2)),
        3: listing_page(business("Gama Klinika", 3)),
    }
    async with make_client(paged_handler(pages)) as client:
        result = await DirectoryScraper(client=client, base_url=BASE_URL).search_location("Praha")

    assert [e.name for e in result.records] == ["Beta Bank", "Gama Klinika"]
    assert result.advisory is None


@pytest.mark.asyncio
async def test_slow_page_times_out_independently():
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["page"] == "1":
            await asyncio.sleep(5)
        if request.url.params["page"] == "2":
            return httpx.Response(200, text=listing_page(business("Beta Bank", 2)))
        return httpx.Response(200, text=listing_page())

    async with make_client(handler) as client:
        scraper = DirectoryScraper(client=client, base_url=BASE_URL, timeout=0.1)
        started = time.monotonic()
        result = await scraper.search_location("Praha")
        elapsed = time.monotonic() - started

    assert [e.name for e in result.records] == ["Beta Bank"]
    assert elapsed < 1.0


@pytest.mark.asyncio
async def test_all_pages_failing_reports_unavailable():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    async with make_client(handler) as client:
        result = await DirectoryScraper(client=client, base_url=BASE_URL).search_location("Praha")
    assert result.records == []
    assert "unavailable" in result.advisory


@pytest.mark.asyncio
async def test_empty_listing_reports_no_companies():
    async with make_client(paged_handler({})) as client:
        result = await DirectoryScraper(client=client, base_url=BASE_URL).search_location("Kocourkov")
    assert result.records == []
    assert "Kocourkov" in result.advisory


@pytest.mark.asyncio
async def test_search_sends_locality_and_page_params():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text=listing_page())

    async with make_client(handler) as client:
        await DirectoryScraper(client=client, base_url=BASE_URL).search_location("Praha")

    first = requests[0]
    assert first.url.host == DIRECTORY_HOST
    assert first.url.params["where"] == "Praha"
    assert first.url.params["q"] == "firmy"
    assert first.headers["User-Agent"]
    assert first.headers["Accept-Language"].startswith("cs-CZ")


def test_to_entity_maps_structured_item():
    item = business(
        "Alfa Software",
        detail_id=12960383,
        postal="1100",
        description="Vývoj aplikací na míru",
        same_as=["https://www.facebook.com/alfa", "https://alfa.cz/"],
        tax_id="CZ12345678",
    )
    item["email"] = "mailto:info@alfa.cz"
    item["numberOfEmployees"] = {"@type": "QuantitativeValue", "value": 25}

    entity = DirectoryScraper(base_url=BASE_URL).to_entity(item)

    assert entity.id == "12960383"
    assert entity.registry_id == "12345678"
    assert entity.sector == Sector.IT
    assert entity.location.city == "Praha 1"
    assert entity.location.postal_code == "011 00"
    assert entity.employee_count_band == "11-50"
    assert entity.contact.website == "https://alfa.cz/"
    assert entity.contact.email == "info@alfa.cz"
    assert entity.social_links == {"facebook": "https://www.facebook.com/alfa"}


def test_to_entity_without_name_is_dropped():
    assert DirectoryScraper(base_url=BASE_URL).to_entity({"@type": "LocalBusiness"}) is None


@pytest.mark.asyncio
async def test_first_two_pages_are_fetched_concurrently():
    delay = 0.3
    in_flight = []
    overlap = []

    async def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        in_flight.append(page)
        overlap.append(len(in_flight))
        await asyncio.sleep(delay)
        in_flight.remove(page)
        return httpx.Response(200, text=listing_page(business(f"Firma {page}", page)))

    async with make_client(handler) as client:
        scraper = DirectoryScraper(client=client, base_url=BASE_URL, target_count=2)
        started = time.monotonic()
        items, pages_ok, pages_total = await scraper.collect("Praha")
        elapsed = time.monotonic() - started

    assert [item["name"] for item in items] == ["Firma 1", "Firma 2"]
    assert (pages_ok, pages_total) == (2, 2)
    assert max(overlap) == 2
    assert elapsed < delay * 2
