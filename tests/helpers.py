import json

import httpx


REGISTRY_HOST = "registry.test"
DIRECTORY_HOST = "directory.test"
ENRICHMENT_HOST = "contacts.test"
GEOCODE_HOST = "geo.test"

TEST_SETTINGS = {
    "source_strategy": "auto",
    "registry": {"base_url": f"https://{REGISTRY_HOST}/rest", "timeout": 1},
    "directory": {"base_url": f"https://{DIRECTORY_HOST}", "timeout": 1, "target_count": 25},
    "enrichment": {"enabled": True, "base_url": f"https://{ENRICHMENT_HOST}", "timeout": 1},
    "geocode": {"base_url": f"https://{GEOCODE_HOST}/reverse", "timeout": 1},
}


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def business(name, detail_id=None, locality="Praha 1, Nové Město", postal="11000",
             description="", same_as=None, tax_id=None, type_="LocalBusiness"):
    item = {
        "@context": "https://schema.org",
        "@type": type_,
        "name": name,
        "description": description,
        "address": {
            "@type": "PostalAddress",
            "streetAddress": "Václavské náměstí 1",
            "addressLocality": locality,
            "postalCode": postal,
        },
    }
    if detail_id:
        item["url"] = f"https://{DIRECTORY_HOST}/detail/{detail_id}-{name.lower().replace(' ', '-')}.html"
    if same_as:
        item["sameAs"] = same_as
    if tax_id:
        item["taxID"] = tax_id
    return item


def listing_page(*blocks) -> str:
    """HTML page with one JSON-LD script per block; strings are embedded verbatim."""
    scripts = []
    for block in blocks:
        body = block if isinstance(block, str) else json.dumps(block, ensure_ascii=False)
        scripts.append(f'<script type="application/ld+json">{body}</script>')
    return f"<html><head><title>Firmy</title>{''.join(scripts)}</head><body><h1>Výsledky</h1></body></html>"


def registry_subject(ico, name, nace=None, city="Praha", psc=11000, **extra):
    subject = {
        "ico": ico,
        "obchodniJmeno": name,
        "sidlo": {
            "nazevObce": city,
            "nazevUlice": "Václavské náměstí",
            "cisloDomovni": 846,
            "cisloOrientacni": 1,
            "psc": psc,
        },
    }
    if nace is not None:
        subject["czNace"] = nace
    subject.update(extra)
    return subject


