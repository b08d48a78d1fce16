"""
Contact enrichment from the registry-enrichment site.

The page for one company identifier is scraped with label-anchored regexes:
a label such as "Telefon" followed, within a bounded window, by the value.
"""
import asyncio
import re
from abc import ABC, abstractmethod
from typing import Optional

import httpx
import phonenumbers
from email_validator import EmailNotValidError, validate_email

from .errors import UpstreamRejected
from .models import Contact
from .normalizer import clean_text
from .utils import logger, with_timeout

ENRICHMENT_BASE_URL = "https://rejstrik-firem.kurzy.cz"
REQUEST_TIMEOUT = 4
LABEL_WINDOW = 300
PHONE_REGION = "CZ"


def build_patterns(window: int = LABEL_WINDOW) -> dict:
    gap = r'[\s\S]{0,%d}?' % int(window)
    return {
        'website': re.compile(
            r'\b(?:Webov[ée] str[áa]nky|Web|WWW)\b\s*:' + gap + r'href=["\'](https?://[^"\']+)["\']',
            re.IGNORECASE
        ),
        'email': re.compile(
            r'\bE-?mail\b\s*:?' + gap + r'(?:mailto:)?([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})',
            re.IGNORECASE
        ),
        'phone': re.compile(
            r'\b(?:Telefon|Tel\.|Mobil)\s*:?' + gap + r'(\+?\d[\d\s()/\-]{6,}\d)',
            re.IGNORECASE
        ),
    }


def format_phone(raw: str, region: str = PHONE_REGION) -> str:
    """International format when the number parses, else the collapsed raw text."""
    text = clean_text(raw)
    if not text:
        return ''
    try:
        parsed = phonenumbers.parse(text, region)
        if phonenumbers.is_valid_number(parsed):
            return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.INTERNATIONAL)
    except phonenumbers.NumberParseException:
        pass
    return text


def normalize_email(raw: str) -> str:
    text = clean_text(raw)
    if not text:
        return ''
    try:
        return validate_email(text, check_deliverability=False).normalized
    except EmailNotValidError:
        return ''


class ContactEnricher(ABC):
    """Fetches contact details for one registry identifier. Never raises."""

    @abstractmethod
    async def fetch_contact(self, registry_id: str) -> Contact:
        raise NotImplementedError


class ContactScraper(ContactEnricher):

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None,
                 base_url: str = ENRICHMENT_BASE_URL, window: int = LABEL_WINDOW):
        self.client = client
        self.timeout = float(timeout or REQUEST_TIMEOUT)
        self.base_url = base_url.rstrip('/')
        self.patterns = build_patterns(window)

    def page_url(self, registry_id: str) -> str:
        return f"{self.base_url}/{registry_id}/"

    def extract(self, html: str) -> Contact:
        """Each field is independent; a missing label just leaves it empty."""
        found = {}
        for field_name, pattern in self.patterns.items():
            match = pattern.search(html or '')
            found[field_name] = match.group(1).strip() if match else ''
        return Contact(
            website=found['website'],
            email=normalize_email(found['email']),
            phone=format_phone(found['phone']) if found['phone'] else '',
        )

    async def _download(self, registry_id: str) -> str:
        headers = {"Accept": "text/html", "Accept-Language": "cs-CZ,cs;q=0.9"}
        if self.client is not None:
            resp = await self.client.get(self.page_url(registry_id), headers=headers, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                resp = await client.get(self.page_url(registry_id), headers=headers, timeout=self.timeout)
        if resp.status_code != 200:
            raise UpstreamRejected(f"status {resp.status_code}", resp.status_code)
        return resp.text

    async def fetch_contact(self, registry_id: str) -> Contact:
        if not registry_id:
            return Contact()
        try:
            html = await with_timeout(self.timeout)(self._download)(registry_id)
            return self.extract(html)
        except asyncio.TimeoutError:
            logger.debug(f"Contact page for {registry_id} timed out")
        except (httpx.HTTPError, UpstreamRejected) as exc:
            logger.debug(f"Contact page for {registry_id} unavailable: {exc}")
        except (ValueError, UnicodeDecodeError) as exc:
            logger.debug(f"Contact page for {registry_id} unreadable: {exc}")
        return Contact()
