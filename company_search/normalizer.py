"""
Pure helpers turning raw source fields into the canonical entity's field shapes.
"""
import re
from typing import Dict, Iterable, Optional
from urllib.parse import urlparse

SOCIAL_HOSTS = {
    'linkedin': ('linkedin.com',),
    'facebook': ('facebook.com', 'fb.com'),
    'twitter': ('twitter.com', 'x.com'),
    'instagram': ('instagram.com',),
    'youtube': ('youtube.com', 'youtu.be'),
}


def clean_text(value) -> str:
    """Collapse whitespace; None and non-scalars become an empty string."""
    if value is None or isinstance(value, (dict, list)):
        return ''
    return ' '.join(str(value).split())


def normalize_postal_code(value) -> str:
    """
    Zero-pads a postal code to five digits and groups it as "XXX YY".

    Anything that is not one to five digits after stripping separators
    yields an empty string.
    """
    digits = re.sub(r'[^0-9]', '', clean_text(value))
    if not digits or len(digits) > 5:
        return ''
    digits = digits.zfill(5)
    return f"{digits[:3]} {digits[3:]}"


def join_street(street, house_number=None, orientation_number=None, orientation_letter=None) -> str:
    """Formats "Street 846/1a" from its parts, skipping the missing ones."""
    number = clean_text(house_number)
    orientation = clean_text(orientation_number)
    if orientation:
        orientation += clean_text(orientation_letter)
        number = f"{number}/{orientation}" if number else orientation
    return ' '.join(part for part in (clean_text(street), number) if part)


def city_from_locality(locality) -> str:
    """First comma-delimited segment of a locality string."""
    return clean_text(locality).split(',')[0].strip()


def host_of(url: str) -> str:
    try:
        host = urlparse(url).netloc.lower()
    except ValueError:
        return ''
    host = host.split('@')[-1].split(':')[0]
    return host[4:] if host.startswith('www.') else host


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith('.' + domain)


def social_platform(url: str) -> Optional[str]:
    host = host_of(url)
    for platform, domains in SOCIAL_HOSTS.items():
        if any(_host_matches(host, d) for d in domains):
            return platform
    return None


def social_links_from_urls(urls: Iterable[str]) -> Dict[str, str]:
    """Maps recognised social profile URLs by platform, first URL per platform wins."""
    profiles = {}
    for url in urls or []:
        if not isinstance(url, str):
            continue
        platform = social_platform(url)
        if platform and platform not in profiles:
            profiles[platform] = url.strip()
    return profiles


def first_external_link(urls: Iterable[str], own_domain: str) -> str:
    """
    First absolute http(s) URL that points neither at `own_domain` nor at a
    social network.
    """
    own = host_of(f"https://{own_domain}") if '://' not in own_domain else host_of(own_domain)
    for url in urls or []:
        if not isinstance(url, str):
            continue
        url = url.strip()
        if not url.lower().startswith(('http://', 'https://')):
            continue
        host = host_of(url)
        if not host or (own and _host_matches(host, own)):
            continue
        if social_platform(url):
            continue
        return url
    return ''


def as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
