"""
Reverse-geocoding proxy. The upstream requires a descriptive User-Agent,
which browsers cannot set, so the lookup runs server-side.
"""
import asyncio
import math
from typing import Any, Optional

import httpx

from .errors import InvalidRequest, MalformedUpstreamPayload, UpstreamRejected, UpstreamUnavailable
from .utils import with_timeout

NOMINATIM_URL = "https://nominatim.openstreetmap.org/reverse"
USER_AGENT = "company-search-app/1.0"
REQUEST_TIMEOUT = 5
LANGUAGE = "cs"


def parse_coordinate(value: Optional[str]) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequest("Invalid coordinates") from exc
    if not math.isfinite(number):
        raise InvalidRequest("Invalid coordinates")
    return number


async def reverse_geocode(lat: Optional[str], lon: Optional[str], client: Optional[httpx.AsyncClient] = None,
                          base_url: str = NOMINATIM_URL, timeout: float = REQUEST_TIMEOUT,
                          user_agent: str = USER_AGENT, language: str = LANGUAGE) -> Any:
    """
    Returns the upstream JSON payload for the coordinates.

    Raises InvalidRequest before any network call when either value is missing
    or not numeric.
    """
    if not lat or not lon:
        raise InvalidRequest("lat and lon are required")
    # Only validated numbers reach the upstream URL.
    params = {
        "lat": repr(parse_coordinate(lat)),
        "lon": repr(parse_coordinate(lon)),
        "format": "json",
        "accept-language": language,
    }
    headers = {"User-Agent": user_agent, "Accept": "application/json"}

    async def call():
        if client is not None:
            return await client.get(base_url, params=params, headers=headers, timeout=timeout)
        async with httpx.AsyncClient() as own_client:
            return await own_client.get(base_url, params=params, headers=headers, timeout=timeout)

    try:
        resp = await with_timeout(timeout)(call)()
    except asyncio.TimeoutError as exc:
        raise UpstreamUnavailable("Geocoding timed out") from exc
    except httpx.HTTPError as exc:
        raise UpstreamUnavailable(f"Geocoding connection error: {exc}") from exc

    if not resp.is_success:
        raise UpstreamRejected("Nominatim returned an error", resp.status_code)
    try:
        return resp.json()
    except ValueError as exc:
        raise MalformedUpstreamPayload("Geocoding response was not valid JSON") from exc
