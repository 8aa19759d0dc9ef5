import ipaddress
import logging

import httpx

logger = logging.getLogger(__name__)

PROVIDER_URLS = {
    "ipapi": "https://ipapi.co/{ip}/json/",
    "ip-api": "http://ip-api.com/json/{ip}",
}

def _is_public(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return not (addr.is_private or addr.is_loopback or addr.is_reserved or addr.is_link_local)

async def lookup_location(ip: str | None, provider: str, timeout: float = 3.0) -> str | None:
    """Best-effort country lookup for an exam session; never fails the request."""
    url = PROVIDER_URLS.get(provider)
    if not ip or url is None or not _is_public(ip):
        return None

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            r = await client.get(url.format(ip=ip))
            r.raise_for_status()
            data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Location lookup via %s failed for %s: %s", provider, ip, e)
        return None

    return data.get("country_name") or data.get("country") or data.get("city")
