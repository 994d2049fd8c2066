import asyncio
import ipaddress
import socket
from enum import Enum, auto
from typing import List
from urllib.parse import urlparse

from fastapi import HTTPException

from ytmux.config.settings import config
from ytmux.i18n import i18n

ALLOWED_SCHEMES = ("http", "https")


class UrlValidationResult(Enum):
    """URL admission verdict"""
    OK = auto()
    BLOCKED = auto()
    INVALID = auto()


def _is_blocked_ip(ip_str: str) -> bool:
    ip = ipaddress.ip_address(ip_str.split("%", 1)[0])

    if ip.is_loopback:
        return not config.security.allow_localhost
    if ip.is_private:
        return not config.security.allow_private_ips
    return ip.is_link_local or ip.is_multicast or ip.is_unspecified or ip.is_reserved


async def _resolve(hostname: str) -> List[str]:
    addr_info = await asyncio.to_thread(socket.getaddrinfo, hostname, None)
    return [info[4][0] for info in addr_info]


async def validate_media_url(url: str) -> UrlValidationResult:
    """
    Check a media URL before any external process sees it.
    Syntax is always checked; address checks only when SSRF protection is on.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ALLOWED_SCHEMES or not parsed.hostname:
        return UrlValidationResult.INVALID

    if not config.security.enable_ssrf_protection:
        return UrlValidationResult.OK

    try:
        ips = await _resolve(parsed.hostname)
    except (socket.gaierror, UnicodeError):
        # Unresolvable here; the extractor reports its own failure
        return UrlValidationResult.OK

    try:
        if any(_is_blocked_ip(ip) for ip in ips):
            return UrlValidationResult.BLOCKED
    except ValueError:
        return UrlValidationResult.INVALID

    return UrlValidationResult.OK


async def admit_url(url: str, locale: str) -> None:
    """Raise the HTTP error for a URL that must not reach the extractor"""
    result = await validate_media_url(url)
    if result == UrlValidationResult.BLOCKED:
        raise HTTPException(status_code=403, detail=i18n.get("error.private_ip", locale=locale))
    if result == UrlValidationResult.INVALID:
        raise HTTPException(
            status_code=400,
            detail=i18n.get("error.invalid_url", locale=locale, reason="unsupported or malformed URL")
        )
