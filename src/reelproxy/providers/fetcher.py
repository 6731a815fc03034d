"""
HTTP fetcher for embed pages. Wraps aiohttp with browser-like headers,
a bounded timeout, and optional proxy support.

Every transport failure (timeout, DNS, connection reset, non-2xx) leaves
this module as a TransportError; aiohttp exceptions never escape.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Optional
from urllib.parse import urlsplit

import aiohttp

from .base import TransportError

log = logging.getLogger("reelproxy.providers.fetcher")

DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
ACCEPT_LANGUAGE = "en-US,en;q=0.9"


def origin_of(url: str) -> str:
    """scheme://host[:port] of a URL."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def browser_headers(referer: Optional[str] = None, origin: Optional[str] = None) -> dict[str, str]:
    """Headers for loading an embed page as a browser would."""
    headers = {
        "User-Agent": DEFAULT_UA,
        "Accept": ACCEPT_HTML,
        "Accept-Language": ACCEPT_LANGUAGE,
    }
    if referer:
        headers["Referer"] = referer
    if origin:
        headers["Origin"] = origin
    return headers


def playback_headers(referer: str, origin: Optional[str] = None) -> dict[str, str]:
    """Headers a player must send with manifest/segment requests.

    Referer is the embed page itself, Origin the embed's own domain
    (never the manifest host), otherwise hotlink protection kicks in.
    """
    return {
        "Referer": referer,
        "Origin": origin or origin_of(referer),
        "User-Agent": DEFAULT_UA,
        "Accept": "*/*",
        "Accept-Language": ACCEPT_LANGUAGE,
        "Connection": "keep-alive",
        "Sec-Fetch-Dest": "video",
        "Sec-Fetch-Mode": "cors",
        "Sec-Fetch-Site": "same-origin",
    }


class Fetcher:
    def __init__(self, *, timeout: int = 15, proxy: str | None = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=min(timeout, 5))
        self.proxy = proxy
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": DEFAULT_UA},
                connector=aiohttp.TCPConnector(ssl=False),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> Fetcher:
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def get(
        self,
        url: str,
        *,
        headers: dict | None = None,
    ) -> str:
        """GET `url` and return the body text. Raises TransportError."""
        session = await self._get_session()
        try:
            async with session.get(
                url,
                headers=headers or {},
                proxy=self.proxy,
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise TransportError(url, status=resp.status)
                return await resp.text(errors="replace")
        except asyncio.TimeoutError:
            log.warning("GET %s timed out after %ss", url, self.timeout.total)
            raise TransportError(url, reason=f"timeout after {self.timeout.total:g}s") from None
        except aiohttp.ClientError as e:
            log.warning("GET %s failed: %s", url, e)
            raise TransportError(url, reason=str(e) or type(e).__name__) from e

    async def get_page(self, url: str, *, referer: str | None = None, origin: str | None = None) -> str:
        """Fetch an embed page with browser headers pinned to the third party's domain."""
        return await self.get(url, headers=browser_headers(referer, origin))
