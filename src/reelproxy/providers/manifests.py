"""
Fallback scanner: find literal HLS manifest URLs in an embed page.

Only used when the player globals could not be parsed. Every hit is
equally low-confidence; hits are de-duplicated in first-seen order and
capped so a page full of beacons cannot flood the response.
"""
from __future__ import annotations
import logging
import re

from .base import Stream
from .fetcher import origin_of, playback_headers
from . import unpacker

log = logging.getLogger("reelproxy.providers.manifests")

# Plain and JSON-escaped (https:\/\/host\/...) forms
M3U8_RE = re.compile(r"""https?:(?://|\\/\\/)[^'"\s<>`]+?\.m3u8[^'"\s<>`]*""")

DEFAULT_LIMIT = 10


def _clean(url: str) -> str:
    url = url.replace("\\/", "/")
    # Trailing JS punctuation picked up from e.g. `load(https://...m3u8);`
    url = url.rstrip("\\,;")
    while url.endswith(")") and url.count(")") > url.count("("):
        url = url[:-1].rstrip("\\,;")
    return url


def find_manifest_urls(html: str, *, limit: int = DEFAULT_LIMIT) -> list[str]:
    """Distinct manifest URLs in page order, raw HTML first, then unpacked JS."""
    texts = [html]
    if unpacker.detect(html):
        texts.extend(unpacker.unpack_all(html))

    seen: dict[str, None] = {}
    for text in texts:
        for m in M3U8_RE.finditer(text):
            seen.setdefault(_clean(m.group(0)), None)
    urls = list(seen)
    if limit > 0 and len(urls) > limit:
        log.info("fallback found %d manifest URLs, keeping first %d", len(urls), limit)
        urls = urls[:limit]
    return urls


def scan_for_manifests(
    html: str,
    embed_url: str,
    *,
    label: str = "Stream",
    limit: int = DEFAULT_LIMIT,
) -> list[Stream]:
    """Wrap each manifest URL found in `html` as an HLS Stream.

    Headers are pinned to the embed page's domain, not the manifest host.
    """
    headers = playback_headers(embed_url, origin_of(embed_url))
    return [
        Stream(
            file_url=url,
            title=f"{label} {n}",
            quality="HD",
            kind="hls",
            headers=dict(headers),
        )
        for n, url in enumerate(find_manifest_urls(html, limit=limit), start=1)
    ]
