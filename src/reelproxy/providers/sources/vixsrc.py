"""
VixSrc: signed HLS master playlists scraped from vixsrc.to embed pages.

Flow:
  1. vixsrc.to/movie/{id}/  or  vixsrc.to/tv/{id}/{season}/{episode}/
  2. Parse window.video / window.masterPlaylist / window.canPlayFHD
  3. Rebuild the playlist URL with token, expires, asn, lang (+ h=1)

If the globals are missing, fall back to any literal .m3u8 URL in the page.
"""
from __future__ import annotations
import logging
from typing import Optional
from urllib.parse import quote

from ..base import ExtractionResult, StreamRequest, Stream, TransportError, ValidationError
from ..fetcher import Fetcher, playback_headers
from ..runner import register_source
from .. import embedvars, manifests, playlist
from ...core.config import get_settings

log = logging.getLogger("reelproxy.providers.vixsrc")


def _short(token: str) -> str:
    return token[:20] + "..." if len(token) > 20 else token


@register_source
class VixSrcSource:
    id = "vixsrc"
    name = "VixSrc"
    media_types = ["movie", "tv"]

    def __init__(self, base: Optional[str] = None, *, fallback_limit: Optional[int] = None):
        settings = get_settings()
        self.base = (base or settings.vixsrc_base).rstrip("/")
        self.fallback_limit = settings.fallback_limit if fallback_limit is None else fallback_limit

    def embed_url(self, request: StreamRequest) -> str:
        request.validate()
        content_id = quote(request.content_id, safe="")
        if request.media_type == "movie":
            return f"{self.base}/movie/{content_id}/"
        return f"{self.base}/tv/{content_id}/{request.season}/{request.episode}/"

    async def extract(self, request: StreamRequest, fetcher: Fetcher) -> ExtractionResult:
        try:
            embed_url = self.embed_url(request)
        except ValidationError as e:
            return ExtractionResult.failed(self.id, f"Invalid parameters: {e}")

        # ── Step 1: load the embed page ──
        log.info("[vixsrc] loading embed page %s", embed_url)
        try:
            html = await fetcher.get_page(embed_url, referer=f"{self.base}/", origin=self.base)
        except TransportError as e:
            log.warning("[vixsrc] failed to load page: %s", e.reason)
            return ExtractionResult.failed(self.id, f"Failed to load page: {e.reason}")
        log.info("[vixsrc] page loaded (%d bytes), parsing...", len(html))

        # ── Step 2: player globals ──
        descriptor = embedvars.parse(html)
        if descriptor is None:
            log.warning("[vixsrc] player variables not found, scanning for manifest URLs")
            streams = manifests.scan_for_manifests(
                html, embed_url, label=f"{self.name} Stream", limit=self.fallback_limit)
            log.info("[vixsrc] fallback found %d stream(s)", len(streams))
            return ExtractionResult(source_name=self.id, streams=streams)

        log.info(
            "[vixsrc] videoId=%s token=%s expires=%s fhd=%s",
            descriptor.video_id, _short(descriptor.playlist_token),
            descriptor.playlist_expires, descriptor.supports_fhd,
        )
        if descriptor.is_expired():
            # Forwarded anyway; the player gets the upstream's verdict
            log.warning("[vixsrc] playlist token already expired (expires=%s)",
                        descriptor.playlist_expires)

        # ── Step 3: signed master playlist URL ──
        stream_url = playlist.build_stream_url(descriptor)
        if not stream_url:
            return ExtractionResult.failed(self.id, "Failed to build stream URL")

        return ExtractionResult(source_name=self.id, streams=[
            Stream(
                file_url=stream_url,
                title=f"{self.name} Stream",
                quality="FHD" if descriptor.supports_fhd else "HD",
                kind="hls",
                headers=playback_headers(embed_url, self.base),
            )
        ])
