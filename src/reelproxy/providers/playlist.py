"""Signed master-playlist URL assembly."""
from __future__ import annotations
import logging
from typing import Optional
from urllib.parse import quote

from .base import EmbedDescriptor

log = logging.getLogger("reelproxy.providers.playlist")

# Characters JavaScript's encodeURIComponent leaves alone (besides alphanumerics and -_.)
_URI_COMPONENT_SAFE = "!~*'()"


def encode_component(value: str) -> str:
    return quote(str(value), safe=_URI_COMPONENT_SAFE)


def query_string(descriptor: EmbedDescriptor) -> str:
    parts = [
        f"token={encode_component(descriptor.playlist_token)}",
        f"expires={encode_component(descriptor.playlist_expires)}",
        "asn=",
        "lang=en",
    ]
    if descriptor.supports_fhd:
        parts.append("h=1")
    return "&".join(parts)


def build_stream_url(descriptor: Optional[EmbedDescriptor]) -> Optional[str]:
    """base url + token/expires/asn/lang[/h] query. None if the descriptor is incomplete."""
    if descriptor is None or not descriptor.is_complete():
        log.error("cannot build stream URL from incomplete descriptor")
        return None

    base = descriptor.playlist_base_url
    if "?" not in base:
        sep = "?"
    elif base.endswith(("?", "&")):
        sep = ""
    else:
        sep = "&"
    return base + sep + query_string(descriptor)
