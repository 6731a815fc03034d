"""
Pulls the player globals out of an embed page without executing it.

The page sets, somewhere in an inline <script>:

    window.video = { id: '123456', name: '...', ... };
    window.masterPlaylist = {
        params: {
            'token': 'a1b2c3',
            'expires': '1730000000',
            'asn': ''
        },
        url: 'https://vixsrc.to/playlist/123456?b=1',
    };
    window.canPlayFHD = true;

Each group has its own matcher. Video id, token, expires and url are all
required; if any one is missing the whole page is rejected (None). The
FHD flag is optional and defaults to False.
"""
from __future__ import annotations
import logging
import re
from typing import Optional

from .base import EmbedDescriptor

log = logging.getLogger("reelproxy.providers.embedvars")

_Q = r"""['"]"""                      # either quote style

VIDEO_RE = re.compile(
    r"window\.video\s*=\s*\{[^}]*?\bid" + _Q + r"?\s*:\s*"
    r"""(?:['"]([^'"]+)['"]|(\d+))""",
    re.DOTALL,
)
PLAYLIST_START_RE = re.compile(r"window\.masterPlaylist\s*=\s*\{")
PARAMS_RE = re.compile(r"\bparams" + _Q + r"?\s*:\s*\{([^}]*)\}", re.DOTALL)
FHD_RE = re.compile(r"window\.canPlayFHD\s*=\s*(true|false)\b")


def _key_re(key: str) -> re.Pattern:
    # 'key': 'value' | "key": "value" | key: 'value'
    return re.compile(
        r"(?<![\w$])" + _Q + r"?" + re.escape(key) + _Q + r"?\s*:\s*['\"]([^'\"]*)['\"]"
    )


TOKEN_RE = _key_re("token")
EXPIRES_RE = _key_re("expires")
URL_RE = _key_re("url")


def _object_body(text: str, open_at: int) -> Optional[str]:
    """Return the text between the brace at `open_at` and its match.

    Quote aware, so braces inside string literals do not count.
    """
    depth = 0
    quote = None
    i = open_at
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "'\"`":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[open_at + 1:i]
        i += 1
    return None


def find_video_id(html: str) -> Optional[str]:
    m = VIDEO_RE.search(html)
    if not m:
        return None
    return m.group(1) or m.group(2)


def find_master_playlist(html: str) -> tuple[Optional[str], Optional[str], Optional[str]]:
    """(token, expires, url) from window.masterPlaylist; missing parts are None."""
    start = PLAYLIST_START_RE.search(html)
    if not start:
        return None, None, None
    body = _object_body(html, start.end() - 1)
    if body is None:
        return None, None, None

    token = expires = None
    params = PARAMS_RE.search(body)
    if params:
        t = TOKEN_RE.search(params.group(1))
        e = EXPIRES_RE.search(params.group(1))
        token = t.group(1) if t else None
        expires = e.group(1) if e else None
        # url must be a top-level key, not something inside params
        body = body[:params.start()] + body[params.end():]

    u = URL_RE.search(body)
    return token, expires, (u.group(1) if u else None)


def find_fhd_flag(html: str) -> bool:
    m = FHD_RE.search(html)
    return bool(m) and m.group(1) == "true"


def parse(html: str) -> Optional[EmbedDescriptor]:
    """Build an EmbedDescriptor from page text, or None if anything required is missing."""
    if not html:
        return None

    video_id = find_video_id(html)
    token, expires, url = find_master_playlist(html)
    fields = {"videoId": video_id, "token": token, "expires": expires, "url": url}
    missing = [name for name, value in fields.items() if not value]
    if missing:
        log.debug("embed variables incomplete, missing: %s", ", ".join(missing))
        return None

    return EmbedDescriptor(
        video_id=video_id,
        playlist_token=token,
        playlist_expires=expires,
        playlist_base_url=url,
        supports_fhd=find_fhd_flag(html),
    )
