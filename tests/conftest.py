import pytest

from reelproxy.providers.base import TransportError

MOVIE_EMBED = "https://vixsrc.to/movie/550/"

EMBED_HTML = """<!DOCTYPE html>
<html><head><title>Fight Club</title>
<script>
    window.video = {id: "abc123", name: "Fight Club", duration: 139};
    window.masterPlaylist = {
        params: {
            "token": "T",
            "expires": "999",
            "asn": ""
        },
        url: "https://cdn.example/master.m3u8",
    };
    window.canPlayFHD = true;
</script></head>
<body><div id="player"></div></body></html>
"""

FALLBACK_HTML = """<html><body>
<script>
    var player = {sources: [{file: "https://a.example/hls/1/master.m3u8?t=1"}]};
    var backup = "https:\\/\\/b.example\\/x\\/index.m3u8";
    var again = 'https://a.example/hls/1/master.m3u8?t=1';
</script>
</body></html>
"""


class FakeFetcher:
    """Stands in for Fetcher: serves canned pages, records every request."""

    def __init__(self, pages=None, *, status=503):
        self.pages = dict(pages or {})
        self.status = status
        self.calls = []
        self.closed = False

    async def get_page(self, url, *, referer=None, origin=None):
        self.calls.append({"url": url, "referer": referer, "origin": origin})
        if url not in self.pages:
            raise TransportError(url, status=self.status)
        return self.pages[url]

    async def close(self):
        self.closed = True


@pytest.fixture
def fetcher():
    return FakeFetcher({MOVIE_EMBED: EMBED_HTML})
