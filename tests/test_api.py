from fastapi.testclient import TestClient

from reelproxy.api.main import app, get_engine
from reelproxy.providers.runner import ExtractionEngine
from reelproxy.providers.sources.vixsrc import VixSrcSource
from conftest import EMBED_HTML, MOVIE_EMBED, FakeFetcher

fetcher = FakeFetcher({
    MOVIE_EMBED: EMBED_HTML,
    "https://vixsrc.to/tv/1399/1/1/": EMBED_HTML,
})
engine = ExtractionEngine({"vixsrc": VixSrcSource("https://vixsrc.to")}, fetcher=fetcher)
app.dependency_overrides[get_engine] = lambda: engine

client = TestClient(app)


class BrokenEngine:
    def list_sources(self):
        return ["vixsrc"]

    async def run(self, request, selector):
        raise RuntimeError("database on fire")


def test_movie_streams():
    response = client.get("/movie/550")
    assert response.status_code == 200
    data = response.json()
    assert data["type"] == "movie"
    assert data["id"] == "550"
    assert data["query"] == {"server": "all"}
    stream = data["vixsrc"]["streams"][0]
    assert stream["file"] == "https://cdn.example/master.m3u8?token=T&expires=999&asn=&lang=en&h=1"
    assert stream["headers"]["Referer"] == MOVIE_EMBED
    assert data["totalServersWithStreams"] == 1
    assert data["totalStreamsFound"] == 1


def test_movie_with_explicit_server():
    response = client.get("/movie/550?server=vixsrc")
    assert response.status_code == 200
    assert response.json()["query"] == {"server": "vixsrc"}


def test_unknown_server_is_400():
    calls = len(fetcher.calls)
    response = client.get("/movie/550?server=doesnotexist")
    assert response.status_code == 400
    assert "doesnotexist" in response.json()["error"]
    assert response.json()["availableServers"] == ["vixsrc"]
    assert len(fetcher.calls) == calls


def test_blank_id_is_400():
    response = client.get("/movie/%20")
    assert response.status_code == 400
    assert response.json()["error"] == "Missing id parameter"


def test_tv_streams():
    response = client.get("/tv/1399?season=1&episode=1")
    assert response.status_code == 200
    data = response.json()
    assert (data["season"], data["episode"]) == (1, 1)
    assert len(data["vixsrc"]["streams"]) == 1


def test_tv_missing_episode_is_400():
    response = client.get("/tv/1399?season=1")
    assert response.status_code == 400
    assert "episode" in response.json()["error"]


def test_tv_bad_season_is_400():
    response = client.get("/tv/1399?season=zero&episode=1")
    assert response.status_code == 400
    assert "season" in response.json()["error"]
    response = client.get("/tv/1399?season=0&episode=1")
    assert response.status_code == 400


def test_upstream_failure_is_still_200():
    response = client.get("/movie/999")
    assert response.status_code == 200
    data = response.json()
    assert data["vixsrc"]["streams"] == []
    assert data["vixsrc"]["error"].startswith("Failed to load page")
    assert data["totalStreamsFound"] == 0


def test_unexpected_error_is_500():
    app.dependency_overrides[get_engine] = lambda: BrokenEngine()
    try:
        response = client.get("/movie/550")
    finally:
        app.dependency_overrides[get_engine] = lambda: engine
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "details": "database on fire"}


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["availableServers"] == ["vixsrc"]


def test_docs_index():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["availableServers"] == ["vixsrc"]


def test_unknown_route_is_json_404():
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.json()["error"] == "Not found"


def test_ids_that_would_alter_the_upstream_path_are_400():
    calls = len(fetcher.calls)
    for path in ("/tv/1399%23a?season=1&episode=1", "/movie/550%3Fx=1", "/movie/%2E%2E"):
        response = client.get(path)
        assert response.status_code == 400, path
        assert response.json()["error"].startswith("Invalid id parameter")
    assert len(fetcher.calls) == calls
