import asyncio

import pytest

from reelproxy.providers.base import (
    ExtractionResult, StreamRequest, UnknownSourceError, ValidationError,
)
from reelproxy.providers.runner import ExtractionEngine, registered_sources
from reelproxy.providers.sources.vixsrc import VixSrcSource
from conftest import EMBED_HTML, FakeFetcher

GOOD = "https://good.example"
BAD = "https://bad.example"


class SlowSource:
    id = "slow"
    name = "Slow"
    media_types = ["movie", "tv"]

    def __init__(self, delay):
        self.delay = delay

    async def extract(self, request, fetcher):
        await asyncio.sleep(self.delay)
        return ExtractionResult(source_name=self.id)


class ExplodingSource:
    id = "boom"
    name = "Boom"
    media_types = ["movie", "tv"]

    async def extract(self, request, fetcher):
        raise RuntimeError("parser exploded")


class MovieOnlySource(SlowSource):
    media_types = ["movie"]


def _engine(sources, fetcher=None, **kw):
    return ExtractionEngine(sources, fetcher=fetcher or FakeFetcher({}), **kw)


def test_vixsrc_is_registered():
    assert "vixsrc" in registered_sources()
    assert ExtractionEngine(fetcher=FakeFetcher()).list_sources()[0] == "vixsrc"


def test_resolve_selector():
    engine = _engine({"a": SlowSource(0), "b": SlowSource(0)})
    assert engine.resolve("all") == ["a", "b"]
    assert engine.resolve("ALL") == ["a", "b"]
    assert engine.resolve(None) == ["a", "b"]
    assert engine.resolve("b") == ["b"]
    with pytest.raises(UnknownSourceError) as exc:
        engine.resolve("doesnotexist")
    assert exc.value.available == ["a", "b"]


def test_isolation_between_sources():
    """A source whose page fails to load does not hide the one that worked."""
    fetcher = FakeFetcher({f"{GOOD}/movie/550/": EMBED_HTML})
    engine = _engine({"good": VixSrcSource(GOOD), "bad": VixSrcSource(BAD)}, fetcher)

    response = asyncio.run(engine.run(StreamRequest.movie("550"), "all"))

    good, bad = response.per_source["good"], response.per_source["bad"]
    assert len(good.streams) == 1 and good.error is None
    assert bad.streams == [] and bad.error
    assert response.sources_with_streams == 1
    assert response.total_streams_found == 1


def test_unknown_source_rejected_before_any_fetch():
    fetcher = FakeFetcher({f"{GOOD}/movie/550/": EMBED_HTML})
    engine = _engine({"good": VixSrcSource(GOOD)}, fetcher)
    with pytest.raises(UnknownSourceError):
        asyncio.run(engine.run(StreamRequest.movie("550"), "doesnotexist"))
    assert fetcher.calls == []


def test_invalid_request_rejected_before_any_fetch():
    fetcher = FakeFetcher({})
    engine = _engine({"good": VixSrcSource(GOOD)}, fetcher)
    with pytest.raises(ValidationError):
        asyncio.run(engine.run(StreamRequest("1399", "tv", season=1), "all"))
    assert fetcher.calls == []


def test_exceptions_are_contained_per_source():
    engine = _engine({"boom": ExplodingSource(), "slow": SlowSource(0)})
    response = asyncio.run(engine.run(StreamRequest.movie("550")))
    assert "parser exploded" in response.per_source["boom"].error
    assert response.per_source["slow"].error is None


def test_results_keep_registration_order():
    engine = _engine({"first": SlowSource(0.05), "second": SlowSource(0)})
    response = asyncio.run(engine.run(StreamRequest.movie("550")))
    assert [r.source_name for r in response.results] == ["first", "second"]


def test_slow_source_times_out():
    engine = _engine({"slow": SlowSource(1), "fast": SlowSource(0)}, source_timeout=0.05)
    response = asyncio.run(engine.run(StreamRequest.movie("550")))
    assert "Timed out" in response.per_source["slow"].error
    assert response.per_source["fast"].error is None


def test_unsupported_media_type_is_an_error_result():
    engine = _engine({"movies": MovieOnlySource(0)})
    response = asyncio.run(engine.run(StreamRequest.tv("1399", 1, 1)))
    assert "not supported" in response.per_source["movies"].error


def test_aggregated_dict_shape():
    fetcher = FakeFetcher({f"{GOOD}/tv/1399/1/2/": EMBED_HTML})
    engine = _engine({"good": VixSrcSource(GOOD), "bad": VixSrcSource(BAD)}, fetcher)
    d = asyncio.run(engine.run(StreamRequest.tv("1399", 1, 2), "all")).to_dict()

    assert d["type"] == "tv"
    assert d["id"] == "1399"
    assert (d["season"], d["episode"]) == (1, 2)
    assert d["query"] == {"server": "all"}
    assert set(d["good"]) == {"streams"}
    assert set(d["bad"]) == {"streams", "error"}
    assert d["good"]["streams"][0]["type"] == "hls"
    assert d["totalServersWithStreams"] == 1
    assert d["totalStreamsFound"] == 1
