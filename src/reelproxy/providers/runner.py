"""
Extraction engine: keeps the source registry, runs selected sources
concurrently, and aggregates their results.

Usage:
    engine = ExtractionEngine()
    response = await engine.run(StreamRequest.movie("550"), "all")
    print(response.to_dict())
    await engine.close()
"""
from __future__ import annotations
import asyncio
import logging
from typing import Mapping, Optional

from .base import (
    AggregatedResponse, ExtractionResult, StreamRequest, UnknownSourceError,
)
from .fetcher import Fetcher

log = logging.getLogger("reelproxy.providers")

ALL = "all"


# ──────────────────────────────
#  Source registry
# ──────────────────────────────
class _SourceExtractor:
    id: str
    name: str
    media_types: list[str]          # ["movie"] or ["movie", "tv"]

    async def extract(self, request: StreamRequest, fetcher: Fetcher) -> ExtractionResult:
        raise NotImplementedError


# Registration order is response order
_SOURCES: dict[str, _SourceExtractor] = {}


def register_source(extractor):
    """Decorator to register a source extractor class."""
    inst = extractor()
    if not getattr(inst, "disabled", False):
        # Re-registering an id replaces it in place
        _SOURCES[inst.id] = inst
    return extractor


def registered_sources() -> dict[str, _SourceExtractor]:
    return dict(_SOURCES)


# ──────────────────────────────
#  Engine
# ──────────────────────────────
class ExtractionEngine:
    def __init__(
        self,
        sources: Optional[Mapping[str, _SourceExtractor]] = None,
        *,
        fetcher: Optional[Fetcher] = None,
        timeout: int = 15,
        source_timeout: float = 20,
        proxy: str | None = None,
    ):
        self._sources = dict(sources) if sources is not None else None
        self.fetcher = fetcher or Fetcher(timeout=timeout, proxy=proxy)
        self.source_timeout = source_timeout

    @property
    def sources(self) -> dict[str, _SourceExtractor]:
        return self._sources if self._sources is not None else registered_sources()

    async def close(self):
        await self.fetcher.close()

    def list_sources(self) -> list[str]:
        return list(self.sources)

    def describe_sources(self):
        return [{"id": s.id, "name": s.name, "mediaTypes": list(s.media_types)}
                for s in self.sources.values()]

    def resolve(self, selector: str | None) -> list[str]:
        """'all' → every registered id, a known id → [id], else UnknownSourceError."""
        selector = (selector or ALL).strip()
        if selector.lower() == ALL:
            return self.list_sources()
        if selector in self.sources:
            return [selector]
        raise UnknownSourceError(selector, self.list_sources())

    async def run(self, request: StreamRequest, selector: str | None = ALL) -> AggregatedResponse:
        """Validate, run every selected source concurrently, aggregate in registration order.

        Raises ValidationError/UnknownSourceError before any source runs.
        Per-source failures never escape; they become that source's error.
        """
        request.validate()
        names = self.resolve(selector)
        log.info(f"[{request.media_type}:{request.content_id}] running sources: {', '.join(names) or '-'}")

        results = await asyncio.gather(*(self._run_source(n, request) for n in names))

        response = AggregatedResponse(
            media_type=request.media_type,
            content_id=request.content_id,
            season=request.season,
            episode=request.episode,
            requested_source=(selector or ALL),
            results=list(results),
        )
        log.info(
            f"[{request.media_type}:{request.content_id}] "
            f"{response.sources_with_streams}/{len(names)} sources with streams, "
            f"{response.total_streams_found} streams total"
        )
        return response

    async def _run_source(self, name: str, request: StreamRequest) -> ExtractionResult:
        source = self.sources[name]
        if request.media_type not in source.media_types:
            return ExtractionResult.failed(name, f"{request.media_type} is not supported by {name}")
        try:
            log.info(f"[{name}] Trying source extractor...")
            result = await asyncio.wait_for(
                source.extract(request, self.fetcher), timeout=self.source_timeout)
        except asyncio.TimeoutError:
            log.warning(f"[{name}] Source timed out after {self.source_timeout}s")
            return ExtractionResult.failed(name, f"Timed out after {self.source_timeout}s")
        except Exception as e:
            log.exception(f"[{name}] Source failed: {e}")
            return ExtractionResult.failed(name, f"Failed to extract streams: {e}")

        if result.source_name != name:
            result = ExtractionResult(source_name=name, streams=result.streams, error=result.error)
        return result


# ──────────────────────────────
#  Import all extractors to register them
# ──────────────────────────────
def _load_sources():
    from .sources import vixsrc         # noqa: F401

_load_sources()
