"""Run the extraction engine once and print the aggregated JSON.

    python scripts/probe_sources.py movie 550
    python scripts/probe_sources.py tv 1399 --season 1 --episode 1 --server vixsrc
"""
import argparse
import asyncio
import json
import sys

from reelproxy.core.config import get_settings, setup_logging
from reelproxy.providers.base import StreamRequest, ValidationError
from reelproxy.providers.fetcher import Fetcher
from reelproxy.providers.runner import ALL, ExtractionEngine


async def probe(request: StreamRequest, server: str) -> dict:
    settings = get_settings()
    async with Fetcher(timeout=settings.fetch_timeout, proxy=settings.http_proxy) as fetcher:
        engine = ExtractionEngine(fetcher=fetcher, source_timeout=settings.source_timeout)
        response = await engine.run(request, server)
        return response.to_dict()


def main():
    parser = argparse.ArgumentParser(description="Probe stream sources for a title")
    parser.add_argument("media_type", choices=["movie", "tv"])
    parser.add_argument("content_id")
    parser.add_argument("--season", type=int)
    parser.add_argument("--episode", type=int)
    parser.add_argument("--server", default=ALL)
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()

    setup_logging(args.log_level)
    request = StreamRequest(args.content_id, args.media_type, args.season, args.episode)
    try:
        result = asyncio.run(probe(request, args.server))
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(2)

    print(json.dumps(result, indent=2))
    sys.exit(0 if result["totalStreamsFound"] else 1)


if __name__ == "__main__":
    main()
