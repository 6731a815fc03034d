"""
Runtime settings, read from the environment (and a local .env if present).
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger("reelproxy.config").warning(
            "%s=%r is not an integer, using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3005
    fetch_timeout: int = 15           # seconds, one embed page GET
    source_timeout: int = 20          # seconds, one whole extractor run
    vixsrc_base: str = "https://vixsrc.to"
    http_proxy: Optional[str] = None
    fallback_limit: int = 10
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            host=os.getenv("HOST", cls.host),
            port=_int_env("PORT", cls.port),
            fetch_timeout=_int_env("REELPROXY_FETCH_TIMEOUT", cls.fetch_timeout),
            source_timeout=_int_env("REELPROXY_SOURCE_TIMEOUT", cls.source_timeout),
            vixsrc_base=os.getenv("REELPROXY_VIXSRC_BASE", cls.vixsrc_base).rstrip("/"),
            http_proxy=os.getenv("REELPROXY_HTTP_PROXY") or None,
            fallback_limit=max(0, _int_env("REELPROXY_FALLBACK_LIMIT", cls.fallback_limit)),
            log_level=os.getenv("REELPROXY_LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def setup_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=(level or get_settings().log_level),
        format=LOG_FORMAT,
    )
