"""
Core types for the reelproxy extraction system.

Everything here is request scoped: built fresh for each HTTP call and
thrown away once the response is sent.

  StreamRequest      → what the caller asked for
  EmbedDescriptor    → fields scraped out of an embed page
  Stream             → one playable manifest + the headers to fetch it
  ExtractionResult   → one source's outcome (streams, or an error)
  AggregatedResponse → every selected source's outcome, with counts
"""
from __future__ import annotations
import re
import time
from dataclasses import dataclass, field
from typing import Optional

MEDIA_TYPES = ("movie", "tv")
# TMDB ids ("550") and IMDb ids ("tt0137523"); anything else would change the upstream path
CONTENT_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


# ──────────────────────────────
#  Errors
# ──────────────────────────────
class ValidationError(ValueError):
    """Bad or missing request parameters. Raised before any network call."""


class UnknownSourceError(ValidationError):
    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = list(available)
        super().__init__(
            f"Invalid server: {name}. Available: {', '.join(self.available + ['all'])}"
        )


class TransportError(Exception):
    """The embed page could not be fetched (timeout, DNS, non-2xx...)."""

    def __init__(self, url: str, *, status: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status = status
        self.reason = reason or (f"HTTP {status}" if status else "request failed")
        super().__init__(self.reason)


# ──────────────────────────────
#  Request
# ──────────────────────────────
@dataclass
class StreamRequest:
    content_id: str
    media_type: str = "movie"         # "movie" | "tv"
    season: Optional[int] = None
    episode: Optional[int] = None

    def __post_init__(self):
        self.content_id = str(self.content_id).strip()
        # Normalize: accept both "show" and "tv" → always "tv"
        if self.media_type == "show":
            self.media_type = "tv"

    @classmethod
    def movie(cls, content_id: str) -> StreamRequest:
        return cls(content_id=content_id, media_type="movie")

    @classmethod
    def tv(cls, content_id: str, season: int, episode: int) -> StreamRequest:
        return cls(content_id=content_id, media_type="tv", season=season, episode=episode)

    def validate(self) -> StreamRequest:
        if not self.content_id:
            raise ValidationError("Missing id parameter")
        if not CONTENT_ID_RE.fullmatch(self.content_id):
            raise ValidationError(f"Invalid id parameter: {self.content_id!r}")
        if self.media_type not in MEDIA_TYPES:
            raise ValidationError(
                f"Invalid media type: {self.media_type!r} (expected movie or tv)"
            )
        if self.media_type == "tv":
            missing = [n for n in ("season", "episode") if getattr(self, n) is None]
            if missing:
                raise ValidationError(f"Missing {' and '.join(missing)} parameter")
            for name in ("season", "episode"):
                value = getattr(self, name)
                if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                    raise ValidationError(f"{name} must be a positive integer, got {value!r}")
        elif self.season is not None or self.episode is not None:
            raise ValidationError("season/episode are only valid for tv requests")
        return self


# ──────────────────────────────
#  Embed page descriptor
# ──────────────────────────────
@dataclass
class EmbedDescriptor:
    video_id: str
    playlist_token: str
    playlist_expires: str
    playlist_base_url: str
    supports_fhd: bool = False

    def is_complete(self) -> bool:
        return all((self.video_id, self.playlist_token,
                    self.playlist_expires, self.playlist_base_url))

    def expires_at(self) -> Optional[int]:
        """Expiry as a unix timestamp, or None if it is not numeric."""
        try:
            return int(self.playlist_expires)
        except (TypeError, ValueError):
            return None

    def is_expired(self, now: Optional[float] = None) -> bool:
        ts = self.expires_at()
        if ts is None:
            return False
        return ts < (time.time() if now is None else now)


# ──────────────────────────────
#  Stream definitions
# ──────────────────────────────
@dataclass(frozen=True)
class Stream:
    file_url: str
    title: str
    quality: str = "HD"
    kind: str = "hls"                 # "hls" | "direct"
    headers: dict[str, str] = field(default_factory=dict)

    def to_dict(self):
        return {
            "file": self.file_url,
            "title": self.title,
            "quality": self.quality,
            "type": self.kind,
            "headers": dict(self.headers),
        }


# ──────────────────────────────
#  Per-source outcome
# ──────────────────────────────
@dataclass
class ExtractionResult:
    source_name: str
    streams: list[Stream] = field(default_factory=list)
    error: Optional[str] = None

    def __post_init__(self):
        # A failed source never carries streams
        if self.error:
            self.streams = []

    @classmethod
    def failed(cls, source_name: str, message: str) -> ExtractionResult:
        return cls(source_name=source_name, streams=[], error=message or "unknown error")

    def to_dict(self):
        d = {"streams": [s.to_dict() for s in self.streams]}
        if self.error:
            d["error"] = self.error
        return d


# ──────────────────────────────
#  Final run output
# ──────────────────────────────
@dataclass
class AggregatedResponse:
    media_type: str
    content_id: str
    requested_source: str
    results: list[ExtractionResult] = field(default_factory=list)
    season: Optional[int] = None
    episode: Optional[int] = None

    @property
    def per_source(self) -> dict[str, ExtractionResult]:
        return {r.source_name: r for r in self.results}

    @property
    def sources_with_streams(self) -> int:
        return sum(1 for r in self.results if r.streams)

    @property
    def total_streams_found(self) -> int:
        return sum(len(r.streams) for r in self.results)

    def to_dict(self):
        d = {"type": self.media_type, "id": self.content_id}
        if self.media_type == "tv":
            d["season"] = self.season
            d["episode"] = self.episode
        d["query"] = {"server": self.requested_source}
        for result in self.results:
            d[result.source_name] = result.to_dict()
        d["totalServersWithStreams"] = self.sources_with_streams
        d["totalStreamsFound"] = self.total_streams_found
        return d
