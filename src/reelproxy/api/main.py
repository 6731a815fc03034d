from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from reelproxy.core.config import get_settings, setup_logging
from reelproxy.providers.base import StreamRequest, UnknownSourceError, ValidationError
from reelproxy.providers.runner import ALL, ExtractionEngine

log = logging.getLogger("reelproxy.api")

VERSION = "1.0.0"


def build_engine() -> ExtractionEngine:
    settings = get_settings()
    return ExtractionEngine(
        timeout=settings.fetch_timeout,
        source_timeout=settings.source_timeout,
        proxy=settings.http_proxy,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    app.state.engine = build_engine()
    log.info(f"Extractor API ready, servers: {', '.join(app.state.engine.list_sources())}")
    try:
        yield
    finally:
        await app.state.engine.close()


app = FastAPI(title="reelproxy | Stream Extractor API", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_engine(request: Request) -> ExtractionEngine:
    # Lifespan may not have run (e.g. a bare TestClient), build lazily
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        engine = request.app.state.engine = build_engine()
    return engine


def _error(status: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": error, **extra})


def _parse_episode_number(name: str, raw: Optional[str]) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer, got {raw!r}") from None
    if value < 1:
        raise ValidationError(f"{name} must be a positive integer, got {raw!r}")
    return value


async def _extract(engine: ExtractionEngine, build_request, server: str) -> JSONResponse:
    """Shared body of the movie/tv endpoints: validation → 400, surprises → 500."""
    try:
        stream_request = build_request()
        response = await engine.run(stream_request, server)
        return JSONResponse(content=response.to_dict())
    except UnknownSourceError as e:
        return _error(400, str(e), availableServers=e.available)
    except ValidationError as e:
        return _error(400, str(e))
    except Exception as e:
        log.exception("Unexpected error while extracting streams")
        return _error(500, "Internal server error", details=str(e))


# --- 1. STREAMS ---

@app.get("/movie/{content_id}")
async def movie_streams(content_id: str, server: str = ALL,
                        engine: ExtractionEngine = Depends(get_engine)):
    return await _extract(engine, lambda: StreamRequest.movie(content_id), server)


@app.get("/tv/{content_id}")
async def tv_streams(content_id: str, season: Optional[str] = None,
                     episode: Optional[str] = None, server: str = ALL,
                     engine: ExtractionEngine = Depends(get_engine)):
    def build():
        missing = [n for n, v in (("season", season), ("episode", episode)) if not v]
        if missing:
            raise ValidationError(f"Missing {' and '.join(missing)} parameter")
        return StreamRequest.tv(
            content_id,
            _parse_episode_number("season", season),
            _parse_episode_number("episode", episode),
        )
    return await _extract(engine, build, server)


# --- 2. HEALTH & DOCS ---

@app.get("/health")
def health(engine: ExtractionEngine = Depends(get_engine)):
    servers = engine.list_sources()
    choices = "|".join([ALL] + servers)
    return {
        "status": "ok",
        "availableServers": servers,
        "endpoints": {
            "movie": f"/movie/:id?server={choices}",
            "tv": f"/tv/:id?season=1&episode=1&server={choices}",
            "health": "/health",
            "root": "/",
        },
    }


@app.get("/")
def read_index(request: Request, engine: ExtractionEngine = Depends(get_engine)):
    base = str(request.base_url).rstrip("/")
    servers = engine.list_sources()
    server_param = {
        "type": "string",
        "required": False,
        "default": ALL,
        "description": 'Specific server or "all" for all servers',
        "allowedValues": servers + [ALL],
    }
    return {
        "title": "Video Extractor API",
        "description": "Extract streams from multiple video hosting services",
        "version": VERSION,
        "baseUrl": base,
        "status": "active",
        "availableServers": servers,
        "endpoints": {
            "movies": {
                "path": "/movie/:id",
                "method": "GET",
                "parameters": {
                    "id": {"type": "string|number", "required": True, "description": "The movie TMDB ID"},
                    "server": server_param,
                },
                "examples": [f"{base}/movie/550"] + [f"{base}/movie/550?server={s}" for s in servers],
            },
            "tvshows": {
                "path": "/tv/:id",
                "method": "GET",
                "parameters": {
                    "id": {"type": "string|number", "required": True, "description": "The TV show TMDB ID"},
                    "season": {"type": "number", "required": True, "description": "Season number"},
                    "episode": {"type": "number", "required": True, "description": "Episode number"},
                    "server": server_param,
                },
                "examples": [f"{base}/tv/1399?season=1&episode=1"]
                + [f"{base}/tv/1399?season=2&episode=3&server={s}" for s in servers],
            },
            "health": {"path": "/health", "method": "GET"},
        },
        "servers": {s["id"]: {"name": s["name"], "mediaTypes": s["mediaTypes"]}
                    for s in engine.describe_sources()},
        "notes": {
            "streams": "Each stream carries the headers (Referer/Origin/User-Agent) "
                       "that must be sent when fetching the manifest and its segments",
            "errors": "A server that fails reports an 'error' next to an empty 'streams' list",
        },
    }


# --- 3. ERRORS ---

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return _error(
            404, "Not found",
            message="Visit root endpoint for full documentation",
            availableEndpoints={
                "GET /": "Full API documentation with examples",
                "GET /movie/:id": "Get movie streams (query: ?server=...)",
                "GET /tv/:id": "Get TV show streams (query: ?season=X&episode=Y&server=...)",
                "GET /health": "Health check",
            },
        )
    return _error(exc.status_code, str(exc.detail))
