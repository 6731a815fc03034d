"""Run the extractor API: `python -m reelproxy.main` (or the `reelproxy` script)."""
import uvicorn

from reelproxy.core.config import get_settings, setup_logging


def main():
    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        "reelproxy.api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
