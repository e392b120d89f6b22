from __future__ import annotations

import argparse
import logging

import uvicorn

from .config import get_settings


def run_server(host: str | None = None, port: int | None = None) -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "funding_search.app:app",
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


def run_cli() -> None:
    parser = argparse.ArgumentParser(description="Funding search API server")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args()
    run_server(args.host, args.port)


if __name__ == "__main__":
    run_cli()
