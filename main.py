"""Command-line entrypoint for the video catalog server.

Usage:
    uv run python main.py [--host HOST] [--port PORT] [--reload]
"""

from __future__ import annotations

import argparse

import uvicorn

from config import settings


def main() -> None:
    """Run the API server with uvicorn."""
    parser = argparse.ArgumentParser(description="Serve the video catalog")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()

    uvicorn.run(
        "api.server:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
