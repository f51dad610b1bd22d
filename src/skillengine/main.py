"""
Skill engine entry point.

This file handles startup concerns (arg-parsing, logging) and launches the HTTP API.
"""

import argparse
import logging
import sys

from skillengine.api.app import run_api
from skillengine.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """Parse command-line options, configure logging and serve the API."""
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Run the sales agent skill engine")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: %(default)s)")
    parser.add_argument(
        "--port", type=int, default=settings.API_PORT, help="HTTP port (default: %(default)s)"
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    args = parser.parse_args(argv)

    # Override log level setting with command-line argument
    settings.LOG_LEVEL = args.log_level

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting skill engine (provider=%s)", settings.MODEL_PROVIDER)
    run_api(host=args.host, port=args.port, reload=settings.DEBUG)


if __name__ == "__main__":
    main()
