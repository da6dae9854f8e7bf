"""
Blur server entry point

Usage:
    python -m blurserver

Settings come from BLURSERVER_* environment variables (see settings.AppSettings).
"""

import logging
import sys

from pydantic import ValidationError

from .errors import BlurServerError
from .server import BlurServer
from .settings import get_settings


logger = logging.getLogger("blurserver")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def main() -> int:
    """
    Returns:
        Exit code (1: startup failed, 130: interrupted)
    """
    try:
        settings = get_settings()
    except ValidationError as exc:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logger.error("Invalid settings: %s", exc)
        return 1
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)

    server = BlurServer(settings)
    try:
        server.start()
    except BlurServerError as exc:
        logger.error("Server failed to start: %s", exc)
        return 1

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 130
    finally:
        server.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
