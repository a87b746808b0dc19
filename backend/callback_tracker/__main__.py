import logging
import sys

import uvicorn

from callback_tracker.core.config import settings
from callback_tracker.core.logging import configure_logging

logger = logging.getLogger("callback_tracker")


def main() -> int:
    configure_logging(settings.log_level)
    try:
        # uvicorn installs SIGINT/SIGTERM handlers and drains in-flight requests on shutdown
        uvicorn.run(
            "callback_tracker.main:app",
            host="0.0.0.0",
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
    except Exception:
        logger.exception("server failed to start")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
