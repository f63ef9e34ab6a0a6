"""
Server entry point for the Personal Tracker API

Run with:
    python -m app.main
or:
    uvicorn app.main:app --port 3001

The store backend, identity rules and CORS origins all come from the
environment (see tracker.config).
"""

import structlog
import uvicorn

from tracker.api import create_app
from tracker.audit import configure_logging
from tracker.config import get_settings, validate_all_settings


settings = get_settings()
configure_logging(settings.app.log_level)
logger = structlog.get_logger(__name__)

app = create_app()


def main() -> None:
    """Check configuration, then serve."""
    results = validate_all_settings()
    for section, ok in results.items():
        if ok is False:
            logger.warning("invalid_settings", section=section, error=results.get(f"{section}_error"))
    uvicorn.run(app, host="0.0.0.0", port=settings.app.port)


if __name__ == "__main__":
    main()
