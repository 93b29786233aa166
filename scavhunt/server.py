import logging

import uvicorn

from scavhunt.core.config import settings

_LOG = logging.getLogger("scavhunt.server")


def main() -> None:
    _LOG.info("Listening on port %s...", settings.PORT)
    uvicorn.run(
        "scavhunt.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.strip().lower(),
    )


if __name__ == "__main__":
    main()
