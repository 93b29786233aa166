import logging

from scavhunt.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    level = logging.getLevelName(settings.LOG_LEVEL.strip().upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("scavhunt").setLevel(level)
    # Per-request access lines are only useful while developing.
    if not settings.is_development:
        logging.getLogger("scavhunt.http").setLevel(max(level, logging.WARNING))
