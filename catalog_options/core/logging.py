import logging

from catalog_options.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure root logging once for the service."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # SQL statements are controlled by SQL_ECHO, not LOG_LEVEL
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
