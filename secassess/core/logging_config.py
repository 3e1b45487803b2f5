"""Root logging setup shared by every secassess entry point."""
import logging
import sys

from secassess.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure the root handler once and return the package logger.

    Calling it again only adjusts the level, so tests and embedding
    applications can call it freely.
    """
    level_name = (level or settings.log_level or "INFO").upper()
    root = logging.getLogger()
    if not any(getattr(h, "_secassess", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._secassess = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    # SQL echo is controlled by the engine; keep the sqlalchemy logger quiet otherwise
    if not settings.sql_debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logging.getLogger("secassess")
