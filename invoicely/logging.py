import logging
import sys

from invoicely.settings import settings

TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Third-party loggers that are noisy at INFO/DEBUG.
QUIET_LOGGERS = (
    "uvicorn.access",  # requests are logged by the invoice routes
    "fontTools",  # fpdf2 subsetting TrueType fonts on every export
    "fpdf",
)


def _formatter() -> logging.Formatter:
    if settings.log_json:
        from pythonjsonlogger.json import JsonFormatter

        return JsonFormatter(fmt=JSON_FORMAT, rename_fields={"asctime": "timestamp", "levelname": "level"})
    return logging.Formatter(TEXT_FORMAT)


def configure_logging() -> None:
    """Send all invoicely logs to stderr at ``settings.log_level``.

    Alembic's ``fileConfig`` replaces the root handlers while migrating, so the
    web app calls ``reconfigure()`` once migrations have run.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_formatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


reconfigure = configure_logging
