"""
Logging configuration for the invoicing service.

Call configure_logging() once at process startup. The storage engine itself
only emits a single INFO line per database initialization.
"""
import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO, log_file: Path | None = None) -> None:
    """Configure the root logger, optionally mirroring records to log_file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )
    # Third-party chatter stays at WARNING
    for noisy in ("uvicorn.access", "reportlab", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
