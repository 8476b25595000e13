from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from leave_ledger.config import Settings

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(settings: Settings) -> None:
    """Install the process-wide log format at the configured level."""
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
    # SQL echo is controlled by the engine, keep the logger quiet otherwise.
    if not settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
