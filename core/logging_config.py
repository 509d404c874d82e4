from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level_name: str = "INFO") -> None:
    """Configure root logging once for the API, the Streamlit app and scripts."""
    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger(__name__).info("Logging configured, level=%s", logging.getLevelName(level))
