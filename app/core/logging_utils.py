from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    level_value = getattr(logging, level.upper(), logging.INFO)
    if not any(getattr(h, "_research_articles", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        handler._research_articles = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level_value)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
