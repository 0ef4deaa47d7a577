from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s :: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: int | str = logging.INFO) -> None:
    """
    Configure one stdout handler for the coin_markets.* loggers.

    Safe to call more than once (uvicorn --reload, tests); later calls only
    update the level.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger("coin_markets")
    root.setLevel(level)
    if not any(getattr(h, "_coin_markets", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._coin_markets = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    root.debug("logging configured | level=%s", logging.getLevelName(level))
