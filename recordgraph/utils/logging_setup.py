import logging
import sys
from typing import Optional, Union

_CONFIGURED = False


def setup_logging(level: Optional[Union[int, str]] = None):
    """
    Configure logging idempotently.
    Safe to call multiple times; the first call wins.

    When no level is given, RECORDGRAPH_LOG_LEVEL (via config) is used.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    if level is None:
        from recordgraph.config import config

        level = config.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if root.handlers:
        # Host application already owns logging
        _CONFIGURED = True
        return

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )
    _CONFIGURED = True
