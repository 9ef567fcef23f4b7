"""
Logging setup for homie.

Modules log through ``logging.getLogger(__name__)``. The CLI calls
``configure_logging`` once at startup; records go to stderr through rich.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "homie"


def configure_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """
    Attach a RichHandler to the package logger.

    Args:
        verbose: Log DEBUG records instead of WARNING and above
        console: Console to render to (defaults to stderr)

    Returns:
        The configured ``homie`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    # Reconfiguring replaces the previous handler instead of stacking them
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=verbose,
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
