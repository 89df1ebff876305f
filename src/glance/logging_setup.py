"""Logging configuration for the CLI.

Library modules only ever call ``logging.getLogger(__name__)``; handlers and
levels are installed here, once, by the entry point.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

# Third-party loggers that are noisy at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "markdown_it")


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """
    Install a RichHandler on the root logger.

    Sharing ``console`` with the progress display keeps log lines from
    tearing the progress bar.

    Returns:
        The ``glance`` package logger.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logging.basicConfig(level=logging.WARNING, handlers=[handler], force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    package_logger = logging.getLogger("glance")
    package_logger.setLevel(level)
    return package_logger
