import logging

from rich.console import Console
from rich.logging import RichHandler

DATE_FORMAT = "[%Y-%m-%d %H:%M:%S]"

# Library loggers that drown out command activity unless debugging
_QUIET_LOGGERS = {
    "twitchio.http": logging.WARNING,
    "twitchio.websockets": logging.WARNING,
    "asyncpg": logging.WARNING,
    "asyncio": logging.ERROR,
}


def _rich_handler() -> RichHandler:
    handler = RichHandler(
        console=Console(force_terminal=True, width=120),
        show_path=False,
        markup=True,
        rich_tracebacks=True,
        tracebacks_width=120,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt=DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO") -> None:
    """Route all logging through rich at *log_level*."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, handlers=[_rich_handler()], force=True)

    logging.getLogger("twitchio").setLevel(level)
    if level > logging.DEBUG:
        for name, quiet_level in _QUIET_LOGGERS.items():
            logging.getLogger(name).setLevel(quiet_level)

    logging.getLogger("Bot").info(
        f"[bold green]✓[/bold green] Logging at {logging.getLevelName(level)}",
        extra={"markup": True},
    )
