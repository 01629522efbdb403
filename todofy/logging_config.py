import logging
from pathlib import Path
from typing import Union

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"

# Chatty third-party loggers; httpx logs every request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_to_file: bool = False,
    logs_dir: Path = Path("logs"),
) -> None:
    """Configure root logging for the gateway, summarizer and CLI."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handlers = [logging.StreamHandler()]
    if log_to_file:
        logs_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(logs_dir / "todofy.log"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
