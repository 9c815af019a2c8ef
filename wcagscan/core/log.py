import logging
import sys

from tqdm import tqdm

_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"

_DEFAULT_SILENCED = {"urllib3": "WARNING", "asyncio": "WARNING"}


class LogWithTqdm(logging.Handler):
    """Routes log records through tqdm.write() so they don't break the batch progress bar."""

    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg, file=sys.stderr)
            self.flush()
        except Exception:
            self.handleError(record)


def configure_logging(general_level="INFO", silenced_loggers=None):
    """Install the tqdm-aware handler on the root logger and quiet noisy libraries."""
    handler = LogWithTqdm()
    handler.setFormatter(logging.Formatter(_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(_level(general_level, logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name, level in {**_DEFAULT_SILENCED, **(silenced_loggers or {})}.items():
        logging.getLogger(name).setLevel(_level(level, logging.CRITICAL))


def _level(value, default):
    if isinstance(value, str):
        return getattr(logging, value.upper(), default)
    return value
