import contextlib
import logging
import logging.handlers
import multiprocessing as mp
from typing import Iterator, Optional

_LOGGER_NAME = "mandelgif"
_FORMAT = "%(asctime)s.%(msecs)03dZ %(processName)s %(levelname)s %(name)s - %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S"

def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAME)

def _reset_handlers(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    logger.propagate = False
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

def configure_root_logging(
    *,
    level: int = logging.INFO,
    console: bool = True,
    log_file: Optional[str] = None,
    rotate_bytes: int = 5 * 1024 * 1024,
    rotate_count: int = 5,
) -> logging.Logger:
    """Console and optional rotating-file handlers on the `mandelgif` logger of the parent process."""
    logger = get_logger()
    _reset_handlers(logger, level)
    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)
    handlers = []
    if console:
        handlers.append(logging.StreamHandler())
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=rotate_bytes, backupCount=rotate_count, encoding="utf-8"
        ))
    for h in handlers:
        h.setLevel(level)
        h.setFormatter(fmt)
        logger.addHandler(h)
    return logger

@contextlib.contextmanager
def logging_session(*, level: int = logging.INFO, log_file: Optional[str] = None) -> Iterator[mp.Queue]:
    """
    Configure parent logging and yield a queue for render workers. A QueueListener
    forwards worker records to the parent's handlers until the session ends.
    """
    parent = configure_root_logging(level=level, console=True, log_file=log_file)
    queue: mp.Queue = mp.Queue(-1)
    listener = logging.handlers.QueueListener(queue, *parent.handlers, respect_handler_level=True)
    listener.start()
    try:
        yield queue
    finally:
        listener.stop()
        _reset_handlers(parent, level)
        parent.propagate = True

def logging_initialiser(queue: Optional[mp.Queue], level: int) -> None:
    """ProcessPoolExecutor initializer: route a band worker's records back through `queue`."""
    if queue is None:
        return
    logger = get_logger()
    _reset_handlers(logger, level)
    qh = logging.handlers.QueueHandler(queue)
    qh.setLevel(level)
    logger.addHandler(qh)
