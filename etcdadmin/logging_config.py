"""
Logging setup for etcd-admin.

The service and uvicorn share one set of handlers: stdout always, plus a
file when --log-file is given. uvicorn is started with log_config=None so it
does not install handlers of its own, and its error/access loggers propagate
here instead. --debug lowers everything to DEBUG, including urllib3's
connection log for calls to the cluster.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = '[%(asctime)s] [ETCD-ADMIN] %(levelname)s %(name)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> List[logging.Handler]:
    """
    Attach the service handlers to the root logger and route uvicorn through them.

    Returns the handlers installed, so callers can detach them again.
    """
    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    for name in UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
        uv_logger.setLevel(level)

    logging.getLogger("urllib3").setLevel(logging.DEBUG if debug else logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging initialized (level={logging.getLevelName(level)}, file={log_file or '-'})"
    )
    return handlers
