"""Process log destination that can be reopened on request.

Modules log through ``logging.getLogger(__name__)`` and never configure
handlers themselves. The server bootstrap owns one LogSink, which installs the
single handler on the root logger, so uvicorn's records end up in the same
place as ours.

With a log directory configured the sink appends to ``scryptServer.log`` in
it; ``reopen()`` closes and reopens that file, which lets an external log
rotation tool move the file away and signal the process (SIGHUP). Without a
log directory the sink writes to stderr.
"""

import logging
import sys
import threading
from pathlib import Path

LOG_FILE_NAME = "scryptServer.log"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(__name__)


class LogSink:
    """
    Owns the root logger's handler.

    Usage:
        sink = LogSink(Path("/var/log/scrypt"), level="INFO")
        sink.open()
        ...
        sink.reopen()   # after log rotation
        sink.close()
    """

    def __init__(self, log_path: Path | None = None, level: str | int = "INFO"):
        self._log_path = log_path
        self._level = level
        self._handler: logging.Handler | None = None
        self._lock = threading.Lock()

    @property
    def log_file(self) -> Path | None:
        """Absolute path of the log file, None when logging to stderr."""
        if self._log_path is None:
            return None
        return (self._log_path / LOG_FILE_NAME).resolve()

    def open(self) -> None:
        """Install the handler. Calling it again replaces the handler."""
        with self._lock:
            self._install()
        logger.info("Log file opened")

    def reopen(self) -> None:
        """Close the current destination and open it again."""
        self.open()

    def close(self) -> None:
        """Remove and close the handler; safe to call more than once."""
        with self._lock:
            self._remove()

    def _install(self) -> None:
        # Caller holds self._lock
        self._remove()

        log_file = self.log_file
        if log_file is None:
            handler: logging.Handler = logging.StreamHandler(sys.stderr)
        else:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(self._level)
        self._handler = handler

    def _remove(self) -> None:
        # Caller holds self._lock
        if self._handler is None:
            return
        logging.getLogger().removeHandler(self._handler)
        self._handler.close()
        self._handler = None
