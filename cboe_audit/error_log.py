"""
Append-only error log shared by every worker.

One line per data error, written and flushed under a lock so concurrent
workers never interleave partial lines. Messages are also kept in memory
so a run can be summarized (and tested) without re-reading the file.
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)


class ErrorLog:

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._messages: List[str] = []
        self._handle = None
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = open(self.path, "w", encoding="utf-8")

    def append(self, message: str) -> None:
        line = message.replace("\n", " ").rstrip()
        with self._lock:
            self._messages.append(line)
            if self._handle is not None:
                self._handle.write(line + "\n")
                self._handle.flush()

    @property
    def messages(self) -> List[str]:
        with self._lock:
            return list(self._messages)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def close(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None
                logger.debug("error log closed: %s (%d lines)", self.path, len(self._messages))

    def __enter__(self) -> "ErrorLog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
