"""Process-wide, append-only debug sink.

The sink is opened once at process start and handed to every apply.  Each
message goes out as a single ``os.write`` on an ``O_APPEND`` descriptor, so
concurrent applies may interleave whole messages but never tear one.  When no
file is configured the messages go to the structlog debug channel instead.
Writes are best effort: a failing write never affects the caller.
"""

from __future__ import annotations

import os

from provisioner.utils.logging import get_logger

log = get_logger(__name__)


class DebugSink:
    """Append-only debug channel shared by concurrent applies."""

    def __init__(self, path: str = "") -> None:
        self.path = path
        self._fd: int | None = None
        if path:
            try:
                self._fd = os.open(path, os.O_APPEND | os.O_CREAT | os.O_WRONLY, 0o600)
            except OSError as exc:
                log.warning("debug_log.open_failed", path=path, error=str(exc))

    @property
    def is_file(self) -> bool:
        return self._fd is not None

    def write(self, message: str, *args: object) -> None:
        text = message % args if args else message
        if self._fd is None:
            log.debug("debug_log", message=text.rstrip("\n"))
            return
        try:
            os.write(self._fd, text.encode("utf-8", errors="replace"))
        except OSError:
            pass

    def close(self) -> None:
        if self._fd is not None:
            try:
                os.close(self._fd)
            except OSError:
                pass
            self._fd = None
