from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path

import portalocker

from gloss.constants import LOCK_ERROR_CODE, WRITE_LOCK_FILENAME


class LockTimeoutError(TimeoutError):
    """Raised when the translation write lock cannot be acquired in time.

    The caller may retry; nothing has been written when this is raised.
    """

    code = LOCK_ERROR_CODE

    def __init__(self, lock_path: Path, timeout_seconds: float) -> None:
        super().__init__(
            f"Timed out after {timeout_seconds:g}s waiting for write lock: {lock_path}"
        )
        self.lock_path = lock_path
        self.timeout_seconds = timeout_seconds


def write_lock_path(translations_dir: Path) -> Path:
    return translations_dir / WRITE_LOCK_FILENAME


@contextmanager
def acquire_write_lock(
    translations_dir: Path,
    *,
    timeout_seconds: float,
    check_interval_seconds: float,
):
    lock_path = write_lock_path(translations_dir)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = portalocker.Lock(
        str(lock_path),
        mode="a+",
        timeout=timeout_seconds,
        check_interval=check_interval_seconds,
        fail_when_locked=False,
    )
    try:
        lock.acquire()
    except portalocker.exceptions.LockException as exc:
        raise LockTimeoutError(lock_path, timeout_seconds) from exc
    try:
        yield lock
    finally:
        lock.release()
