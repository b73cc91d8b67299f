"""Advisory lock serialising store and session updates across invocations."""

import fcntl
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .constants import FILE_MODE, LOCK_FILE
from .errors import StorageError
from .platform import chown_to_user, ensure_dir

log = logging.getLogger(__name__)


@contextmanager
def data_dir_lock(data_dir: Path) -> Iterator[None]:
    """Hold an exclusive flock on <data_dir>/.lock for the duration of the block.

    Not reentrant: nested use within one process blocks forever, so callers
    take it around a single read-modify-write only.
    """
    try:
        ensure_dir(data_dir)
        lock_path = data_dir / LOCK_FILE
        fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, FILE_MODE)
        chown_to_user(lock_path)
    except OSError as e:
        raise StorageError(f"Cannot open lock file in {data_dir}: {e}") from e

    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        log.debug(f"Acquired lock on {data_dir}")
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)
