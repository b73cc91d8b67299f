"""Persistence of the last connection outcome.

The session file holds one line: ``<status-code> <encoded-key-name>``.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .codec import decode_name, encode_name
from .constants import STATUS_NAMES
from .errors import StorageError
from .locking import data_dir_lock
from .platform import write_file

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    status: int
    key_name: str

    @property
    def status_name(self) -> str:
        return STATUS_NAMES[self.status]


class SessionStore:
    """Reads and writes the single-record session file."""

    def __init__(self, path: Path):
        self.path = path

    def read(self) -> Optional[Session]:
        """Read the last session.

        Returns:
            Session, or None if the file is missing, empty or malformed

        Raises:
            StorageError: If the file exists but cannot be read
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Cannot read session {self.path}: {e}") from e

        line = text.split("\n", 1)[0]
        code, _, token = line.partition(" ")
        if not (code.isdigit() and code.isascii()) or int(code) not in STATUS_NAMES:
            if line:
                log.debug(f"Ignoring malformed session record {line!r}")
            return None

        name = decode_name(token)
        if not name:
            return None
        return Session(int(code), name)

    def write(self, status: int, key_name: str) -> None:
        """Overwrite the session record."""
        if status not in STATUS_NAMES:
            raise ValueError(f"Invalid session status: {status}")
        try:
            with data_dir_lock(self.path.parent):
                write_file(self.path, f"{status} {encode_name(key_name or '')}\n")
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"Cannot write session {self.path}: {e}") from e
        log.debug(f"Session is now {STATUS_NAMES[status]} ({key_name or 'no key'})")
