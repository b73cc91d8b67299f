"""Access key storage.

Keys live in a single file, one ``<encoded-name>=<transport>`` record per
line, in insertion order. A key is addressed either by name
(case-insensitive) or by its 1-based position. An identifier made only of
digits is always a position, so a key literally named "2" is only matched
by name when it is added again (:meth:`KeyStore.find_name`).
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .codec import SEPARATOR, decode_name, encode_name
from .constants import FILE_MODE
from .errors import InvalidTransport, StorageError
from .formatter import DEFAULT_ROW_TEMPLATE, format_table, render
from .locking import data_dir_lock
from .platform import chown_to_user, ensure_dir, write_file
from .validator import is_valid_transport, parse_endpoint

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessKey:
    name: str
    transport: str

    @property
    def host(self) -> Optional[str]:
        return parse_endpoint(self.transport)[0]

    def to_record(self) -> str:
        return f"{encode_name(self.name)}{SEPARATOR}{self.transport}"

    @classmethod
    def from_record(cls, line: str) -> "AccessKey":
        token, _, transport = line.partition(SEPARATOR)
        return cls(decode_name(token), transport)


class KeyListing:
    """Restartable view over the store, rendered one line per key.

    Every iteration re-reads the storage file.
    """

    def __init__(self, store: "KeyStore", template: Optional[str] = None):
        self._store = store
        self._template = template

    def __iter__(self) -> Iterator[str]:
        if self._template is not None:
            for position, key in enumerate(self._store.keys(), 1):
                yield render(self._template, key, position)
            return

        # Default layout needs every row before the column widths are known.
        rows = [
            render(DEFAULT_ROW_TEMPLATE, key, position)
            for position, key in enumerate(self._store.keys(), 1)
        ]
        yield from format_table(rows)


class KeyStore:
    """Ordered, name-indexed collection of access keys backed by one file."""

    def __init__(self, path: Path):
        self.path = path

    # Storage

    def ensure_exists(self) -> None:
        """Create the storage file and its directory (owner-only) if absent."""
        try:
            ensure_dir(self.path.parent)
            if not self.path.exists():
                fd = os.open(self.path, os.O_WRONLY | os.O_CREAT, FILE_MODE)
                os.close(fd)
                chown_to_user(self.path)
                log.info(f"Created key storage {self.path}")
        except OSError as e:
            raise StorageError(f"Cannot create key storage {self.path}: {e}") from e

    def _read_lines(self) -> List[str]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(f"Cannot read key storage {self.path}: {e}") from e
        return [line for line in text.splitlines() if line]

    def _write_lines(self, lines: List[str]) -> None:
        content = "".join(f"{line}\n" for line in lines)
        try:
            write_file(self.path, content)
        except OSError as e:
            raise StorageError(f"Cannot write key storage {self.path}: {e}") from e

    def keys(self) -> List[AccessKey]:
        """Get all keys in insertion order."""
        return [AccessKey.from_record(line) for line in self._read_lines()]

    def __len__(self) -> int:
        return len(self._read_lines())

    # Lookup

    @staticmethod
    def _find_name_in(lines: List[str], name: str) -> Optional[int]:
        wanted = name.casefold()
        for position, line in enumerate(lines, 1):
            if AccessKey.from_record(line).name.casefold() == wanted:
                return position
        return None

    def _find_in(self, lines: List[str], identifier: str) -> Optional[int]:
        if identifier and identifier.isdigit() and identifier.isascii():
            position = int(identifier)
            if 1 <= position <= len(lines):
                return position
            return None
        return self._find_name_in(lines, identifier)

    def find(self, identifier: str) -> Optional[int]:
        """Resolve an identifier to a 1-based position.

        All-digit identifiers are positions; anything else is a name,
        matched case-insensitively, first match wins.

        Returns:
            Position, or None if nothing matches
        """
        return self._find_in(self._read_lines(), identifier)

    def find_name(self, name: str) -> Optional[int]:
        """Resolve a key name to a position, never treating it as a position."""
        return self._find_name_in(self._read_lines(), name)

    def get(self, identifier: str) -> Optional[AccessKey]:
        """Get a key by name or position."""
        lines = self._read_lines()
        position = self._find_in(lines, identifier)
        if position is None:
            return None
        return AccessKey.from_record(lines[position - 1])

    # Mutation

    def add(self, transport: str, name: Optional[str] = None) -> Tuple[AccessKey, int, bool]:
        """Insert a key, or replace the transport of an existing one.

        Args:
            transport: ss:// access key
            name: Key name, defaults to the host the key points at

        Returns:
            (key, position, replaced)

        Raises:
            InvalidTransport: If transport is not an ss:// access key
        """
        if not is_valid_transport(transport):
            raise InvalidTransport(transport)
        if not name:
            name = parse_endpoint(transport)[0]

        key = AccessKey(name, transport)
        self.ensure_exists()

        with data_dir_lock(self.path.parent):
            lines = self._read_lines()
            position = self._find_name_in(lines, name)
            if position is None:
                lines.append(key.to_record())
                position = len(lines)
                replaced = False
            else:
                lines[position - 1] = key.to_record()
                replaced = True
            self._write_lines(lines)

        log.info(f"{'Replaced' if replaced else 'Added'} key {name!r} at position {position}")
        return key, position, replaced

    def remove(self, identifier: str) -> bool:
        """Delete a key by name or position.

        Returns:
            True if a key was deleted
        """
        if not self.path.exists():
            return False

        with data_dir_lock(self.path.parent):
            lines = self._read_lines()
            position = self._find_in(lines, identifier)
            if position is None:
                return False
            removed = AccessKey.from_record(lines.pop(position - 1))
            self._write_lines(lines)

        log.info(f"Removed key {removed.name!r} from position {position}")
        return True

    # Listing

    def list(self, template: Optional[str] = None) -> KeyListing:
        """List keys rendered through template (default: aligned table)."""
        return KeyListing(self, template)
