"""Connection lifecycle: connect, disconnect, toggle and status.

The controller drives one external client process per machine. A connect
starts ``<client> -transport <key>``, waits up to the grace period and counts
the connection as established if the process is still alive. The outcome is
recorded in the session file so later invocations can report it and
reconnect to the same key.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from .constants import (
    STATUS_CONNECTED,
    STATUS_DISCONNECTED,
    STATUS_NAMES,
    STATUS_SUSPENDED,
    TRANSPORT_FLAG,
)
from .errors import ConnectFailed, SSConnectError, UnknownKey
from .platform import ProcessManager
from .session import SessionStore
from .settings import Settings
from .store import AccessKey, KeyStore

log = logging.getLogger(__name__)

# Report outcomes
OUTCOME_CONNECTED = "connected"
OUTCOME_DISCONNECTED = "disconnected"
OUTCOME_UNKNOWN = "unknown"

# "2024/01/31 12:00:00.123 [ERROR] message", "ERROR: message", ...
RE_LOG_PREFIX = re.compile(
    r'^(?:\d{4}[/-]\d{2}[/-]\d{2}[ T]?)?'
    r'(?:\d{2}:\d{2}:\d{2}(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?)?\s*'
    r'(?:\[(?:TRACE|DEBUG|INFO|WARN|WARNING|ERROR|FATAL|PANIC)\]:?'
    r'|(?:TRACE|DEBUG|INFO|WARN|WARNING|ERROR|FATAL|PANIC):)?\s*',
    re.IGNORECASE,
)
# Go slog text handler: time=... level=ERROR msg="message"
RE_SLOG_MSG = re.compile(r'\bmsg=(?:"((?:[^"\\]|\\.)*)"|(\S+))')


@dataclass(frozen=True)
class ConnectResult:
    key: AccessKey
    position: int


@dataclass(frozen=True)
class DisconnectResult:
    previous: Optional[str]
    status: int
    signalled: int = 0


@dataclass(frozen=True)
class StatusReport:
    code: int
    key_name: Optional[str] = None
    key: Optional[AccessKey] = None
    position: int = 0

    @property
    def outcome(self) -> str:
        if self.key is None:
            return OUTCOME_UNKNOWN
        if self.code == STATUS_CONNECTED:
            return OUTCOME_CONNECTED
        return OUTCOME_DISCONNECTED

    @property
    def status_name(self) -> str:
        return STATUS_NAMES[self.code]


def strip_log_prefix(line: str) -> str:
    """Remove timestamp and severity from a client log line."""
    line = line.strip()
    match = RE_SLOG_MSG.search(line)
    if match and line.startswith(("time=", "level=")):
        if match.group(1) is not None:
            return match.group(1).replace('\\"', '"')
        return match.group(2)
    return RE_LOG_PREFIX.sub("", line, count=1).strip()


def last_diagnostic(log_path: Path) -> Optional[str]:
    """Get the last non-empty line the client wrote, without its prefix."""
    try:
        text = log_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    for line in reversed(text.splitlines()):
        if line.strip():
            return strip_log_prefix(line) or line.strip()
    return None


class ConnectionController:
    """Connects and disconnects the client and keeps the session file current."""

    def __init__(
            self,
            settings: Settings,
            store: Optional[KeyStore] = None,
            sessions: Optional[SessionStore] = None,
            processes: Optional[ProcessManager] = None,
    ):
        self.settings = settings
        self.store = store or KeyStore(settings.storage_file)
        self.sessions = sessions or SessionStore(settings.session_file)
        self.processes = processes or ProcessManager()

    def _resolve(self, identifier: Optional[str]) -> Tuple[int, AccessKey]:
        """Resolve the key to connect to.

        Without an identifier the key name of the last session is resolved
        like any other identifier, and without a session the first stored
        key is used.

        Raises:
            UnknownKey: If nothing resolves
        """
        if identifier:
            position = self.store.find(identifier)
            if position is None:
                raise UnknownKey(identifier)
            return position, self.store.keys()[position - 1]

        session = self.sessions.read()
        if session:
            position = self.store.find(session.key_name)
            if position is None:
                raise UnknownKey(session.key_name)
            return position, self.store.keys()[position - 1]

        keys = self.store.keys()
        if not keys:
            raise UnknownKey("")
        return 1, keys[0]

    def disconnect(self, suspend: bool = False) -> DisconnectResult:
        """Stop the client and record the session as disconnected or suspended.

        Args:
            suspend: Record the session as suspended (to be resumed later)
                instead of disconnected. Only applies if a key was active.

        Returns:
            DisconnectResult naming the previously active key, if any
        """
        session = self.sessions.read()
        previous = session.key_name if session else None

        signalled = self.processes.terminate(self.settings.client)
        if not signalled:
            log.info(f"No running {self.settings.client} process")

        status = STATUS_SUSPENDED if suspend and previous else STATUS_DISCONNECTED
        self.sessions.write(status, previous or "")
        log.info(f"Disconnected ({STATUS_NAMES[status]}, key {previous!r})")
        return DisconnectResult(previous, status, signalled)

    def connect(self, identifier: Optional[str] = None) -> ConnectResult:
        """Connect with a key given by name or position.

        Args:
            identifier: Key name or 1-based position; defaults to the key of
                the last session, then to the first key.

        Returns:
            ConnectResult with the key now in use

        Raises:
            UnknownKey: If the identifier does not resolve
            ConnectFailed: If the client cannot start or exits during the
                grace period
        """
        position, key = self._resolve(identifier)

        try:
            self.disconnect()
        except SSConnectError as e:
            log.warning(f"Implicit disconnect failed: {e}")

        client = self.settings.client
        cmd = [client, TRANSPORT_FLAG, key.transport]
        log.info(f"Starting {client} for key {key.name!r} ({key.host})")

        try:
            process = self.processes.start(cmd, self.settings.client_log)
        except FileNotFoundError as e:
            raise ConnectFailed(f"{client} not found in PATH") from e
        except OSError as e:
            raise ConnectFailed(f"Cannot start {client}: {e}") from e

        if not self.processes.wait_alive(process, self.settings.grace_period):
            message = last_diagnostic(self.settings.client_log)
            if not message:
                message = f"{client} exited with code {process.returncode}"
            log.error(f"{client} exited: {message}")
            raise ConnectFailed(message)

        self.processes.detach(process)
        self.sessions.write(STATUS_CONNECTED, key.name)
        log.info(f"Connected with key {key.name!r} (PID {process.pid})")
        return ConnectResult(key, position)

    def toggle(self) -> Union[ConnectResult, DisconnectResult]:
        """Disconnect if connected, otherwise reconnect to the last key."""
        if self.status().code == STATUS_CONNECTED:
            return self.disconnect()
        return self.connect()

    def status(self) -> StatusReport:
        """Report the last session, checked against the running client.

        A session recorded as connected whose client is no longer running is
        reported as disconnected, and so is a session whose key has been
        removed from the store.
        """
        session = self.sessions.read()
        if session is None:
            return StatusReport(STATUS_DISCONNECTED)

        position = self.store.find(session.key_name)
        if position is None:
            log.warning(f"Session key {session.key_name!r} is no longer stored")
            return StatusReport(STATUS_DISCONNECTED, session.key_name)
        key = self.store.keys()[position - 1]

        code = session.status
        if code == STATUS_CONNECTED and not self.processes.is_running(self.settings.client):
            log.warning(f"Session says connected but {self.settings.client} is not running")
            code = STATUS_DISCONNECTED
        return StatusReport(code, session.key_name, key, position)
