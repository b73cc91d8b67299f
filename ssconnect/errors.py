"""Errors raised by ss-connect operations."""


class SSConnectError(Exception):
    """Base class for all ss-connect failures."""
    pass


class InvalidTransport(SSConnectError):
    """Transport string does not look like an ss:// access key."""

    def __init__(self, transport: str):
        super().__init__("Invalid access key. Expected ss://<credentials>@<host>:<port>")
        self.transport = transport


class UnknownKey(SSConnectError):
    """Identifier does not resolve to a stored key."""

    def __init__(self, identifier: str):
        if identifier:
            message = f"Unknown key: {identifier}"
        else:
            message = "No keys stored. Add one with: ss-connect add <transport> [name]"
        super().__init__(message)
        self.identifier = identifier


class ConnectFailed(SSConnectError):
    """Client process could not be started or died during the grace period."""
    pass


class StorageError(SSConnectError, OSError):
    """Store or session file could not be read or written."""
    pass


class PermissionDenied(SSConnectError):
    """Command requires root privileges."""
    pass
