"""ss-connect - Shadowsocks access key manager.

Stores named ss:// access keys and drives an external client to connect
through them.
"""

from .codec import encode_name, decode_name
from .connect import (
    ConnectionController,
    ConnectResult,
    DisconnectResult,
    StatusReport,
)
from .constants import (
    STATUS_CONNECTED,
    STATUS_DISCONNECTED,
    STATUS_SUSPENDED,
    VERSION,
)
from .errors import (
    SSConnectError,
    InvalidTransport,
    UnknownKey,
    ConnectFailed,
    StorageError,
    PermissionDenied,
)
from .formatter import render
from .session import Session, SessionStore
from .settings import Settings
from .store import AccessKey, KeyStore

__version__ = VERSION

__all__ = [
    # Codec
    "encode_name",
    "decode_name",
    # Store
    "AccessKey",
    "KeyStore",
    "render",
    # Session
    "Session",
    "SessionStore",
    "STATUS_CONNECTED",
    "STATUS_DISCONNECTED",
    "STATUS_SUSPENDED",
    # Connect
    "ConnectionController",
    "ConnectResult",
    "DisconnectResult",
    "StatusReport",
    "Settings",
    # Errors
    "SSConnectError",
    "InvalidTransport",
    "UnknownKey",
    "ConnectFailed",
    "StorageError",
    "PermissionDenied",
]
