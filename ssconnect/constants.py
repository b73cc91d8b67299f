"""Constants and defaults for ss-connect."""

# Application info
APP_NAME = "ss-connect"
APP_TITLE = "Shadowsocks Connect"
VERSION = "1.0.0"

# Data directory layout
STORAGE_FILE = "storage"
SESSION_FILE = "session"
CLIENT_LOG_FILE = "client.log"
APP_LOG_FILE = "ss-connect.log"
LOCK_FILE = ".lock"

DIR_MODE = 0o700
FILE_MODE = 0o600

# External client
DEFAULT_CLIENT = "outline-cli"
TRANSPORT_FLAG = "-transport"
DEFAULT_GRACE_PERIOD = 2.0

# Session status codes (also used as exit codes by `status`)
STATUS_CONNECTED = 0
STATUS_DISCONNECTED = 1
STATUS_SUSPENDED = 2

STATUS_NAMES = {
    STATUS_CONNECTED: "connected",
    STATUS_DISCONNECTED: "disconnected",
    STATUS_SUSPENDED: "suspended",
}

# Environment overrides
ENV_HOME = "SS_CONNECT_HOME"
ENV_CLIENT = "SS_CONNECT_CLIENT"
ENV_GRACE = "SS_CONNECT_GRACE"

# Notification icons (freedesktop icon theme names)
ICON_CONNECTED = "network-vpn"
ICON_DISCONNECTED = "network-vpn-disconnected"
ICON_ERROR = "dialog-error"
