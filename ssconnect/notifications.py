"""Desktop notifications via notify-send (Linux) or osascript (macOS)."""

import logging
import os
import shutil
import subprocess
import sys

from .constants import APP_TITLE, ICON_CONNECTED, ICON_ERROR

log = logging.getLogger(__name__)

IS_MAC = sys.platform == "darwin"


class NotificationManager:
    """Sends desktop notifications. Failures are logged, never raised."""

    def __init__(self, enabled: bool = True):
        self._notifications_enabled = enabled

    def _env(self) -> dict:
        """Environment for reaching the user's session bus when run via sudo."""
        env = dict(os.environ)
        uid = os.environ.get("SUDO_UID")
        if uid and "DBUS_SESSION_BUS_ADDRESS" not in env:
            env["DBUS_SESSION_BUS_ADDRESS"] = f"unix:path=/run/user/{uid}/bus"
        return env

    def _command(self, title: str, message: str, icon: str, duration_ms: int) -> list:
        if IS_MAC:
            script = f'display notification {_applescript_quote(message)} with title {_applescript_quote(title)}'
            return ["osascript", "-e", script]

        cmd = ["notify-send", "--app-name", APP_TITLE, "--expire-time", str(duration_ms)]
        if icon:
            cmd.extend(["--icon", icon])
        cmd.extend([title, message])

        # notify-send must talk to the desktop user's bus, not root's
        sudo_user = os.environ.get("SUDO_USER")
        if sudo_user and os.geteuid() == 0 and shutil.which("runuser"):
            cmd = ["runuser", "-u", sudo_user, "--"] + cmd
        return cmd

    def show(
        self,
        title: str,
        message: str,
        icon: str = ICON_CONNECTED,
        duration_ms: int = 5000
    ) -> bool:
        """Show a desktop notification.

        Args:
            title: Notification title
            message: Notification message
            icon: Icon theme name (ignored on macOS)
            duration_ms: How long to show the notification (milliseconds)

        Returns:
            True if the notification was handed to the desktop
        """
        if not self._notifications_enabled:
            return False

        cmd = self._command(title, message, icon, duration_ms)
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=5, env=self._env())
        except (OSError, subprocess.TimeoutExpired) as e:
            log.warning(f"Cannot show notification: {e}")
            return False
        if result.returncode != 0:
            log.warning(f"{cmd[0]} failed: {result.stderr.decode(errors='replace').strip()}")
            return False
        return True

    def error(self, message: str, title: str = "VPN Error") -> bool:
        """Show error notification."""
        return self.show(title, message, ICON_ERROR, duration_ms=8000)


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
