"""
ss-connect - Shadowsocks access key manager

Stores named ss:// access keys and connects through them with an external
client (outline-cli by default, started as `<client> -transport <key>`).

Usage:
    ss-connect add <transport> [name]   (add a key, or replace one by name)
    ss-connect remove <name|index>      (delete a key)
    ss-connect list [-f TEMPLATE]       (list keys)
    ss-connect connect [name|index]     (connect, default: last used key)
    ss-connect disconnect [-s]          (disconnect, -s to suspend)
    ss-connect toggle                   (connect or disconnect)
    ss-connect status                   (exit code 0 connected, 1 disconnected, 2 suspended)

Templates for `list -f` accept %index, %name, %ip and %port.

An index made only of digits always means a position: a key named "3" is
removed by `remove 3` only if it is the third key.
"""

import argparse
import logging
import sys
from typing import Optional

from .connect import (
    OUTCOME_CONNECTED,
    ConnectionController,
    ConnectResult,
)
from .constants import (
    APP_NAME,
    ICON_CONNECTED,
    ICON_DISCONNECTED,
    STATUS_SUSPENDED,
    VERSION,
)
from .errors import PermissionDenied, SSConnectError, UnknownKey
from .formatter import DEFAULT_TEMPLATE, render
from .notifications import NotificationManager
from .platform import chown_to_user, ensure_dir, is_root
from .settings import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

PRIVILEGED_COMMANDS = {"connect", "disconnect", "toggle"}

# Commands that write to the data directory and may create it
WRITING_COMMANDS = {"add", "connect", "disconnect", "toggle"}

log = logging.getLogger(__name__)


class Reporter:
    """Routes user-facing messages to stdout/stderr, notifications, or nowhere."""

    def __init__(self, quiet: bool = False, notifier: Optional[NotificationManager] = None):
        self.quiet = quiet
        self.notifier = notifier

    def success(self, message: str, icon: str = ICON_CONNECTED) -> None:
        if self.quiet:
            return
        if self.notifier:
            self.notifier.show(APP_NAME, message, icon)
        else:
            print(message)

    def failure(self, message: str) -> None:
        if self.quiet:
            return
        if self.notifier:
            self.notifier.error(message)
        else:
            print(f"{APP_NAME}: {message}", file=sys.stderr)


def setup_logging(settings: Settings, verbose: bool = False, create_dir: bool = False) -> None:
    """Log to <data-dir>/ss-connect.log, and to stderr when verbose.

    The data directory is only created when create_dir is set; read-only
    commands log to the file only if it already exists.
    """
    handlers = []
    try:
        if create_dir:
            ensure_dir(settings.data_dir)
        if settings.data_dir.is_dir():
            handlers.append(logging.FileHandler(settings.app_log, encoding="utf-8"))
            chown_to_user(settings.app_log)
    except OSError as e:
        if verbose:
            print(f"{APP_NAME}: cannot open log file: {e}", file=sys.stderr)
    if verbose:
        handlers.append(logging.StreamHandler())
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


# === Commands ===

def cmd_add(args, controller: ConnectionController, reporter: Reporter) -> int:
    key, position, replaced = controller.store.add(args.transport, args.name)
    action = "Updated" if replaced else "Added"
    reporter.success(f"{action} key {position}: {render(DEFAULT_TEMPLATE, key, position)}")
    return 0


def cmd_remove(args, controller: ConnectionController, reporter: Reporter) -> int:
    if not controller.store.remove(args.identifier):
        raise UnknownKey(args.identifier)
    reporter.success(f"Removed key {args.identifier}")
    return 0


def cmd_list(args, controller: ConnectionController, reporter: Reporter) -> int:
    for line in controller.store.list(args.template):
        print(line)
    return 0


def _report_connected(result: ConnectResult, reporter: Reporter) -> int:
    reporter.success(f"Connected to {render(DEFAULT_TEMPLATE, result.key, result.position)}")
    return 0


def _report_disconnected(result, reporter: Reporter) -> int:
    if result.status == STATUS_SUSPENDED:
        reporter.success(f"Suspended {result.previous}", ICON_DISCONNECTED)
    elif result.previous:
        reporter.success(f"Disconnected from {result.previous}", ICON_DISCONNECTED)
    else:
        reporter.success("Disconnected", ICON_DISCONNECTED)
    return 0


def cmd_connect(args, controller: ConnectionController, reporter: Reporter) -> int:
    return _report_connected(controller.connect(args.identifier), reporter)


def cmd_disconnect(args, controller: ConnectionController, reporter: Reporter) -> int:
    return _report_disconnected(controller.disconnect(suspend=args.suspend), reporter)


def cmd_toggle(args, controller: ConnectionController, reporter: Reporter) -> int:
    result = controller.toggle()
    if isinstance(result, ConnectResult):
        return _report_connected(result, reporter)
    return _report_disconnected(result, reporter)


def cmd_status(args, controller: ConnectionController, reporter: Reporter) -> int:
    report = controller.status()
    if report.outcome == OUTCOME_CONNECTED:
        reporter.success(f"Connected to {render(DEFAULT_TEMPLATE, report.key, report.position)}")
    elif report.key is not None:
        description = render(DEFAULT_TEMPLATE, report.key, report.position)
        reporter.success(f"{report.status_name.capitalize()} (last key: {description})", ICON_DISCONNECTED)
    else:
        reporter.success("Disconnected (unknown key)", ICON_DISCONNECTED)
    return report.code


# === Entry point ===

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Manage Shadowsocks access keys and the VPN connection using them",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Print nothing, only set the exit code")
    parser.add_argument("-n", "--notify", action="store_true", help="Show messages as desktop notifications")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print debug log to stderr")
    parser.add_argument("--data-dir", help="Directory holding keys and session (default: ~/.config/ss-connect)")
    parser.add_argument("--client", help="Client executable started with -transport (default: outline-cli)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.set_defaults(func=cmd_status, command="status")

    sub = parser.add_subparsers(metavar="command")

    add = sub.add_parser("add", help="Add an access key, or replace the key with the same name")
    add.add_argument("transport", help="ss:// access key")
    add.add_argument("name", nargs="?", help="Key name (default: server address)")
    add.set_defaults(func=cmd_add, command="add")

    remove = sub.add_parser("remove", aliases=["rm"], help="Remove a key by name or index")
    remove.add_argument("identifier", help="Key name or 1-based index")
    remove.set_defaults(func=cmd_remove, command="remove")

    list_ = sub.add_parser("list", aliases=["ls"], help="List stored keys")
    list_.add_argument("-f", "--format", dest="template", help="Line template, e.g. '%%index: %%name'")
    list_.set_defaults(func=cmd_list, command="list")

    connect = sub.add_parser("connect", help="Connect with a key (default: last used)")
    connect.add_argument("identifier", nargs="?", help="Key name or 1-based index")
    connect.set_defaults(func=cmd_connect, command="connect")

    disconnect = sub.add_parser("disconnect", help="Disconnect")
    disconnect.add_argument("-s", "--suspend", action="store_true", help="Mark the session as suspended")
    disconnect.set_defaults(func=cmd_disconnect, command="disconnect")

    toggle = sub.add_parser("toggle", help="Disconnect if connected, otherwise reconnect")
    toggle.set_defaults(func=cmd_toggle, command="toggle")

    status = sub.add_parser("status", help="Show connection status")
    status.set_defaults(func=cmd_status, command="status")

    return parser


def main(argv=None, controller: Optional[ConnectionController] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env().override(args.data_dir, args.client)
    setup_logging(settings, args.verbose, create_dir=args.command in WRITING_COMMANDS)

    notifier = NotificationManager() if args.notify else None
    reporter = Reporter(quiet=args.quiet, notifier=notifier)
    controller = controller or ConnectionController(settings)

    try:
        if args.command in PRIVILEGED_COMMANDS and not is_root():
            raise PermissionDenied(f"'{args.command}' must be run as root")
        return args.func(args, controller, reporter)
    except SSConnectError as e:
        log.error(f"{args.command} failed: {e}")
        reporter.failure(str(e))
        return 1
    except OSError as e:
        log.error(f"{args.command} failed: {e}")
        reporter.failure(f"I/O error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
