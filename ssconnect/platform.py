"""Platform helpers: data paths, privileges, files and client processes."""

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import List, Sequence

import psutil

from .constants import APP_NAME, DIR_MODE, FILE_MODE

log = logging.getLogger(__name__)


# === Paths ===

def get_user_home() -> Path:
    """Get the home directory of the invoking user, even under sudo."""
    real_user = os.environ.get("SUDO_USER")
    if real_user and real_user != "root":
        import pwd
        try:
            return Path(pwd.getpwnam(real_user).pw_dir)
        except KeyError:
            pass
    return Path.home()


def get_data_dir() -> Path:
    """Get the default data directory (~/.config/ss-connect)."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home and not os.environ.get("SUDO_USER"):
        return Path(config_home) / APP_NAME
    return get_user_home() / ".config" / APP_NAME


# === Privileges ===

def is_root() -> bool:
    """Check if running with root privileges."""
    return os.geteuid() == 0


# === Files ===

def ensure_dir(path: Path) -> None:
    """Create a directory with owner-only permissions if it does not exist."""
    if not path.is_dir():
        path.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        os.chmod(path, DIR_MODE)
        chown_to_user(path)


def chown_to_user(path: Path) -> None:
    """Hand a file created under sudo back to the invoking user."""
    real_user = os.environ.get("SUDO_USER")
    if not real_user or not is_root():
        return
    import pwd
    try:
        pw = pwd.getpwnam(real_user)
        os.chown(path, pw.pw_uid, pw.pw_gid)
    except (KeyError, OSError) as e:
        log.debug(f"Cannot chown {path} to {real_user}: {e}")


def write_file(path: Path, content: str) -> None:
    """Replace a file's content in one step with owner-only permissions.

    Writes to a temporary file in the same directory, then renames it over
    the target so readers never see a partial file.
    """
    ensure_dir(path.parent)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(tmp_name, FILE_MODE)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    chown_to_user(path)


# === Process Management ===

class ProcessManager:
    """Starts, probes and stops the external client process."""

    def find_processes(self, name: str) -> List[psutil.Process]:
        """Find running processes by exact name.

        Args:
            name: Process name (e.g., 'outline-cli')

        Returns:
            List of matching processes, possibly empty
        """
        name = os.path.basename(name)
        found = []
        for proc in psutil.process_iter(["name", "pid"]):
            try:
                if proc.info["name"] == name:
                    found.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return found

    def is_running(self, name: str) -> bool:
        """Check whether any process with the given name is alive."""
        return any(self.is_process_running(proc.pid) for proc in self.find_processes(name))

    def terminate(self, name: str) -> int:
        """Send SIGTERM to every process with the given name.

        Does not wait for the processes to exit.

        Returns:
            Number of processes signalled
        """
        signalled = 0
        for proc in self.find_processes(name):
            try:
                proc.terminate()
                signalled += 1
                log.info(f"Sent SIGTERM to {proc.info['name']} (PID {proc.pid})")
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                log.warning(f"Not allowed to terminate PID {proc.pid}")
        return signalled

    def start(self, cmd: Sequence[str], log_path: Path) -> subprocess.Popen:
        """Start a detached process with stdout/stderr going to log_path.

        Raises:
            FileNotFoundError: If the executable is not in PATH
        """
        ensure_dir(log_path.parent)
        with open(log_path, "w", encoding="utf-8") as sink:
            os.chmod(log_path, FILE_MODE)
            chown_to_user(log_path)
            return subprocess.Popen(
                list(cmd),
                stdin=subprocess.DEVNULL,
                stdout=sink,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )

    @staticmethod
    def detach(process: subprocess.Popen) -> None:
        """Stop tracking a client that is meant to outlive ss-connect.

        Popen warns when it is collected while its child still runs. Once
        ss-connect exits the client is reparented and reaped by init, so the
        handle is marked as finished. Signal it by name afterwards, not
        through the handle.
        """
        process.returncode = 0

    def wait_alive(self, process: subprocess.Popen, timeout: float) -> bool:
        """Wait up to timeout seconds for a process to exit.

        Returns early if the process dies. Otherwise probes once more after
        the timeout.

        Returns:
            True if the process is still running after the wait
        """
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return self.is_process_running(process.pid)
        return False

    @staticmethod
    def is_process_running(pid: int) -> bool:
        """Check if a process is running.

        Args:
            pid: Process ID

        Returns:
            True if running
        """
        try:
            proc = psutil.Process(pid)
            return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False

