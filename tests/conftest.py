"""Shared fixtures: a throwaway data directory and a fake client process."""

from pathlib import Path

import pytest

from ssconnect.connect import ConnectionController
from ssconnect.session import SessionStore
from ssconnect.settings import Settings
from ssconnect.store import KeyStore

GENEVA = "ss://AAA@1.2.3.4:8388"
ZURICH = "ss://Y2hhY2hhMjA6c2VjcmV0@zurich.example.com:443/?outline=1#Zurich"


class FakeProcess:
    def __init__(self, pid: int, returncode=None):
        self.pid = pid
        self.returncode = returncode


class FakeProcessManager:
    """Stands in for ProcessManager; the 'client' lives as long as we say."""

    def __init__(self):
        self.alive = True
        self.running = False
        self.log_lines = []
        self.start_error = None
        self.started = []
        self.terminate_calls = 0
        self.detached = []

    def terminate(self, name: str) -> int:
        self.terminate_calls += 1
        signalled = 1 if self.running else 0
        self.running = False
        return signalled

    def is_running(self, name: str) -> bool:
        return self.running

    def start(self, cmd, log_path: Path) -> FakeProcess:
        if self.start_error:
            raise self.start_error
        self.started.append(list(cmd))
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.write_text("".join(f"{line}\n" for line in self.log_lines))
        self.running = self.alive
        return FakeProcess(4242, None if self.alive else 1)

    def wait_alive(self, process: FakeProcess, timeout: float) -> bool:
        return self.alive

    def detach(self, process: FakeProcess) -> None:
        self.detached.append(process.pid)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(data_dir=tmp_path / "data", client="fake-client", grace_period=0.1)


@pytest.fixture
def store(settings) -> KeyStore:
    return KeyStore(settings.storage_file)


@pytest.fixture
def sessions(settings) -> SessionStore:
    return SessionStore(settings.session_file)


@pytest.fixture
def processes() -> FakeProcessManager:
    return FakeProcessManager()


@pytest.fixture
def controller(settings, store, sessions, processes) -> ConnectionController:
    return ConnectionController(settings, store=store, sessions=sessions, processes=processes)
