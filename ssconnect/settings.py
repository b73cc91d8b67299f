"""Runtime settings, resolved once at startup."""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from .constants import (
    APP_LOG_FILE,
    CLIENT_LOG_FILE,
    DEFAULT_CLIENT,
    DEFAULT_GRACE_PERIOD,
    ENV_CLIENT,
    ENV_GRACE,
    ENV_HOME,
    SESSION_FILE,
    STORAGE_FILE,
)
from .platform import get_data_dir

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    data_dir: Path = field(default_factory=get_data_dir)
    client: str = DEFAULT_CLIENT
    grace_period: float = DEFAULT_GRACE_PERIOD

    @property
    def storage_file(self) -> Path:
        return self.data_dir / STORAGE_FILE

    @property
    def session_file(self) -> Path:
        return self.data_dir / SESSION_FILE

    @property
    def client_log(self) -> Path:
        return self.data_dir / CLIENT_LOG_FILE

    @property
    def app_log(self) -> Path:
        return self.data_dir / APP_LOG_FILE

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Build settings from SS_CONNECT_* environment variables."""
        environ = os.environ if environ is None else environ
        settings = cls()

        home = environ.get(ENV_HOME)
        if home:
            settings = replace(settings, data_dir=Path(home).expanduser())

        client = environ.get(ENV_CLIENT)
        if client:
            settings = replace(settings, client=client)

        grace = environ.get(ENV_GRACE)
        if grace:
            try:
                settings = replace(settings, grace_period=max(0.0, float(grace)))
            except ValueError:
                log.warning(f"Ignoring invalid {ENV_GRACE}={grace!r}")

        return settings

    def override(self, data_dir: Optional[str] = None, client: Optional[str] = None) -> "Settings":
        """Apply command line overrides."""
        settings = self
        if data_dir:
            settings = replace(settings, data_dir=Path(data_dir).expanduser())
        if client:
            settings = replace(settings, client=client)
        return settings
