"""Process configuration read from the environment.

The CLI entry point builds one Settings and passes what each collaborator
needs; nothing below the entry point reads the environment itself.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ledgersync.domain.errors import ConfigurationError


DEFAULT_DB_PATH = str(Path.home() / ".ledgersync" / "ledgersync.db")


@dataclass(frozen=True)
class Settings:
    """Runtime settings."""

    db_path: str = DEFAULT_DB_PATH
    plaid_client_id: Optional[str] = None
    plaid_secret: Optional[str] = None
    plaid_env: str = "sandbox"
    plaid_timeout: float = 30.0
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from LEDGERSYNC_* and PLAID_* environment variables."""
        timeout = os.environ.get("PLAID_TIMEOUT")
        try:
            plaid_timeout = float(timeout) if timeout else 30.0
        except ValueError:
            raise ConfigurationError(f"Invalid PLAID_TIMEOUT '{timeout}'. Must be a number of seconds") from None
        return cls(
            db_path=os.environ.get("LEDGERSYNC_DB_PATH") or DEFAULT_DB_PATH,
            plaid_client_id=os.environ.get("PLAID_CLIENT_ID") or None,
            plaid_secret=os.environ.get("PLAID_SECRET") or None,
            plaid_env=(os.environ.get("PLAID_ENV") or "sandbox").lower(),
            plaid_timeout=plaid_timeout,
            log_level=(os.environ.get("LEDGERSYNC_LOG_LEVEL") or "WARNING").upper(),
        )

    @property
    def plaid_configured(self) -> bool:
        return bool(self.plaid_client_id and self.plaid_secret)
