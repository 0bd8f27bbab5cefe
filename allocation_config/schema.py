"""
LedgerConfiguration schema.

The human-authored, reviewable source artifact for a ledger deployment.
YAML files are parsed into this type by the loader, checked by the
validator, and translated into kernel inputs by the bridges.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite://"
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class LedgerConfiguration:
    """Deployment parameters of one ledger instance."""

    config_id: str
    version: int
    administrator: str
    emergency_contact: str | None = None
    global_cap: int = 1_000_000_000
    request_expiry_window: int = 144
    price_history_capacity: int = 10
    database_url: str = DEFAULT_DATABASE_URL
    block_interval_seconds: int = 600
    log_level: str = DEFAULT_LOG_LEVEL

    # Integrity
    checksum: str = ""

    @property
    def effective_emergency_contact(self) -> str:
        return self.emergency_contact or self.administrator
