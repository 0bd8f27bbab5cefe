"""
Config -> Kernel Bridges.

Functions that convert a LedgerConfiguration into kernel-compatible
inputs.  These live in allocation_config (the producer) because the kernel
must NEVER import allocation_config.

Usage:
    from allocation_config.bridges import build_clock, build_ledger_settings

    config = get_active_config()
    settings = build_ledger_settings(config)
    ledger = AllocationLedgerService(session, settings, build_clock(config))
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from allocation_config.schema import LedgerConfiguration
from allocation_kernel.db.engine import init_engine_from_url
from allocation_kernel.domain.allocation import LedgerSettings
from allocation_kernel.domain.clock import SystemClock
from allocation_kernel.logging_config import configure_logging


def build_ledger_settings(config: LedgerConfiguration) -> LedgerSettings:
    """Kernel construction parameters from a configuration."""
    return LedgerSettings(
        administrator=config.administrator,
        default_global_cap=config.global_cap,
        default_emergency_contact=config.emergency_contact,
        request_expiry_window=config.request_expiry_window,
        price_history_capacity=config.price_history_capacity,
    )


def build_clock(config: LedgerConfiguration) -> SystemClock:
    return SystemClock(block_interval_seconds=config.block_interval_seconds)


def init_engine(config: LedgerConfiguration, echo: bool = False) -> Engine:
    """Initialize the kernel's engine from ``database_url``."""
    return init_engine_from_url(config.database_url, echo=echo)


def apply_logging(config: LedgerConfiguration) -> None:
    """Configure kernel logging at ``log_level`` (no-op if already configured)."""
    configure_logging(level=config.log_level)
