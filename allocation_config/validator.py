"""
Configuration Validator (``allocation_config.validator``).

Responsibility
--------------
Checks a parsed ``LedgerConfiguration`` before it is handed to the kernel.
Errors block ``get_active_config()``; warnings are logged and returned for
review.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> configuration
  MUST NOT be used.
* Validation warnings  -> configuration may be used but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from allocation_config.schema import LedgerConfiguration
from allocation_kernel.domain.allocation import MAX_STORED_INTEGER

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_MAX_NAME_LENGTH = 128


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: LedgerConfiguration) -> ConfigValidationResult:
    """Validate a configuration; never raises."""
    result = ConfigValidationResult()

    if not config.config_id:
        result.add_error("config_id must be non-empty")
    if config.version < 1:
        result.add_error(f"version must be >= 1, got {config.version}")

    _validate_identities(config, result)
    _validate_limits(config, result)

    if config.log_level not in _LOG_LEVELS:
        result.add_error(
            f"log level {config.log_level!r} is not one of {sorted(_LOG_LEVELS)}"
        )
    if not config.database_url:
        result.add_error("database url must be non-empty")

    return result


def _validate_identities(config: LedgerConfiguration, result: ConfigValidationResult) -> None:
    if len(config.administrator) > _MAX_NAME_LENGTH:
        result.add_error(f"administrator longer than {_MAX_NAME_LENGTH} characters")
    if config.emergency_contact is None:
        result.add_warning("no emergency_contact; the administrator will be used")
    elif config.emergency_contact == config.administrator:
        result.add_warning("emergency_contact is the administrator")
    elif len(config.emergency_contact) > _MAX_NAME_LENGTH:
        result.add_error(f"emergency_contact longer than {_MAX_NAME_LENGTH} characters")


def _validate_limits(config: LedgerConfiguration, result: ConfigValidationResult) -> None:
    for name in (
        "global_cap",
        "request_expiry_window",
        "price_history_capacity",
        "block_interval_seconds",
    ):
        value = getattr(config, name)
        if value <= 0:
            result.add_error(f"{name} must be positive, got {value}")
        elif value > MAX_STORED_INTEGER:
            result.add_error(f"{name} must be at most {MAX_STORED_INTEGER}, got {value}")
