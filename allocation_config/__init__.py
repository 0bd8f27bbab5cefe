"""
allocation_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component may read configuration
    files directly.  Returns a frozen ``LedgerConfiguration``; the bridges
    in ``allocation_config.bridges`` translate it into kernel inputs.

Architecture position:
    Configuration -- YAML-driven, validated before use.  This package sits
    above ``allocation_kernel``.  The kernel MUST NEVER import from
    ``allocation_config``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` -- a required key is missing.
    - ``ValueError`` -- parse or validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``allocation_config_loaded`` log entry with the config id, version and
    checksum, tying every ledger instance to the exact configuration that
    governed it.
"""

from __future__ import annotations

from pathlib import Path

from allocation_config.loader import load_yaml_file, parse_configuration
from allocation_config.schema import LedgerConfiguration
from allocation_config.validator import validate_configuration
from allocation_kernel.logging_config import get_logger

_logger = get_logger("config")

# Packaged configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_PATH = _DEFAULT_CONFIG_DIR / "default.yaml"


def get_active_config(path: Path | str | None = None) -> LedgerConfiguration:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to the packaged
            ``allocation_config/sets/default.yaml``.

    Returns:
        A validated, frozen ``LedgerConfiguration``.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required key is missing.
        ValueError: If parsing or validation fails.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_configuration(load_yaml_file(config_path))

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("allocation_config_warning", extra={"detail": warning})

    _logger.info(
        "allocation_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(config_path),
            "global_cap": config.global_cap,
            "request_expiry_window": config.request_expiry_window,
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "LedgerConfiguration",
    "get_active_config",
]
