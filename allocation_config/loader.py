"""
Configuration Loader (``allocation_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a frozen
``LedgerConfiguration``.  This is internal tooling: the single public
entry point for runtime config is ``allocation_config.get_active_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  No dependency on the kernel.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document, stored on the configuration for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``administrator`` or ``config_id``  -> ``KeyError``.
* Non-integer numeric field  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from allocation_config.schema import (
    DEFAULT_DATABASE_URL,
    DEFAULT_LOG_LEVEL,
    LedgerConfiguration,
)

_INTEGER_FIELDS = (
    "version",
    "global_cap",
    "request_expiry_window",
    "price_history_capacity",
    "block_interval_seconds",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def parse_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    # bool is an int subclass.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


def parse_configuration(data: dict[str, Any]) -> LedgerConfiguration:
    """
    Parse a configuration mapping.

    Accepts either a flat mapping or one nested under a ``ledger`` key,
    alongside optional ``database`` and ``logging`` sections.

    Raises:
        KeyError: if ``config_id`` or ``ledger.administrator`` is missing.
        ValueError: if a numeric field is not an integer.
    """
    ledger = data.get("ledger", data)
    database = data.get("database") or {}
    logging_section = data.get("logging") or {}

    administrator = ledger["administrator"]
    if not isinstance(administrator, str) or not administrator:
        raise ValueError("administrator must be a non-empty string")

    defaults = LedgerConfiguration(config_id="", version=1, administrator=administrator)
    ints = {
        key: parse_int(ledger if key != "version" else data, key, getattr(defaults, key))
        for key in _INTEGER_FIELDS
    }

    return LedgerConfiguration(
        config_id=str(data["config_id"]),
        administrator=administrator,
        emergency_contact=ledger.get("emergency_contact"),
        database_url=str(database.get("url", DEFAULT_DATABASE_URL)),
        log_level=str(logging_section.get("level", DEFAULT_LOG_LEVEL)).upper(),
        checksum=compute_checksum(data),
        **ints,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
