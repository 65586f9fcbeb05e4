"""
event_audit.config — Load AuditConfig once per cold start.

Sources, lowest precedence first:
  1. JSON file named by AUDIT_CONFIG_FILE (keys as below)
  2. Environment variables with the same names

Keys: PROJECT_ID, CREDENTIALS_PATH, USERNAME, PASSWORD, AUDIT_LOG_NAME,
TIMEZONE, AWS_REGION.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from event_audit.exceptions import ConfigurationError
from event_audit.models import AuditConfig
from event_audit.timestamps import get_zone

CONFIG_FILE_ENV = "AUDIT_CONFIG_FILE"

_KEYS = (
    "PROJECT_ID",
    "CREDENTIALS_PATH",
    "USERNAME",
    "PASSWORD",
    "AUDIT_LOG_NAME",
    "TIMEZONE",
    "AWS_REGION",
)


def read_config_file(path: str | Path) -> dict[str, Any]:
    config_path = Path(path)
    try:
        with config_path.open(encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Config file not found: {config_path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Config file is not valid JSON: {config_path}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must hold a JSON object: {config_path}")
    return data


def _merged(environ: Mapping[str, str]) -> dict[str, str]:
    values: dict[str, str] = {}
    config_file = environ.get(CONFIG_FILE_ENV)
    if config_file:
        for key, value in read_config_file(config_file).items():
            if key in _KEYS and value is not None:
                values[key] = str(value)
    for key in _KEYS:
        if environ.get(key):
            values[key] = environ[key]
    return values


def load_config(environ: Mapping[str, str] | None = None) -> AuditConfig:
    """Build an AuditConfig, raising ConfigurationError if it is unusable."""
    values = _merged(os.environ if environ is None else environ)

    username = values.get("USERNAME")
    password = values.get("PASSWORD")
    if not username or not password:
        raise ConfigurationError("USERNAME and PASSWORD must be configured")

    timezone = values.get("TIMEZONE") or "UTC"
    get_zone(timezone)

    return AuditConfig(
        username=username,
        password=password,
        project_id=values.get("PROJECT_ID", ""),
        credentials_path=values.get("CREDENTIALS_PATH") or None,
        audit_log_name=values.get("AUDIT_LOG_NAME") or "spinnaker-audit-log",
        timezone=timezone,
        region=values.get("AWS_REGION") or "eu-west-2",
    )
