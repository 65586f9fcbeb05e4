"""
event_audit.timestamps — Render Spinnaker epoch-millisecond timestamps.

Output format: "Tue, 03 Mar 2020 17:40:00 UTC" (day, date, 24h time, zone
abbreviation) in the configured IANA timezone.
"""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from event_audit.exceptions import ConfigurationError

TIMESTAMP_FORMAT = "%a, %d %b %Y %H:%M:%S %Z"


@lru_cache(maxsize=8)
def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown timezone {name!r}") from exc


def to_epoch_millis(value: Any) -> int:
    """Coerce a numeric or numeric-string epoch value to int milliseconds.

    Raises ValueError for anything else, including booleans.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not an epoch timestamp: {value!r}")
    if isinstance(value, int | float):
        return int(value)
    return int(float(str(value).strip()))


def format_timestamp(epoch_millis: Any, timezone: str) -> str:
    millis = to_epoch_millis(epoch_millis)
    moment = datetime.fromtimestamp(millis / 1000, tz=get_zone(timezone))
    return moment.strftime(TIMESTAMP_FORMAT)
