"""
Time helpers: convert between datetime-local strings, Unix timestamps and display strings.

Local time is the host's default timezone. No API or MCP calls. Unit-testable.
"""

import math
from datetime import datetime
from typing import Any, Optional

NOT_AVAILABLE = "N/A"
DISPLAY_FORMAT = "%d/%m/%Y, %H:%M:%S"


def date_to_unix_timestamp(datetime_local: Optional[str]) -> int:
    """Convert a datetime-local string (YYYY-MM-DDTHH:MM[:SS]) to Unix seconds.

    Naive values are read in local time; the result is truncated to whole seconds.
    Empty input returns 0.

    Raises:
        ValueError: If the string is not an ISO datetime
    """
    if not datetime_local:
        return 0
    dt = datetime.fromisoformat(datetime_local.strip())
    return math.floor(dt.timestamp())


def unix_to_local_time(timestamp: Any) -> str:
    """Convert Unix seconds (int or numeric string, as Zabbix returns them) to a local display string."""
    if not timestamp:
        return NOT_AVAILABLE
    try:
        seconds = int(float(timestamp))
    except (TypeError, ValueError):
        return NOT_AVAILABLE
    if seconds == 0:
        return NOT_AVAILABLE
    try:
        return datetime.fromtimestamp(seconds).strftime(DISPLAY_FORMAT)
    except (OverflowError, OSError, ValueError):
        return NOT_AVAILABLE
