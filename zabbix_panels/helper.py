"""
Panel helpers: parsing, statistics, constants for Zabbix history/trend/problem output.

No API or MCP calls; used by panels and render. Unit-testable.
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# --- Constants ---
HISTORY_TYPE_FLOAT = 0
PLACEHOLDER = "---"
UNKNOWN_HOST_LABEL = "Host Desconocido"
UNKNOWN_SEVERITY_LABEL = "Desconocido"
DEFAULT_USER_LANG = "es_ES"
DEFAULT_USERNAME_FIELD = "alias"
TREND_OUTPUT_FIELDS = ["clock", "num", "value_avg", "value_min", "value_max"]

SEVERITY_LABELS: Dict[int, str] = {
    0: "No clasificado",
    1: "Información",
    2: "Advertencia",
    3: "Promedio",
    4: "Alto",
    5: "Desastre",
}


@dataclass(frozen=True)
class HistoryStats:
    """Summary of a non-empty list of history samples."""

    count: int
    average: float
    minimum: float
    maximum: float


def ensure_list(obj: Any) -> List[Any]:
    if obj is None:
        return []
    if isinstance(obj, list):
        return obj
    if isinstance(obj, dict):
        return [obj]
    return []


def dict_records(result: Any) -> List[Dict[str, Any]]:
    """Records of a list result that are objects; anything else is dropped."""
    if not isinstance(result, list):
        return []
    return [r for r in result if isinstance(r, dict)]


def normalize_itemid(itemid: Any) -> Optional[str]:
    """Normalize a single item id to string. Accepts str or int. Returns None if empty/null."""
    if itemid is None:
        return None
    if isinstance(itemid, (int, float)):
        return str(int(itemid))
    s = str(itemid).strip()
    if not s or s.lower() == "null":
        return None
    return s


def api_error_text(error: Any) -> str:
    """Return the detail of a JSON-RPC error object: `data` when present, else `message`."""
    if not isinstance(error, dict):
        return str(error)
    data = error.get("data")
    if data not in (None, ""):
        return str(data)
    return str(error.get("message") or "")


def parse_sample_values(samples: Any) -> List[float]:
    """Parse the `value` of each history sample as float, skipping unparsable values."""
    values: List[float] = []
    for sample in ensure_list(samples):
        if not isinstance(sample, dict):
            continue
        raw = sample.get("value")
        try:
            value = float(raw)
        except (TypeError, ValueError):
            logger.warning(f"Skipping non-numeric history value: {raw!r}")
            continue
        if math.isnan(value):
            logger.warning(f"Skipping NaN history value at clock {sample.get('clock')}")
            continue
        values.append(value)
    return values


def compute_history_stats(values: List[float]) -> HistoryStats:
    """Compute count, mean, min and max of parsed sample values.

    Raises:
        ValueError: If values is empty
    """
    if not values:
        raise ValueError("Cannot compute statistics over an empty sample list")
    total = sum(values)
    return HistoryStats(
        count=len(values),
        average=total / len(values),
        minimum=min(values),
        maximum=max(values),
    )


def format_number(value: float) -> str:
    """Format a float the way JavaScript's Number.prototype.toString prints it.

    10.0 -> "10", 10.5 -> "10.5", 1e-07 -> "1e-7", 1e21 -> "1e+21", inf -> "Infinity".
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    # Shortest round-trip digits, then JavaScript's placement rules
    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    stripped = digits.rstrip("0")
    exponent += len(digits) - len(stripped)
    digits = stripped
    k = len(digits)
    n = k + exponent
    prefix = "-" if sign else ""

    if k <= n <= 21:
        return prefix + digits + "0" * (n - k)
    if 0 < n <= 21:
        return prefix + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return prefix + "0." + "0" * (-n) + digits
    e = n - 1
    mantissa = digits[0] + ("." + digits[1:] if k > 1 else "")
    return f"{prefix}{mantissa}e{'+' if e > 0 else '-'}{abs(e)}"


def format_fixed(value: Any, digits: int = 2) -> str:
    """Parse value as float and format it with a fixed number of decimals ("NaN" if unparsable)."""
    try:
        return f"{float(value):.{digits}f}"
    except (TypeError, ValueError):
        return "NaN"


def severity_label(severity: Any) -> str:
    """Translate a Zabbix severity code (0-5) to its label, with a fallback for unknown codes."""
    try:
        code = int(str(severity).strip())
    except (TypeError, ValueError):
        return UNKNOWN_SEVERITY_LABEL
    return SEVERITY_LABELS.get(code, UNKNOWN_SEVERITY_LABEL)


def problem_host_name(problem: Dict[str, Any]) -> str:
    """First host name of a problem record, or the unknown-host label."""
    hosts = problem.get("hosts") or []
    if isinstance(hosts, list) and hosts and isinstance(hosts[0], dict):
        return str(hosts[0].get("name") or UNKNOWN_HOST_LABEL)
    return UNKNOWN_HOST_LABEL


def problem_description(problem: Dict[str, Any]) -> str:
    return str(problem.get("opdata") or problem.get("name") or "")


def extract_userids(result: Any) -> List[str]:
    """Pull the created user ids out of a user.create result."""
    if isinstance(result, dict):
        return [str(u) for u in ensure_list(result.get("userids"))]
    return []
