"""Classify a parsed Zabbix API response into error / data / empty."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .helper import api_error_text


class Outcome(str, Enum):
    ERROR = "error"
    DATA = "data"
    EMPTY = "empty"


@dataclass(frozen=True)
class Classification:
    outcome: Outcome
    result: Any = None
    error_text: Optional[str] = None


def _has_content(result: Any, accept_object: bool) -> bool:
    if isinstance(result, list):
        return len(result) > 0
    if accept_object and isinstance(result, dict):
        return len(result) > 0
    return False


def classify_response(response: Any, accept_object: bool = False) -> Classification:
    """Classify a response body.

    Precedence: an `error` field wins, then a non-empty `result` list, then
    anything else counts as empty. Create methods answer with an object, so
    callers pass accept_object=True to count a non-empty object as data.
    """
    if not isinstance(response, dict):
        return Classification(Outcome.EMPTY)
    error = response.get("error")
    if error is not None and error not in ("", False):
        return Classification(Outcome.ERROR, error_text=api_error_text(error))
    result = response.get("result")
    if _has_content(result, accept_object):
        return Classification(Outcome.DATA, result=result)
    return Classification(Outcome.EMPTY, result=result)
