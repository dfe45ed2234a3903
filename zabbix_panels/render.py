"""
View models and HTML fragments for the panels.

Each panel returns one view model; nothing here touches the network.
"""

from dataclasses import dataclass, field
from html import escape
from typing import Any, Dict, List

from . import helper
from .timeutils import unix_to_local_time

LEVEL_COLORS: Dict[str, str] = {
    "info": "#333",
    "success": "green",
    "warning": "orange",
    "error": "red",
    "alert": "red",
}

PROBLEM_TABLE_HEADERS = ["Host Afectado", "Problema (Trigger)", "Severidad", "Hora de Inicio"]


@dataclass
class StatusMessage:
    level: str
    text: str
    color: str = ""

    def __post_init__(self):
        if self.level not in LEVEL_COLORS:
            raise ValueError(f"Unknown status level: {self.level}")
        if not self.color:
            self.color = LEVEL_COLORS[self.level]


@dataclass
class HistoryStatsView:
    message: StatusMessage
    sample_count: str = helper.PLACEHOLDER
    average: str = helper.PLACEHOLDER
    minimum: str = helper.PLACEHOLDER
    maximum: str = helper.PLACEHOLDER


@dataclass
class TrendListView:
    message: StatusMessage
    html: str = ""
    count: int = 0


@dataclass
class ProblemTableView:
    message: StatusMessage
    html: str = ""
    count: int = 0


@dataclass
class RegistrationView:
    message: StatusMessage
    userids: List[str] = field(default_factory=list)


def history_stats_view(message: StatusMessage, stats: helper.HistoryStats) -> HistoryStatsView:
    return HistoryStatsView(
        message=message,
        sample_count=str(stats.count),
        average=f"{stats.average:.2f}",
        minimum=helper.format_number(stats.minimum),
        maximum=helper.format_number(stats.maximum),
    )


def severity_html(severity: Any) -> str:
    """Severity label wrapped in a span carrying the severity-N CSS class."""
    return f'<span class="severity-{escape(str(severity))}">{escape(helper.severity_label(severity))}</span>'


def render_trend_item(trend: Dict[str, Any]) -> str:
    return (
        '<div class="traffic-item">'
        f"<strong>Periodo:</strong> {escape(unix_to_local_time(trend.get('clock')))} <br>"
        f"Promedio de Carga: <strong>{helper.format_fixed(trend.get('value_avg'))}</strong> "
        f"(Min: {helper.format_fixed(trend.get('value_min'))}, "
        f"Max: {helper.format_fixed(trend.get('value_max'))})"
        "</div>"
    )


def render_trend_list(trends: List[Dict[str, Any]]) -> str:
    """Render trend buckets as traffic-item blocks, keeping the given order."""
    return "\n".join(render_trend_item(t) for t in trends if isinstance(t, dict))


def render_problem_row(problem: Dict[str, Any]) -> str:
    return (
        "<tr>"
        f"<td><strong>{escape(helper.problem_host_name(problem))}</strong></td>"
        f"<td>{escape(helper.problem_description(problem))}</td>"
        f"<td>{severity_html(problem.get('severity'))}</td>"
        f"<td>{escape(unix_to_local_time(problem.get('clock')))}</td>"
        "</tr>"
    )


def render_problem_table(problems: List[Dict[str, Any]]) -> str:
    """Render problems as an HTML table, one row per problem in the given order."""
    header = "".join(f"<th>{h}</th>" for h in PROBLEM_TABLE_HEADERS)
    rows = "\n".join(render_problem_row(p) for p in problems if isinstance(p, dict))
    return f"<table><thead><tr>{header}</tr></thead><tbody>\n{rows}\n</tbody></table>"
