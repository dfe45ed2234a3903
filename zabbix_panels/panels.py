"""
Panels: async handlers that call the Zabbix API through a ZabbixRPCClient and
return view models.

Same shape for every panel: build params, one call, classify, render. Network
and parse failures are caught here and turned into a status message.
Registered as MCP tools in zabbix_panels_server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Set

import httpx

from . import helper
from .classify import Outcome, classify_response
from .render import (
    HistoryStatsView,
    ProblemTableView,
    RegistrationView,
    StatusMessage,
    TrendListView,
    history_stats_view,
    render_problem_table,
    render_trend_list,
)
from .rpc_client import ZabbixRPCClient
from .timeutils import date_to_unix_timestamp

logger = logging.getLogger(__name__)

PANEL_HISTORY = "history_stats"
PANEL_TRENDS = "traffic_trends"
PANEL_PROBLEMS = "active_problems"
PANEL_REGISTRATION = "register_user"

BUSY_TEXT = "⏳ Ya hay una consulta en curso para este panel. Espera a que termine."


class PanelBusyError(RuntimeError):
    """Raised when a panel is submitted again while its previous request is pending."""

    def __init__(self, panel: str):
        super().__init__(f"Panel {panel} already has a request in flight")
        self.panel = panel


class SubmissionGuard:
    """Allows at most one pending submission per panel name.

    Runs on a single event loop, so a set of pending names is enough.
    """

    def __init__(self):
        self._pending: Set[str] = set()

    def is_pending(self, panel: str) -> bool:
        return panel in self._pending

    @asynccontextmanager
    async def submission(self, panel: str) -> AsyncIterator[None]:
        if panel in self._pending:
            raise PanelBusyError(panel)
        self._pending.add(panel)
        try:
            yield
        finally:
            self._pending.discard(panel)


default_guard = SubmissionGuard()


def _busy() -> StatusMessage:
    return StatusMessage("warning", BUSY_TEXT)


def _time_range(time_from: Optional[str], time_till: Optional[str]) -> tuple:
    return date_to_unix_timestamp(time_from), date_to_unix_timestamp(time_till)


# HISTORY STATISTICS
async def get_historical_stats(
    client: ZabbixRPCClient,
    itemid: Any,
    time_from: Optional[str] = None,
    time_till: Optional[str] = None,
    history_type: int = helper.HISTORY_TYPE_FLOAT,
    guard: Optional[SubmissionGuard] = None,
) -> HistoryStatsView:
    """Fetch the history of one item and summarize it (count, average, min, max).

    Args:
        client: Zabbix API client
        itemid: Item ID
        time_from: Start of range as a datetime-local string
        time_till: End of range as a datetime-local string
        history_type: History type (0=float, 3=unsigned)
        guard: In-flight guard (defaults to the module guard)

    Returns:
        HistoryStatsView: Status message and the four summary fields
    """
    guard = guard or default_guard
    item = helper.normalize_itemid(itemid) or ""
    try:
        async with guard.submission(PANEL_HISTORY):
            try:
                start, end = _time_range(time_from, time_till)
            except ValueError as e:
                return HistoryStatsView(StatusMessage("error", f"🚫 Rango de tiempo inválido: {e}"))

            params = {
                "output": "extend",
                "history": history_type,
                "itemids": [item],
                "time_from": start,
                "time_till": end,
                "sortfield": "clock",
                "sortorder": "DESC",
            }
            try:
                data = await client.call("history.get", params)
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"history.get failed for item {item}: {e}")
                return HistoryStatsView(StatusMessage("error", f"❌ Error de conexión: {e}"))
    except PanelBusyError:
        return HistoryStatsView(_busy())

    classified = classify_response(data)
    if classified.outcome is Outcome.ERROR:
        return HistoryStatsView(StatusMessage(
            "error",
            f"🚫 Error de API: {classified.error_text}. Verifica tus permisos, token o el ID del ítem.",
        ))

    values = helper.parse_sample_values(classified.result) if classified.outcome is Outcome.DATA else []
    if not values:
        return HistoryStatsView(StatusMessage(
            "warning",
            f"⚠️ No se encontraron datos históricos para el Ítem {item} en el rango de tiempo especificado.",
        ))

    stats = helper.compute_history_stats(values)
    message = StatusMessage("success", f"✅ {stats.count} muestras analizadas con éxito.")
    return history_stats_view(message, stats)


# TRAFFIC TRENDS
async def get_traffic_trends(
    client: ZabbixRPCClient,
    itemid: Any,
    time_from: Optional[str] = None,
    time_till: Optional[str] = None,
    history_type: int = helper.HISTORY_TYPE_FLOAT,
    guard: Optional[SubmissionGuard] = None,
) -> TrendListView:
    """Fetch hourly trend buckets of one item and render them as a list, oldest first."""
    guard = guard or default_guard
    item = helper.normalize_itemid(itemid) or ""
    try:
        async with guard.submission(PANEL_TRENDS):
            try:
                start, end = _time_range(time_from, time_till)
            except ValueError as e:
                return TrendListView(StatusMessage("error", f"🚫 Rango de tiempo inválido: {e}"))

            params = {
                "output": list(helper.TREND_OUTPUT_FIELDS),
                "history": history_type,
                "itemids": [item],
                "time_from": start,
                "time_till": end,
                "sortfield": "clock",
                "sortorder": "ASC",
            }
            try:
                data = await client.call("trend.get", params)
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"trend.get failed for item {item}: {e}")
                return TrendListView(StatusMessage("error", f"❌ Error de conexión o servidor: {e}"))
    except PanelBusyError:
        return TrendListView(_busy())

    classified = classify_response(data)
    if classified.outcome is Outcome.ERROR:
        return TrendListView(
            StatusMessage("error", f"🚫 Error de API: {classified.error_text}. Verifica el token y el ID del ítem."),
            html="Error en la consulta de tendencias.",
        )
    trends = helper.dict_records(classified.result) if classified.outcome is Outcome.DATA else []
    if not trends:
        return TrendListView(
            StatusMessage("warning", f"⚠️ Ítem {item} no tiene datos de tendencia disponibles."),
            html="No se encontraron datos de tendencia (tráfico) en el rango de tiempo especificado.",
        )

    return TrendListView(
        StatusMessage("success", f"✅ {len(trends)} periodos de tráfico analizados con éxito."),
        html=render_trend_list(trends),
        count=len(trends),
    )


# ACTIVE PROBLEMS
async def get_problems(
    client: ZabbixRPCClient,
    sortorder: Optional[str] = None,
    limit: Optional[int] = None,
    guard: Optional[SubmissionGuard] = None,
) -> ProblemTableView:
    """Fetch unresolved, unacknowledged problems and render them as a severity-coded table.

    Rows follow the API order unless sortorder ("ASC"/"DESC" by event id) is given.
    """
    guard = guard or default_guard
    params: Dict[str, Any] = {
        "output": "extend",
        "recent": True,
        "acknowledged": False,
        "selectHosts": ["name"],
        "selectTriggers": ["description", "severity"],
    }
    if sortorder:
        params["sortfield"] = ["eventid"]
        params["sortorder"] = sortorder.upper()
    if limit:
        params["limit"] = limit

    try:
        async with guard.submission(PANEL_PROBLEMS):
            try:
                data = await client.call("problem.get", params)
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"problem.get failed: {e}")
                return ProblemTableView(StatusMessage("error", f"❌ Error de conexión: {e}"))
    except PanelBusyError:
        return ProblemTableView(_busy())

    classified = classify_response(data)
    if classified.outcome is Outcome.ERROR:
        return ProblemTableView(StatusMessage(
            "error", f"🚫 Error de API: {classified.error_text}. Verifica el token y los permisos.",
        ))
    problems = helper.dict_records(classified.result) if classified.outcome is Outcome.DATA else []
    if not problems:
        return ProblemTableView(StatusMessage(
            "success", '✅ ¡No hay "Vuelos Activos" (Problemas) sin resolver!',
        ))

    return ProblemTableView(
        StatusMessage("alert", f'🚨 Se encontraron {len(problems)} "Vuelos Activos" (Problemas) sin resolver.'),
        html=render_problem_table(problems),
        count=len(problems),
    )


# USER REGISTRATION
async def register_user(
    client: ZabbixRPCClient,
    alias: str,
    password: str,
    usrgrpid: Any,
    name: Optional[str] = None,
    surname: Optional[str] = None,
    lang: str = helper.DEFAULT_USER_LANG,
    username_field: str = helper.DEFAULT_USERNAME_FIELD,
    guard: Optional[SubmissionGuard] = None,
) -> RegistrationView:
    """Create a Zabbix user in one user group.

    Args:
        client: Zabbix API client built from server configuration
        alias: Login name
        password: Password (never logged)
        usrgrpid: User group ID
        name: First name
        surname: Last name
        lang: User interface language
        username_field: Login field name ("alias", or "username" on Zabbix 5.4+)
        guard: In-flight guard (defaults to the module guard)

    Returns:
        RegistrationView: Status message and created user ids
    """
    guard = guard or default_guard
    params: Dict[str, Any] = {
        username_field: alias,
        "passwd": password,
        "name": name or "",
        "surname": surname or "",
        "usrgrps": [{"usrgrpid": helper.normalize_itemid(usrgrpid) or ""}],
        "lang": lang,
    }

    try:
        async with guard.submission(PANEL_REGISTRATION):
            try:
                data = await client.call("user.create", params)
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"user.create failed for {alias}: {e}")
                return RegistrationView(StatusMessage("error", f"❌ Error de red/conexión: {e}"))
    except PanelBusyError:
        return RegistrationView(_busy())

    classified = classify_response(data, accept_object=True)
    if classified.outcome is Outcome.ERROR:
        return RegistrationView(StatusMessage("error", f"❌ Error de API: {classified.error_text}"))

    userids = helper.extract_userids(classified.result)
    if not userids:
        return RegistrationView(StatusMessage("warning", "⚠️ Respuesta inesperada de la API."))

    logger.info(f"Created Zabbix user {alias} with ids {userids}")
    return RegistrationView(
        StatusMessage("success", f"✅ Usuario creado con éxito. User ID(s): {', '.join(userids)}"),
        userids=userids,
    )
