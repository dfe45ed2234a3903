import inspect
import json

import pytest

from zabbix_panels import zabbix_panels_server as server
from zabbix_panels.rpc_client import ZabbixAPIError


def _tool(obj):
    """Underlying coroutine function of a registered FastMCP tool."""
    return getattr(obj, "fn", obj)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("READ_ONLY", "ZABBIX_USER_LANG", "ZABBIX_USERNAME_FIELD"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def use_zabbix(monkeypatch, fake_zabbix):
    """Route every tool's client to a FakeZabbix and record how it was requested."""
    def _install(body):
        zabbix = fake_zabbix(body)
        zabbix.client_args = []

        def _get_client(zabbix_url=None, auth_token=None):
            zabbix.client_args.append((zabbix_url, auth_token))
            return zabbix.client()

        monkeypatch.setattr(server, "get_zabbix_client", _get_client)
        return zabbix
    return _install


# PANELS
@pytest.mark.asyncio
async def test_history_stats_tool(use_zabbix):
    zabbix = use_zabbix({"result": [{"clock": "1500", "value": "10"}, {"clock": "1600", "value": "20"}]})
    text = await _tool(server.history_stats)("123", zabbix_url="https://form/api_jsonrpc.php", auth_token="form-token")

    view = json.loads(text)
    assert zabbix.client_args == [("https://form/api_jsonrpc.php", "form-token")]
    assert zabbix.requests[0]["method"] == "history.get"
    assert view["sample_count"] == "2"
    assert view["average"] == "15.00"
    assert view["minimum"] == "10"
    assert view["maximum"] == "20"
    assert view["message"] == {"level": "success", "text": "✅ 2 muestras analizadas con éxito.", "color": "green"}


@pytest.mark.asyncio
async def test_traffic_trends_tool(use_zabbix):
    zabbix = use_zabbix({"result": [
        {"clock": "3600", "num": "60", "value_avg": "2", "value_min": "1", "value_max": "3"},
    ]})
    view = json.loads(await _tool(server.traffic_trends)("77", history=3))
    assert zabbix.last_params["history"] == 3
    assert view["count"] == 1
    assert '<div class="traffic-item">' in view["html"]


@pytest.mark.asyncio
async def test_active_problems_tool(use_zabbix):
    zabbix = use_zabbix({"result": [
        {"hosts": [{"name": "Radar"}], "name": "Sin señal", "severity": "5", "clock": "1714550400"},
    ]})
    view = json.loads(await _tool(server.active_problems)(sortorder="asc", limit=10))
    assert zabbix.last_params["sortorder"] == "ASC"
    assert zabbix.last_params["limit"] == 10
    assert view["count"] == 1
    assert view["message"]["level"] == "alert"
    assert '<span class="severity-5">Desastre</span>' in view["html"]


@pytest.mark.asyncio
async def test_active_problems_rejects_bad_sortorder(use_zabbix):
    zabbix = use_zabbix({"result": []})
    with pytest.raises(ValueError, match="sortorder"):
        await _tool(server.active_problems)(sortorder="sideways")
    assert zabbix.requests == []


@pytest.mark.asyncio
async def test_register_user_refused_in_read_only_mode(use_zabbix):
    zabbix = use_zabbix({"result": {"userids": ["42"]}})
    with pytest.raises(ValueError, match="read-only"):
        await _tool(server.register_user)("jperez", "pw", "7")
    assert zabbix.requests == []
    assert zabbix.client_args == []


@pytest.mark.asyncio
async def test_register_user_uses_server_configuration(monkeypatch, use_zabbix):
    monkeypatch.setenv("READ_ONLY", "false")
    monkeypatch.setenv("ZABBIX_USERNAME_FIELD", "username")
    monkeypatch.setenv("ZABBIX_USER_LANG", "en_US")
    zabbix = use_zabbix({"result": {"userids": ["42"]}})

    view = json.loads(await _tool(server.register_user)("jperez", "pw", 7, name="Juan", surname="Pérez"))

    assert zabbix.client_args == [(None, None)]
    assert zabbix.requests[0]["method"] == "user.create"
    assert zabbix.last_params["username"] == "jperez"
    assert zabbix.last_params["lang"] == "en_US"
    assert zabbix.last_params["usrgrps"] == [{"usrgrpid": "7"}]
    assert view["userids"] == ["42"]
    assert view["message"]["text"] == "✅ Usuario creado con éxito. User ID(s): 42"


def test_register_user_has_no_endpoint_arguments():
    params = inspect.signature(_tool(server.register_user)).parameters
    assert "zabbix_url" not in params
    assert "auth_token" not in params


# RAW API CALLS
@pytest.mark.asyncio
async def test_history_get_tool_builds_params(use_zabbix):
    zabbix = use_zabbix({"result": [{"clock": "1", "value": "2"}]})
    text = await _tool(server.history_get)(["1", "2"], history=3, time_from=100, limit=5)
    assert zabbix.last_params == {
        "output": "extend",
        "itemids": ["1", "2"],
        "history": 3,
        "sortfield": "clock",
        "sortorder": "DESC",
        "time_from": 100,
        "limit": 5,
    }
    assert json.loads(text) == [{"clock": "1", "value": "2"}]


@pytest.mark.asyncio
async def test_trend_get_tool_builds_params(use_zabbix):
    zabbix = use_zabbix({"result": []})
    text = await _tool(server.trend_get)(["9"], time_from=10, time_till=20)
    assert zabbix.last_params == {
        "itemids": ["9"],
        "output": ["clock", "num", "value_avg", "value_min", "value_max"],
        "time_from": 10,
        "time_till": 20,
    }
    assert json.loads(text) == []


@pytest.mark.asyncio
async def test_problem_get_tool_builds_params(use_zabbix):
    zabbix = use_zabbix({"result": []})
    await _tool(server.problem_get)(hostids=["10084"], recent=True, severities=[4, 5])
    assert zabbix.last_params == {
        "output": "extend",
        "selectHosts": ["name"],
        "hostids": ["10084"],
        "recent": True,
        "severities": [4, 5],
    }


@pytest.mark.asyncio
async def test_raw_tools_raise_api_errors(use_zabbix):
    use_zabbix({"error": {"code": -32602, "message": "Invalid params.", "data": "No permissions."}})
    with pytest.raises(ZabbixAPIError) as exc_info:
        await _tool(server.trend_get)(["9"])
    assert exc_info.value.code == -32602
    assert exc_info.value.data == "No permissions."
