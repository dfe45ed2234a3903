import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from zabbix_panels.panels import SubmissionGuard
from zabbix_panels.rpc_client import ZabbixRPCClient

ZABBIX_URL = "https://zabbix.example.com/api_jsonrpc.php"
TOKEN = "test-token"


class FakeZabbix:
    """Records JSON-RPC requests and answers them with a canned body."""

    def __init__(self, responder: Callable[[Dict[str, Any]], Any]):
        self.responder = responder
        self.requests: List[Dict[str, Any]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        body = self.responder(payload)
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, json=body)

    def client(self) -> ZabbixRPCClient:
        return ZabbixRPCClient(ZABBIX_URL, TOKEN, transport=httpx.MockTransport(self.handler))

    @property
    def last_params(self) -> Dict[str, Any]:
        return self.requests[-1]["params"]


@pytest.fixture
def fake_zabbix():
    def _make(body: Any) -> FakeZabbix:
        responder = body if callable(body) else (lambda _payload: body)
        return FakeZabbix(responder)
    return _make


@pytest.fixture
def guard():
    return SubmissionGuard()
