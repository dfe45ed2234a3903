"""
Zabbix JSON-RPC client: one POST per call with a JSON-RPC 2.0 envelope.

The client is parameterized by endpoint and auth token and returns the parsed
response body untouched, so callers can branch on `error` vs `result`.
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
REQUEST_ID = 1


class ZabbixAPIError(Exception):
    """Zabbix API returned an `error` object instead of a `result`."""

    def __init__(self, error: Any):
        if not isinstance(error, dict):
            error = {"message": str(error)}
        self.code = error.get("code")
        self.message = error.get("message") or ""
        self.data = error.get("data")
        detail = f"{self.message} {self.data}" if self.data else self.message
        super().__init__(detail.strip())


def build_request(method: str, params: Optional[Dict[str, Any]], auth: Optional[str]) -> Dict[str, Any]:
    """Build a JSON-RPC 2.0 request object for the Zabbix API.

    Args:
        method: Zabbix API method (e.g. "history.get")
        params: Method parameters
        auth: API token or session id

    Returns:
        Dict[str, Any]: Request envelope with a fixed id
    """
    return {
        "jsonrpc": JSONRPC_VERSION,
        "method": method,
        "params": params if params is not None else {},
        "auth": auth,
        "id": REQUEST_ID,
    }


class ZabbixRPCClient:
    """Minimal async Zabbix API client.

    A fresh httpx.AsyncClient is opened for every call and closed when the
    response has been read. No retry; no timeout unless one is given.
    """

    def __init__(self, url: str, auth: Optional[str],
                 verify_ssl: bool = True,
                 timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        if not url:
            raise ValueError("Zabbix API URL is required")
        self.url = url
        self.auth = auth
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self._transport = transport

    def __repr__(self) -> str:
        return f"ZabbixRPCClient(url={self.url!r})"

    def _http_client(self) -> httpx.AsyncClient:
        kwargs: Dict[str, Any] = {"timeout": self.timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        else:
            kwargs["verify"] = self.verify_ssl
        return httpx.AsyncClient(**kwargs)

    async def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Call a Zabbix API method and return the parsed JSON body.

        Raises:
            httpx.HTTPError: If the request itself fails (connection, TLS, timeout)
            ValueError: If the body is not valid JSON
        """
        payload = build_request(method, params, self.auth)
        logger.debug(f"Calling {method} on {self.url}")
        async with self._http_client() as client:
            resp = await client.post(self.url, json=payload)
        if resp.status_code >= 400:
            logger.warning(f"{method} returned HTTP {resp.status_code}")
        return resp.json()

    async def call_result(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a Zabbix API method and return only its `result`.

        Raises:
            ZabbixAPIError: If the response carries an `error` object
            ValueError: If the body is not a JSON-RPC response object
        """
        body = await self.call(method, params)
        if not isinstance(body, dict):
            raise ValueError(f"Unexpected response body for {method}: {body!r}")
        if body.get("error") is not None:
            raise ZabbixAPIError(body["error"])
        return body.get("result")
