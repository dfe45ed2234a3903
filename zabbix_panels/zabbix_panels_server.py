#!/usr/bin/env python3
"""
Zabbix Panels MCP Server - history statistics, traffic trends, active problems
and user registration on top of the Zabbix JSON-RPC API.

Each panel is published as an MCP tool; one tool call is one panel submission
and returns the panel's view model (status message plus display fields/HTML).

Author: Zabbix Panels Contributors
License: MIT
"""

# -----------------------------------------------------------------------------
# FILE STRUCTURE
# -----------------------------------------------------------------------------
# 1. Package setup (when run as script)
# 2. Imports and configuration (logging, FastMCP, env)
# 3. Shared helpers (get_zabbix_client, format_response, validate_read_only)
# 4. Panels           -> history_stats, traffic_trends, active_problems, register_user
# 5. Raw API calls    -> history_get, trend_get, problem_get
# 6. Entry point (main)
# -----------------------------------------------------------------------------

# When run as script (e.g. python zabbix_panels/zabbix_panels_server.py), set up package for relative imports.
if __package__ is None or __package__ == "":
    import sys
    from pathlib import Path
    _root = Path(__file__).resolve().parent.parent
    if str(_root) not in sys.path:
        sys.path.insert(0, str(_root))
    __package__ = "zabbix_panels"

import os
import json
import logging
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, List, Optional, Union
from fastmcp import FastMCP
from dotenv import load_dotenv

from . import helper, panels
from .rpc_client import ZabbixRPCClient

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO if os.getenv("DEBUG") else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Initialize FastMCP
mcp = FastMCP("Zabbix Panels MCP Server")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def get_request_timeout() -> Optional[float]:
    """Read the optional request timeout (seconds) from ZABBIX_TIMEOUT.

    Returns:
        Optional[float]: Timeout in seconds, or None for no timeout

    Raises:
        ValueError: If ZABBIX_TIMEOUT is not a positive number
    """
    raw = os.getenv("ZABBIX_TIMEOUT", "").strip()
    if not raw:
        return None
    try:
        timeout = float(raw)
    except ValueError:
        raise ValueError(f"Invalid ZABBIX_TIMEOUT: {raw}. Must be a number of seconds")
    if timeout <= 0:
        raise ValueError(f"Invalid ZABBIX_TIMEOUT: {raw}. Must be positive")
    return timeout


def get_zabbix_client(zabbix_url: Optional[str] = None,
                      auth_token: Optional[str] = None) -> ZabbixRPCClient:
    """Build a Zabbix API client for one submission.

    Args:
        zabbix_url: Endpoint given with the submission (falls back to ZABBIX_URL)
        auth_token: API token given with the submission (falls back to ZABBIX_TOKEN)

    Returns:
        ZabbixRPCClient: Client bound to the endpoint and token

    Raises:
        ValueError: If the endpoint or token is missing
    """
    url = (zabbix_url or "").strip() or os.getenv("ZABBIX_URL")
    if not url:
        raise ValueError("ZABBIX_URL environment variable is required")

    token = (auth_token or "").strip() or os.getenv("ZABBIX_TOKEN")
    if not token:
        raise ValueError("An API token is required (argument or ZABBIX_TOKEN)")

    verify_ssl = _env_flag("VERIFY_SSL", "true")
    if not verify_ssl:
        logger.info("SSL certificate verification disabled")

    logger.info(f"Using Zabbix API at {url}")
    return ZabbixRPCClient(url=url, auth=token, verify_ssl=verify_ssl, timeout=get_request_timeout())


def get_server_client() -> ZabbixRPCClient:
    """Client built only from server configuration, for write panels.

    Callers cannot point write operations at another endpoint or token.
    """
    return get_zabbix_client()


def is_read_only() -> bool:
    """Check if server is in read-only mode.

    Returns:
        bool: True if read-only mode is enabled
    """
    return _env_flag("READ_ONLY", "true")


def _to_json_serializable(obj: Any) -> Any:
    """Recursively convert data to JSON-serializable types.
    View models (dataclasses) become dicts.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if is_dataclass(obj) and not isinstance(obj, type):
        return _to_json_serializable(asdict(obj))
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="replace")
    if isinstance(obj, dict):
        return {str(k): _to_json_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_to_json_serializable(v) for v in obj]
    if hasattr(obj, "isoformat"):  # datetime, date, time
        return obj.isoformat()
    return str(obj)


def format_response(data: Any) -> str:
    """Format response data as JSON string.

    Args:
        data: Data to format

    Returns:
        str: JSON formatted string
    """
    normalized = _to_json_serializable(data)
    return json.dumps(normalized, indent=2, ensure_ascii=False)


def validate_read_only() -> None:
    """Validate that write operations are allowed.

    Raises:
        ValueError: If server is in read-only mode
    """
    if is_read_only():
        raise ValueError("Server is in read-only mode - write operations are not allowed")


# PANELS
@mcp.tool()
async def history_stats(itemid: Union[str, int],
                        time_from: Optional[str] = None,
                        time_till: Optional[str] = None,
                        history: int = helper.HISTORY_TYPE_FLOAT,
                        zabbix_url: Optional[str] = None,
                        auth_token: Optional[str] = None) -> str:
    """Summarize the history of an item: sample count, average, minimum and maximum.

    Args:
        itemid: Item ID
        time_from: Start of range, local datetime (e.g. 2024-05-01T08:00)
        time_till: End of range, local datetime
        history: History type (0=float, 3=unsigned)
        zabbix_url: Zabbix API URL (defaults to ZABBIX_URL)
        auth_token: API token (defaults to ZABBIX_TOKEN)

    Returns:
        str: JSON formatted view (message, sample_count, average, minimum, maximum)
    """
    client = get_zabbix_client(zabbix_url, auth_token)
    view = await panels.get_historical_stats(client, itemid, time_from, time_till, history_type=history)
    return format_response(view)


@mcp.tool()
async def traffic_trends(itemid: Union[str, int],
                         time_from: Optional[str] = None,
                         time_till: Optional[str] = None,
                         history: int = helper.HISTORY_TYPE_FLOAT,
                         zabbix_url: Optional[str] = None,
                         auth_token: Optional[str] = None) -> str:
    """List trend periods of an item (average, min, max per period), oldest first.

    Args:
        itemid: Item ID
        time_from: Start of range, local datetime (e.g. 2024-05-01T08:00)
        time_till: End of range, local datetime
        history: Value type (0=float, 3=unsigned)
        zabbix_url: Zabbix API URL (defaults to ZABBIX_URL)
        auth_token: API token (defaults to ZABBIX_TOKEN)

    Returns:
        str: JSON formatted view (message, html, count)
    """
    client = get_zabbix_client(zabbix_url, auth_token)
    view = await panels.get_traffic_trends(client, itemid, time_from, time_till, history_type=history)
    return format_response(view)


@mcp.tool()
async def active_problems(sortorder: Optional[str] = None,
                          limit: Optional[int] = None,
                          zabbix_url: Optional[str] = None,
                          auth_token: Optional[str] = None) -> str:
    """Show unresolved, unacknowledged problems as a severity-coded table.

    Args:
        sortorder: Optional sort order by event (ASC or DESC); API order when omitted
        limit: Maximum number of problems
        zabbix_url: Zabbix API URL (defaults to ZABBIX_URL)
        auth_token: API token (defaults to ZABBIX_TOKEN)

    Returns:
        str: JSON formatted view (message, html, count)
    """
    if sortorder and sortorder.upper() not in ("ASC", "DESC"):
        raise ValueError(f"Invalid sortorder: {sortorder}. Must be 'ASC' or 'DESC'")
    client = get_zabbix_client(zabbix_url, auth_token)
    view = await panels.get_problems(client, sortorder=sortorder, limit=limit)
    return format_response(view)


@mcp.tool()
async def register_user(alias: str, password: str, usrgrpid: Union[str, int],
                        name: Optional[str] = None,
                        surname: Optional[str] = None) -> str:
    """Create a Zabbix user in one user group.

    The Zabbix endpoint and token always come from the server configuration.

    Args:
        alias: Login name
        password: Password
        usrgrpid: User group ID
        name: First name
        surname: Last name

    Returns:
        str: JSON formatted view (message, userids)
    """
    validate_read_only()

    client = get_server_client()
    view = await panels.register_user(
        client, alias, password, usrgrpid,
        name=name, surname=surname,
        lang=os.getenv("ZABBIX_USER_LANG", helper.DEFAULT_USER_LANG),
        username_field=os.getenv("ZABBIX_USERNAME_FIELD", helper.DEFAULT_USERNAME_FIELD),
    )
    return format_response(view)


# RAW API CALLS
@mcp.tool()
async def history_get(itemids: List[str], history: int = 0,
                      time_from: Optional[int] = None,
                      time_till: Optional[int] = None,
                      limit: Optional[int] = None,
                      sortfield: str = "clock",
                      sortorder: str = "DESC") -> str:
    """Get history data from Zabbix.

    Args:
        itemids: List of item IDs to get history for
        history: History type (0=float, 1=character, 2=log, 3=unsigned, 4=text)
        time_from: Start time (Unix timestamp)
        time_till: End time (Unix timestamp)
        limit: Maximum number of results
        sortfield: Field to sort by
        sortorder: Sort order (ASC or DESC)

    Returns:
        str: JSON formatted history data
    """
    client = get_zabbix_client()
    params: Dict[str, Any] = {
        "output": "extend",
        "itemids": itemids,
        "history": history,
        "sortfield": sortfield,
        "sortorder": sortorder
    }

    if time_from:
        params["time_from"] = time_from
    if time_till:
        params["time_till"] = time_till
    if limit:
        params["limit"] = limit

    result = await client.call_result("history.get", params)
    return format_response(result)


@mcp.tool()
async def trend_get(itemids: List[str], time_from: Optional[int] = None,
                    time_till: Optional[int] = None,
                    limit: Optional[int] = None) -> str:
    """Get trend data from Zabbix.

    Args:
        itemids: List of item IDs to get trends for
        time_from: Start time (Unix timestamp)
        time_till: End time (Unix timestamp)
        limit: Maximum number of results

    Returns:
        str: JSON formatted trend data
    """
    client = get_zabbix_client()
    params: Dict[str, Any] = {"itemids": itemids, "output": list(helper.TREND_OUTPUT_FIELDS)}

    if time_from:
        params["time_from"] = time_from
    if time_till:
        params["time_till"] = time_till
    if limit:
        params["limit"] = limit

    result = await client.call_result("trend.get", params)
    return format_response(result)


@mcp.tool()
async def problem_get(hostids: Optional[List[str]] = None,
                      time_from: Optional[int] = None,
                      time_till: Optional[int] = None,
                      recent: bool = False,
                      severities: Optional[List[int]] = None,
                      limit: Optional[int] = None) -> str:
    """Get problems from Zabbix with optional filtering.

    Args:
        hostids: List of host IDs to filter by
        time_from: Start time (Unix timestamp)
        time_till: End time (Unix timestamp)
        recent: Also return recently resolved problems
        severities: List of severity levels to filter by
        limit: Maximum number of results

    Returns:
        str: JSON formatted list of problems
    """
    client = get_zabbix_client()
    params: Dict[str, Any] = {"output": "extend", "selectHosts": ["name"]}

    if hostids:
        params["hostids"] = hostids
    if time_from:
        params["time_from"] = time_from
    if time_till:
        params["time_till"] = time_till
    if recent:
        params["recent"] = recent
    if severities:
        params["severities"] = severities
    if limit:
        params["limit"] = limit

    result = await client.call_result("problem.get", params)
    return format_response(result)


def get_transport_config() -> Dict[str, Any]:
    """Get transport configuration from environment variables.

    Returns:
        Dict[str, Any]: Transport configuration

    Raises:
        ValueError: If invalid transport configuration
    """
    transport = os.getenv("ZABBIX_MCP_TRANSPORT", "stdio").lower()

    if transport not in ["stdio", "streamable-http"]:
        raise ValueError(f"Invalid ZABBIX_MCP_TRANSPORT: {transport}. Must be 'stdio' or 'streamable-http'")

    config: Dict[str, Any] = {"transport": transport}

    if transport == "streamable-http":
        # Check AUTH_TYPE requirement
        auth_type = os.getenv("AUTH_TYPE", "").lower()
        if auth_type != "no-auth":
            raise ValueError("AUTH_TYPE must be set to 'no-auth' when using streamable-http transport")

        # Get HTTP configuration with defaults
        config.update({
            "host": os.getenv("ZABBIX_MCP_HOST", "127.0.0.1"),
            "port": int(os.getenv("ZABBIX_MCP_PORT", "8000")),
            "stateless_http": _env_flag("ZABBIX_MCP_STATELESS_HTTP", "false")
        })

        logger.info(f"HTTP transport configured: {config['host']}:{config['port']}, stateless_http={config['stateless_http']}")

    return config


def main():
    """Main entry point for uv execution."""
    logger.info("Starting Zabbix Panels MCP Server")

    # Get transport configuration
    try:
        transport_config = get_transport_config()
        logger.info(f"Transport: {transport_config['transport']}")
    except ValueError as e:
        logger.error(f"Transport configuration error: {e}")
        return 1

    # Log configuration
    logger.info(f"Read-only mode: {is_read_only()}")
    logger.info(f"Zabbix URL: {os.getenv('ZABBIX_URL', 'Not configured')}")

    try:
        if transport_config["transport"] == "stdio":
            mcp.run()
        else:  # streamable-http
            mcp.run(
                transport="streamable-http",
                host=transport_config["host"],
                port=transport_config["port"],
                stateless_http=transport_config["stateless_http"]
            )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}")
        raise


__all__ = ["main", "mcp"]


if __name__ == "__main__":
    main()
