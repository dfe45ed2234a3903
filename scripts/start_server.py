#!/usr/bin/env python3
"""
Startup script for Zabbix Panels MCP Server

Validates the environment (.env is loaded first), logs a summary without
secrets and hands over to zabbix_panels_server.main.
"""

import os
import sys
import logging
from pathlib import Path
from typing import List
from dotenv import load_dotenv

load_dotenv()

# Repository root, so the zabbix_panels package imports without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

logger = logging.getLogger("start_server")

TRANSPORTS = ("stdio", "streamable-http")


def environment_problems() -> List[str]:
    """Return one message per configuration problem; empty when the server can start."""
    problems = [f"{var} is not set" for var in ("ZABBIX_URL", "ZABBIX_TOKEN") if not os.getenv(var)]

    timeout = os.getenv("ZABBIX_TIMEOUT", "").strip()
    if timeout:
        try:
            valid = float(timeout) > 0
        except ValueError:
            valid = False
        if not valid:
            problems.append(f"ZABBIX_TIMEOUT must be a positive number of seconds, got {timeout!r}")

    transport = os.getenv("ZABBIX_MCP_TRANSPORT", "stdio").lower()
    if transport not in TRANSPORTS:
        problems.append(f"ZABBIX_MCP_TRANSPORT must be one of {', '.join(TRANSPORTS)}, got {transport!r}")
    elif transport == "streamable-http" and os.getenv("AUTH_TYPE", "").lower() != "no-auth":
        problems.append("AUTH_TYPE must be 'no-auth' when using streamable-http transport")

    return problems


def log_configuration() -> None:
    """Log the effective settings; the token is only reported as present or missing."""
    read_only = os.getenv("READ_ONLY", "true").lower() in ("true", "1", "yes")
    logger.info(f"Zabbix URL: {os.getenv('ZABBIX_URL')}")
    logger.info(f"API token: {'configured' if os.getenv('ZABBIX_TOKEN') else 'missing'}")
    logger.info(f"Request timeout: {os.getenv('ZABBIX_TIMEOUT') or 'none'}")
    logger.info(f"Transport: {os.getenv('ZABBIX_MCP_TRANSPORT', 'stdio')}")
    logger.info(f"register_user: {'refused (read-only)' if read_only else 'allowed'}")
    logger.info(
        f"New users: lang={os.getenv('ZABBIX_USER_LANG', 'es_ES')}, "
        f"login field={os.getenv('ZABBIX_USERNAME_FIELD', 'alias')}"
    )


def main() -> None:
    logging.basicConfig(
        level=logging.DEBUG if os.getenv("DEBUG") else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    problems = environment_problems()
    if problems:
        for problem in problems:
            logger.error(problem)
        print("Configuration errors (set them in the environment or a .env file):", file=sys.stderr)
        print("\n".join(f"  - {p}" for p in problems), file=sys.stderr)
        sys.exit(1)

    log_configuration()

    try:
        from zabbix_panels.zabbix_panels_server import main as server_main
    except ImportError as e:
        logger.error(f"Import error: {e}")
        print("Please install dependencies: uv sync", file=sys.stderr)
        sys.exit(1)

    try:
        sys.exit(server_main() or 0)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    main()
