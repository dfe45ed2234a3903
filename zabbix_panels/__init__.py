"""Zabbix Panels: history statistics, traffic trends, active problems and user registration over the Zabbix API."""

__version__ = "0.1.0"
