"""
dbexplorer_mcp: PostgreSQL Exploration & Query Optimization MCP Server

A Model Context Protocol (MCP) server that lets an AI assistant explore a
PostgreSQL schema, run read-only queries and get plan-based tuning advice.
"""

from .server import main
from .__main__ import run

__version__ = "0.1.0"
__all__ = ["main", "run"]
