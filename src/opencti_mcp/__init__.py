"""
OpenCTI Model Context Protocol (MCP) server.

Exposes OpenCTI GraphQL queries as MCP tools and adapts the session-oriented
JSON-RPC protocol to one-shot HTTP POST exchanges.
"""

__version__ = "0.1.0"
