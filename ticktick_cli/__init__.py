"""TickTick command-line client and MCP server for the TickTick Open API."""

__version__ = "0.1.0"
