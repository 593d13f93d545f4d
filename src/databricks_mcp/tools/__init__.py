"""MCP tool definitions and dispatch."""
