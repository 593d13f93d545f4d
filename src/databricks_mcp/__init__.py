"""Databricks MCP Server - Unity Catalog and SQL tools over the Model Context Protocol."""

__version__ = "0.1.0"
