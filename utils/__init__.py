"""Utility modules for the Argo MCP tools."""
