"""MCP Plugins Package.

This package contains plugins that extend the MCP toolset.
Each subdirectory contains a separate plugin implementation.
"""
