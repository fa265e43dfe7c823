"""Argo Workflows plugin.

Tools for submitting, inspecting and controlling workflows, workflow
templates and cron workflows through the Argo Server REST API, and for
rendering workflow graphs.

Tool modules (``*tool.py``) are loaded by the plugin registry's discovery.
"""
