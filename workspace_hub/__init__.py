"""Workspace membership and authorization service."""
