"""Dependency graph over packages."""
