"""Glance configuration: defaults and runtime settings."""
