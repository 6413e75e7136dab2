"""Taskboard engine — errors, configuration and structured logging."""
