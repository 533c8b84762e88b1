"""MCP template server: a pluggable, fail-isolated tool dispatcher."""

__version__ = "1.0.0"
