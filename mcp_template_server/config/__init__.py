"""Configuration loading for the MCP template server."""

from .settings import DEFAULTS, ServerConfig, ToolsConfig, load_config

__all__ = [
    'DEFAULTS',
    'ServerConfig',
    'ToolsConfig',
    'load_config',
]
