"""Shared fixtures for the MCP template server tests."""

import pytest

from mcp_template_server.config.settings import ServerConfig, ToolsConfig
from mcp_template_server.persistence.item_store import ItemStore
from mcp_template_server.registry import Dispatcher, OperationRegistry
from mcp_template_server.registry.operations import ItemOperations


@pytest.fixture
def config(tmp_path):
    """Configuration rooted in a temporary directory."""
    config = ServerConfig(
        server_name="test-server",
        version="9.9.9",
        data_dir=tmp_path / "data",
        output_dir=tmp_path / "output",
        tools=ToolsConfig(custom_tools_dir=tmp_path / "custom-tools"),
    )
    config.ensure_directories()
    return config


@pytest.fixture
def store(config):
    return ItemStore(config.data_dir, max_file_size=config.max_file_size)


@pytest.fixture
def registry():
    return OperationRegistry()


@pytest.fixture
def item_operations(store, config, registry):
    """Built-in item tools registered on a fresh registry."""
    operations = ItemOperations(store, config, registry)
    registry.register_all(operations.get_operations())
    return operations


@pytest.fixture
def dispatcher(registry, item_operations):
    return Dispatcher(registry)
