"""Main MCP server implementation for the tool template."""

import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional

from mcp import Tool
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, ErrorData, TextContent

from .config.settings import ServerConfig, load_config
from .persistence.item_store import ItemStore
from .registry import ArgumentValidationError, Dispatcher, OperationLoader, OperationRegistry

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


class TemplateMCPServer:
    """MCP server exposing the built-in item tools and any custom tools."""

    def __init__(self, config: Optional[ServerConfig] = None):
        """Load configuration, populate the registry and register MCP handlers."""
        self.config = config if config is not None else load_config()
        self.started_at = time.monotonic()

        self.registry = OperationRegistry()
        self.store = ItemStore(self.config.data_dir, max_file_size=self.config.max_file_size)
        self.load_report = OperationLoader(self.registry).load(
            self.config, store=self.store, started_at=self.started_at
        )
        self.dispatcher = Dispatcher(
            self.registry,
            timeout=self.config.timeout_seconds,
            validate_arguments=self.config.tools.validate_arguments,
        )

        # Create MCP server instance
        self.server = Server(self.config.server_name)

        # Register handlers
        self._register_handlers()

    def _register_handlers(self):
        """Register all MCP handlers."""
        self.server.list_tools()(self.handle_list_tools)
        # Arguments reach the dispatcher as received; schema checks are opt-in there
        self.server.call_tool(validate_input=False)(self.handle_call_tool)

    async def handle_list_tools(self) -> List[Tool]:
        """List all available tools."""
        tools = [
            Tool(
                name=entry["name"],
                description=entry["description"],
                inputSchema=entry["inputSchema"],
            )
            for entry in self.registry.list()
        ]
        logger.debug(f"Returning {len(tools)} available tools")
        return tools

    async def handle_call_tool(
        self, name: str, arguments: Optional[Dict[str, Any]]
    ) -> List[TextContent]:
        """Dispatch a tool call and serialize its result."""
        logger.info(f"Executing tool: {name}")
        response = await self.dispatcher.dispatch(name, arguments if arguments is not None else {})

        if not response["ok"]:
            error = response["error"]
            code = INVALID_PARAMS if error.get("code") == ArgumentValidationError.code else INTERNAL_ERROR
            raise McpError(ErrorData(
                code=code,
                message=f"Tool execution failed: {error['message']}",
                data=error.get("details"),
            ))

        result = response["data"]
        text = result if isinstance(result, str) else json.dumps(result, indent=2)
        return [TextContent(type="text", text=text)]

    async def run(self):
        """Run the MCP server over stdio."""
        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            logger.info(f"Server started: {self.config.server_name} v{self.config.version}")
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name=self.config.server_name,
                    server_version=self.config.version,
                    capabilities=self.server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={}
                    )
                )
            )


def main():
    """Main entry point for the MCP server."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    config = load_config()
    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("Starting MCP server...")
    server = TemplateMCPServer(config)
    try:
        asyncio.run(server.run())
    except KeyboardInterrupt:
        logger.info("Shutting down server...")


if __name__ == "__main__":
    main()
