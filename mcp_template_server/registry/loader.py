"""
Operation loader - brings a registry to its startup state.

Registers the built-in tools, then scans the custom tools directory and
imports every ``*.py`` file in it. A custom tool module must expose:

    TOOL = {
        "name": "my_tool",
        "description": "...",
        "inputSchema": {...},
        "handler": async_or_sync_callable,   # handler(args: dict) -> result
    }

(``TOOL`` may also be an ``OperationDescriptor``.) A file that fails to
import or does not expose a valid ``TOOL`` is reported and skipped.
"""

import importlib.util
import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

from ..config.settings import ServerConfig
from ..persistence.item_store import ItemStore
from .operation_registry import LoadFailure, OperationRegistry, OperationRegistryError
from .operations import register_builtin_operations

logger = logging.getLogger(__name__)

TOOL_FILE_SUFFIX = ".py"
TOOL_ATTRIBUTE = "TOOL"
MODULE_PREFIX = "_mcp_custom_tool_"


@dataclass
class LoadReport:
    """Outcome of a loader pass."""
    builtin: List[str] = field(default_factory=list)
    loaded: List[str] = field(default_factory=list)
    failures: List[LoadFailure] = field(default_factory=list)


class OperationLoader:
    """Populates an OperationRegistry from built-in and custom sources."""

    def __init__(self, registry: OperationRegistry):
        self.registry = registry

    def load(
        self,
        config: ServerConfig,
        store: Optional[ItemStore] = None,
        started_at: Optional[float] = None,
    ) -> LoadReport:
        """
        Register built-in tools, then custom tools from the configured directory.

        Args:
            config: Server configuration
            store: Item store for the built-in tools (defaults to one under
                ``config.data_dir``)
            started_at: Monotonic start time reported by ``get_status``

        Returns:
            LoadReport

        Raises:
            OperationRegistryError: If a built-in tool cannot be registered
        """
        report = LoadReport()

        if store is None:
            store = ItemStore(config.data_dir, max_file_size=config.max_file_size)
        started_at = time.monotonic() if started_at is None else started_at
        report.builtin = register_builtin_operations(self.registry, store, config, started_at)

        tools_dir = config.tools.custom_tools_dir
        if config.tools.enabled and tools_dir:
            custom = self.load_directory(tools_dir)
            report.loaded = custom.loaded
            report.failures = custom.failures
        else:
            logger.debug("Custom tools disabled")

        logger.info(
            f"Tool registry ready: {len(self.registry)} tools "
            f"({len(report.loaded)} custom, {len(report.failures)} failed)"
        )
        return report

    def load_directory(self, tools_dir: Union[str, Path]) -> LoadReport:
        """
        Import every tool module in ``tools_dir`` in filename order.

        A missing directory is not an error. Each file is isolated: a
        failure is recorded in the report and the scan continues.

        Args:
            tools_dir: Directory to scan; relative paths resolve against
                the current working directory

        Returns:
            LoadReport with ``loaded`` and ``failures`` filled in
        """
        report = LoadReport()
        directory = Path(tools_dir)
        if not directory.is_absolute():
            directory = Path.cwd() / directory

        if not directory.is_dir():
            logger.info(f"Custom tools directory not found: {directory}")
            return report

        tool_files = sorted(
            (p for p in directory.iterdir()
             if p.is_file() and p.suffix == TOOL_FILE_SUFFIX),
            key=lambda p: p.name,
        )

        for tool_file in tool_files:
            try:
                descriptor = self.registry.register(self._load_tool(tool_file))
            except LoadFailure as e:
                report.failures.append(e)
                logger.error(str(e))
                continue
            except OperationRegistryError as e:
                failure = LoadFailure(tool_file.name, str(e))
                report.failures.append(failure)
                logger.error(str(failure))
                continue

            report.loaded.append(descriptor.name)
            logger.info(f"Loaded custom tool '{descriptor.name}' from: {tool_file.name}")

        return report

    def _load_tool(self, file_path: Path) -> Any:
        """
        Import a tool module and return its ``TOOL`` export.

        Raises:
            LoadFailure: If the module cannot be imported or exports no TOOL
        """
        module_name = f"{MODULE_PREFIX}{file_path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, file_path)
        if spec is None or spec.loader is None:
            raise LoadFailure(file_path.name, "could not create import spec")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except (Exception, SystemExit) as e:
            sys.modules.pop(module_name, None)
            raise LoadFailure(file_path.name, f"{type(e).__name__}: {e}") from e

        tool = getattr(module, TOOL_ATTRIBUTE, None)
        if tool is None:
            raise LoadFailure(file_path.name, f"module does not export {TOOL_ATTRIBUTE}")
        return tool
