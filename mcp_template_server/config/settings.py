"""
Server configuration.

Configuration is assembled from three layers, later layers winning:

1. Built-in defaults (``DEFAULTS``)
2. A JSON or YAML config file (first match of ``config_file_locations()``)
3. Environment variables (``ENV_MAPPING``)

Usage:
    from mcp_template_server.config import load_config

    config = load_config()
    config.data_dir          # Path
    config.tools.custom_tools_dir

Environment Variables:
    MCP_CONFIG_PATH      - Explicit config file path
    MCP_SERVER_NAME      - Server name advertised to clients
    MCP_VERSION          - Server version advertised to clients
    MCP_DEBUG            - true/false, enables debug logging
    MCP_DATA_DIR         - Directory holding items.json
    MCP_OUTPUT_DIR       - Output directory
    MCP_MAX_FILE_SIZE    - Largest data document in bytes
    MCP_TIMEOUT          - Per-tool timeout in milliseconds
    MCP_CUSTOM_TOOLS_DIR - Directory scanned for custom tool modules
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


DEFAULTS: Dict[str, Any] = {
    "serverName": "mcp-server",
    "version": "1.0.0",
    "debug": False,
    "dataDir": "./data",
    "outputDir": "./output",
    "maxFileSize": 10 * 1024 * 1024,  # 10MB
    "timeout": 30000,  # milliseconds
    "tools": {
        "enabled": True,
        "customToolsDir": "./custom-tools",
        "validateArguments": False,
    },
}

# Environment variable -> dotted config key
ENV_MAPPING: Dict[str, str] = {
    "MCP_SERVER_NAME": "serverName",
    "MCP_VERSION": "version",
    "MCP_DEBUG": "debug",
    "MCP_DATA_DIR": "dataDir",
    "MCP_OUTPUT_DIR": "outputDir",
    "MCP_MAX_FILE_SIZE": "maxFileSize",
    "MCP_TIMEOUT": "timeout",
    "MCP_CUSTOM_TOOLS_DIR": "tools.customToolsDir",
}

# Keys whose environment values are kept as raw strings
STRING_KEYS = frozenset({
    "serverName",
    "version",
    "dataDir",
    "outputDir",
    "tools.customToolsDir",
})


class ToolsConfig(BaseModel):
    """Custom tool discovery and dispatch options."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    enabled: bool = True
    custom_tools_dir: Optional[Path] = Field(default=None, alias="customToolsDir")
    validate_arguments: bool = Field(default=False, alias="validateArguments")


class ServerConfig(BaseModel):
    """Complete server configuration."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    server_name: str = Field(default="mcp-server", alias="serverName")
    version: str = "1.0.0"
    debug: bool = False
    data_dir: Path = Field(default=Path("./data"), alias="dataDir")
    output_dir: Path = Field(default=Path("./output"), alias="outputDir")
    max_file_size: int = Field(default=10 * 1024 * 1024, alias="maxFileSize")
    timeout: float = 30000
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    config_path: Optional[Path] = Field(default=None, exclude=True)

    @field_validator("server_name", "version", mode="before")
    def coerce_to_string(cls, v):
        """Accept numeric names and versions, e.g. ``version: 2.0`` in YAML."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("max_file_size")
    def validate_max_file_size(cls, v):
        """Reject non-positive document size limits."""
        if v <= 0:
            raise ValueError("maxFileSize must be positive")
        return v

    @field_validator("timeout")
    def validate_timeout(cls, v):
        """Reject non-positive timeouts."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000.0

    def ensure_directories(self) -> None:
        """Create the data and output directories if they are missing."""
        for directory in (self.data_dir, self.output_dir):
            directory.mkdir(parents=True, exist_ok=True)


# ============================================================================
# Loading
# ============================================================================

def config_file_locations(environ: Optional[Mapping[str, str]] = None) -> List[Path]:
    """Candidate config files, in search order."""
    environ = os.environ if environ is None else environ
    cwd = Path.cwd()
    locations = []
    explicit = environ.get("MCP_CONFIG_PATH")
    if explicit:
        locations.append(Path(explicit))
    locations.extend([
        cwd / "mcp-config.json",
        cwd / "config.json",
        cwd / "mcp-config.yaml",
        cwd / "mcp-config.yml",
        Path("/etc/mcp-server/config.json"),
    ])
    return locations


def find_config_file(environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """Return the first existing config file, if any."""
    for location in config_file_locations(environ):
        if location.is_file():
            return location
    return None


def read_config_file(file_path: Path) -> Dict[str, Any]:
    """
    Read a JSON or YAML config file.

    Args:
        file_path: Config file; ``.yaml``/``.yml`` are parsed as YAML,
            anything else as JSON

    Returns:
        Parsed mapping

    Raises:
        ValueError: If the file does not contain a mapping
    """
    with open(file_path, "r", encoding="utf-8") as f:
        if file_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {file_path} must contain a mapping")
    return data


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``source`` over ``target`` without mutating either."""
    output = copy.deepcopy(dict(target))
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(output.get(key), Mapping):
            output[key] = deep_merge(output[key], value)
        else:
            output[key] = copy.deepcopy(value)
    return output


def parse_env_value(value: str) -> Union[bool, int, float, str]:
    """Parse an environment string into bool, number or string."""
    if value == "true":
        return True
    if value == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


def set_nested_value(data: Dict[str, Any], dotted_key: str, value: Any) -> None:
    keys = dotted_key.split(".")
    current = data
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


def environment_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect config overrides from ``ENV_MAPPING`` variables."""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for env_var, config_key in ENV_MAPPING.items():
        value = environ.get(env_var)
        if value:
            parsed = value if config_key in STRING_KEYS else parse_env_value(value)
            set_nested_value(overrides, config_key, parsed)
    return overrides


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    create_dirs: bool = True,
) -> ServerConfig:
    """
    Load configuration from defaults, config file and environment.

    Args:
        config_path: Explicit config file (skips the search)
        environ: Environment mapping (defaults to ``os.environ``)
        create_dirs: Create the data and output directories

    Returns:
        Validated ServerConfig

    Raises:
        pydantic.ValidationError: If the merged configuration is invalid
    """
    data = copy.deepcopy(DEFAULTS)

    file_path = Path(config_path) if config_path else find_config_file(environ)
    if file_path is not None:
        try:
            data = deep_merge(data, read_config_file(file_path))
            logger.info(f"Loaded configuration from: {file_path}")
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config file {file_path}: {e}")
            file_path = None

    data = deep_merge(data, environment_overrides(environ))

    config = ServerConfig.model_validate(data)
    config.config_path = file_path

    if create_dirs:
        config.ensure_directories()

    return config
