"""
Configuration loader for the OpenCTI MCP server.

Loads settings from config.yaml. Environment variables are used ONLY for secrets
(OPENCTI_TOKEN, MCP_AUTH_TOKEN) and are never logged.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

OPENCTI_TOKEN_ENV = "OPENCTI_TOKEN"
MCP_AUTH_TOKEN_ENV = "MCP_AUTH_TOKEN"

LOGGING_KEYS = (
    "enable_pretty_print",
    "save_to_file",
    "log_file_path",
    "max_log_file_size",
    "backup_count",
)


class GatewayConfig(BaseModel):
    """Configuration for the HTTP gateway."""

    host: str = Field(default="127.0.0.1", description="Host to bind to")
    port: int = Field(default=3000, description="Port to bind to")
    endpoint: str = Field(default="/mcp", description="Path of the JSON-RPC POST endpoint")
    request_timeout: float = Field(
        default=60.0, description="Seconds to wait for a forwarded request before failing it"
    )
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="CORS origins")


class ServerInfoConfig(BaseModel):
    """Identity advertised during the MCP handshake."""

    name: str = Field(default="opencti-server", description="serverInfo.name")
    version: str = Field(default="0.1.0", description="serverInfo.version")
    protocol_version: str = Field(default="2025-06-18", description="MCP protocol version")
    instructions: Optional[str] = Field(
        default=None, description="Optional usage instructions returned by initialize"
    )


class OpenCTIConfig(BaseModel):
    """Connection settings for the OpenCTI GraphQL API."""

    url: str = Field(default="http://localhost:8080", description="OpenCTI base URL")
    graphql_path: str = Field(default="/graphql", description="GraphQL endpoint path")
    verify_ssl: bool = Field(
        default=False, description="Verify TLS certificates (off for self-signed deployments)"
    )
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")


class Config(BaseModel):
    """Main configuration object."""

    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    server: ServerInfoConfig = Field(default_factory=ServerInfoConfig)
    opencti: OpenCTIConfig = Field(default_factory=OpenCTIConfig)
    log_level: str = Field(default="INFO", description="Logging level")
    enable_pretty_print: bool = Field(
        default=False, description="Enable custom pretty print for debugging"
    )
    save_to_file: bool = Field(default=False, description="Save logs to file")
    log_file_path: str = Field(default="server.log", description="Log file path (relative to root)")
    max_log_file_size: int = Field(
        default=10485760, description="Max log file size in bytes (10MB)"
    )
    backup_count: int = Field(default=5, description="Number of backup log files to keep")


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from YAML file.

    Environment variables are used ONLY for secrets, not configuration.

    Args:
        config_path: Path to config.yaml file. Defaults to ./config.yaml

    Returns:
        Loaded configuration object
    """
    if config_path is None:
        config_path = Path("config.yaml")

    config_data: Dict[str, Any] = {}

    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

    # Flatten the nested logging block onto top-level fields
    logging_config = config_data.pop("logging", None) or {}
    if "level" in logging_config:
        config_data["log_level"] = logging_config["level"]
    for key in LOGGING_KEYS:
        if key in logging_config:
            config_data[key] = logging_config[key]

    return Config(**config_data)


def get_opencti_token() -> Optional[str]:
    """Read the OpenCTI API token from the environment."""
    return os.getenv(OPENCTI_TOKEN_ENV) or None


def get_mcp_auth_token() -> Optional[str]:
    """Read the optional MCP endpoint bearer token from the environment."""
    return os.getenv(MCP_AUTH_TOKEN_ENV) or None
