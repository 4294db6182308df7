"""
MCPChat Configuration - Configuration loading and validation.

This module provides the Config class for managing MCPChat configuration
from both global (~/.mcpchat/config.yaml) and local (.mcpchat/config.yaml)
sources, with environment variables as a fallback for unset values.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from mcpchat.errors import ConfigError


class ModelConfig(BaseModel):
    """Configuration for the generative model endpoint."""

    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    # Turning this off accepts any certificate; it is logged loudly when used.
    verify_tls: bool = True
    timeout: float = 60.0


class ServerConfig(BaseModel):
    """Configuration for the MCP tool server executable."""

    command: Optional[str] = None
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    timeout: float = 30.0
    protocol_version: str = "2024-11-05"


class MCPChatConfig(BaseModel):
    """Complete MCPChat configuration schema."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


class Config:
    """
    MCPChat configuration manager.

    Handles loading, merging, and validating configuration from:
    - Global: ~/.mcpchat/config.yaml
    - Local: .mcpchat/config.yaml (project-specific)

    Local configuration overrides global configuration.

    Example:
        >>> config = Config.load()
        >>> config.get_endpoint()
        'https://generativelanguage.googleapis.com/...'
    """

    GLOBAL_CONFIG_DIR = Path.home() / ".mcpchat"
    LOCAL_CONFIG_DIR = Path(".mcpchat")

    ENV_API_KEY = "GEMINI_API_KEY"
    ENV_ENDPOINT = "GEMINI_ENDPOINT"
    ENV_SERVER_PATH = "MCP_SERVER_PATH"

    def __init__(
        self,
        global_config: Optional[Dict[str, Any]] = None,
        local_config: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize Config.

        Args:
            global_config: Global configuration dictionary.
            local_config: Local (project) configuration dictionary.
        """
        self._global_config = global_config or {}
        self._local_config = local_config or {}
        self._merged: Optional[MCPChatConfig] = None

    @classmethod
    def load(cls) -> "Config":
        """
        Load configuration from default locations.

        Returns:
            Config instance with loaded configuration.
        """
        global_config = cls._load_yaml(cls.GLOBAL_CONFIG_DIR / "config.yaml")
        local_config = cls._load_yaml(cls._find_local_config())

        return cls(global_config=global_config, local_config=local_config)

    @classmethod
    def _load_yaml(cls, path: Optional[Path]) -> Dict[str, Any]:
        """Load YAML file if it exists."""
        if path is None or not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if data else {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}")

    @classmethod
    def _find_local_config(cls) -> Optional[Path]:
        """Find the local config file by walking up the directory tree."""
        current = Path.cwd()
        while current != current.parent:
            config_path = current / cls.LOCAL_CONFIG_DIR / "config.yaml"
            if config_path.exists():
                return config_path
            current = current.parent
        return None

    def get_merged_config(self) -> Dict[str, Any]:
        """Get the merged configuration as a dictionary."""
        return self._deep_merge(self._global_config.copy(), self._local_config)

    @property
    def merged(self) -> MCPChatConfig:
        """Get the validated merged configuration."""
        if self._merged is None:
            try:
                self._merged = MCPChatConfig(**self.get_merged_config())
            except (ValidationError, TypeError) as e:
                raise ConfigError(f"Invalid configuration: {e}")
        return self._merged

    def override(self, section: str, **values: Any) -> None:
        """Apply run-time overrides (e.g. from CLI flags) on top of local config."""
        target = self._local_config.setdefault(section, {})
        for key, value in values.items():
            if value is not None:
                target[key] = value
        self._merged = None  # Reset cache

    # ── Resolved values ───────────────────────────────────────────────────

    def get_api_key(self) -> Optional[str]:
        """
        Get the model bearer credential.

        Checks config first, then the environment.
        """
        return self.merged.model.api_key or os.environ.get(self.ENV_API_KEY)

    def get_endpoint(self) -> Optional[str]:
        return self.merged.model.endpoint or os.environ.get(self.ENV_ENDPOINT)

    def get_server_command(self) -> Optional[str]:
        return self.merged.server.command or os.environ.get(self.ENV_SERVER_PATH)

    def require(self) -> None:
        """Raise ConfigError naming every missing required value."""
        missing = []
        if not self.get_endpoint():
            missing.append(f"model.endpoint (or {self.ENV_ENDPOINT})")
        if not self.get_api_key():
            missing.append(f"model.api_key (or {self.ENV_API_KEY})")
        if not self.get_server_command():
            missing.append(f"server.command (or {self.ENV_SERVER_PATH})")
        if missing:
            raise ConfigError("Missing configuration: " + ", ".join(missing))

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    @classmethod
    def create_default_global(cls) -> Path:
        """Create default global configuration file."""
        config_dir = cls.GLOBAL_CONFIG_DIR
        config_file = config_dir / "config.yaml"

        if config_file.exists():
            return config_file

        config_dir.mkdir(parents=True, exist_ok=True)

        default_config = {
            "model": {
                "endpoint": None,  # Set via GEMINI_ENDPOINT env var
                "api_key": None,  # Set via GEMINI_API_KEY env var
                "verify_tls": True,
                "timeout": 60,
            },
            "server": {
                "command": None,  # Set via MCP_SERVER_PATH env var
                "args": [],
                "timeout": 30,
                "protocol_version": "2024-11-05",
            },
        }

        with open(config_file, "w") as f:
            yaml.dump(default_config, f, default_flow_style=False, sort_keys=False)

        return config_file
