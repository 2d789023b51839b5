"""Configuration system for the page snapshot CLI with precedence handling.

Sources are merged with this precedence:
CLI flags > environment variables > config files > defaults
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from ..capture.browser_factory import BrowserConfig, BrowserEngineType
from ..capture.config import CaptureConfig
from ..capture.page_session import PageSessionConfig, WaitStrategy
from ..persistence.config import StoreConfig
from ..persistence.expiration import NEVER, parse_expiration


class ServerConfig(BaseModel):
    """Snapshot store settings (client side and serve command)."""
    api_url: str = Field(default="http://localhost:8000", description="Snapshot store base URL")
    host: str = Field(default="127.0.0.1", description="Bind address for serve")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port for serve")
    backend: str = Field(default="local", description="Storage backend for serve")
    storage_path: Path = Field(default=Path("./snapshots"), description="Storage directory for serve")
    public_base_url: Optional[str] = Field(default=None, description="Public URL prefix for snapshot links")

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v):
        if v not in ('memory', 'local'):
            raise ValueError("backend must be one of: memory, local")
        return v


class CaptureSection(BaseModel):
    """Capture pipeline settings."""
    expires: Optional[str] = Field(default=None, description="Default expiration string")
    fetch_timeout_seconds: float = Field(default=10.0, gt=0, le=120.0)
    image_load_timeout_seconds: float = Field(default=2.0, ge=0, le=30.0)
    max_import_depth: int = Field(default=5, ge=0, le=32)
    max_concurrent_fetches: Optional[int] = Field(default=None, ge=1)

    @field_validator('expires')
    @classmethod
    def normalize_expires(cls, v):
        if v is None:
            return v
        return v.strip().lower()


class BrowserSection(BaseModel):
    """Browser and page load settings."""
    engine: str = Field(default=BrowserEngineType.CHROMIUM, description="Browser engine")
    headful: bool = Field(default=False, description="Run browser with GUI")
    window_width: int = Field(default=1920, ge=320)
    window_height: int = Field(default=1080, ge=240)
    user_agent: Optional[str] = Field(default=None)
    ignore_https_errors: bool = Field(default=False)
    wait_strategy: str = Field(default=WaitStrategy.NETWORKIDLE)
    wait_timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)

    @field_validator('engine')
    @classmethod
    def validate_engine(cls, v):
        if v not in BrowserEngineType.ALL:
            raise ValueError(f"engine must be one of: {', '.join(BrowserEngineType.ALL)}")
        return v

    @field_validator('wait_strategy')
    @classmethod
    def validate_wait_strategy(cls, v):
        if v not in WaitStrategy.ALL:
            raise ValueError(f"wait_strategy must be one of: {', '.join(WaitStrategy.ALL)}")
        return v


class OutputConfig(BaseModel):
    """Output configuration options."""
    verbose: bool = Field(default=False, description="Verbose output")
    quiet: bool = Field(default=False, description="Quiet mode")
    json_output: bool = Field(default=False, description="Print results as JSON")


class CLIConfiguration(BaseModel):
    """Complete CLI configuration with all sections."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    capture: CaptureSection = Field(default_factory=CaptureSection)
    browser: BrowserSection = Field(default_factory=BrowserSection)
    output: OutputConfig = Field(default_factory=OutputConfig)

    # Metadata
    config_file_path: Optional[Path] = Field(default=None, description="Source config file")
    loaded_from: List[str] = Field(default_factory=list, description="Configuration sources")

    def to_capture_config(self) -> CaptureConfig:
        return CaptureConfig(
            fetch_timeout_seconds=self.capture.fetch_timeout_seconds,
            image_load_timeout_seconds=self.capture.image_load_timeout_seconds,
            max_import_depth=self.capture.max_import_depth,
            max_concurrent_fetches=self.capture.max_concurrent_fetches,
        )

    def to_browser_config(self) -> BrowserConfig:
        return BrowserConfig(
            engine=self.browser.engine,
            headless=not self.browser.headful,
            viewport={'width': self.browser.window_width, 'height': self.browser.window_height},
            user_agent=self.browser.user_agent,
            ignore_https_errors=self.browser.ignore_https_errors,
        )

    def to_session_config(self) -> PageSessionConfig:
        return PageSessionConfig(
            wait_strategy=self.browser.wait_strategy,
            wait_timeout_ms=int(self.browser.wait_timeout_seconds * 1000),
        )

    def to_store_config(self) -> StoreConfig:
        return StoreConfig(
            backend=self.server.backend,
            storage_path=str(self.server.storage_path),
            public_base_url=self.server.public_base_url,
        )


class ConfigurationLoader:
    """Loads and merges configuration from multiple sources with proper precedence."""

    ENV_PREFIX = "PAGE_SNAPSHOT_"

    # Searched in order
    DEFAULT_CONFIG_FILES = [
        "page-snapshot.yaml",
        "page-snapshot.yml",
        ".page-snapshot.yaml",
        ".page-snapshot.yml",
        "page-snapshot.json",
        ".page-snapshot.json"
    ]

    BOOLEAN_KEYS = ('.headful', '.ignore_https_errors', '.verbose', '.quiet', '.json_output')
    FLOAT_KEYS = ('.fetch_timeout_seconds', '.image_load_timeout_seconds', '.wait_timeout_seconds')
    INT_KEYS = ('.port', '.max_import_depth', '.max_concurrent_fetches', '.window_width', '.window_height')

    def __init__(self):
        self.loaded_sources: List[str] = []

    def load_configuration(
        self,
        config_file: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        search_paths: Optional[List[Path]] = None
    ) -> CLIConfiguration:
        """Load configuration with proper precedence.

        Precedence (highest to lowest):
        1. CLI overrides (flags)
        2. Environment variables
        3. Specified config file
        4. Auto-discovered config files
        5. Defaults

        Args:
            config_file: Explicitly specified config file
            cli_overrides: CLI flag overrides
            search_paths: Paths to search for config files

        Returns:
            Merged configuration
        """
        self.loaded_sources = ["defaults"]
        config_data: Dict[str, Any] = {}

        if not config_file:
            discovered_config = self._discover_config_file(search_paths or [Path.cwd()])
            if discovered_config:
                source = discovered_config.pop('_source_file')
                config_data = self._merge_config(config_data, discovered_config)
                self.loaded_sources.append(f"auto-discovered: {source}")

        if config_file:
            if not config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_file}")

            config_data = self._merge_config(config_data, self._load_config_file(config_file))
            self.loaded_sources.append(f"config file: {config_file}")

        env_config = self._load_environment_variables()
        if env_config:
            config_data = self._merge_config(config_data, env_config)
            self.loaded_sources.append("environment variables")

        if cli_overrides:
            config_data = self._merge_config(config_data, cli_overrides)
            self.loaded_sources.append("CLI flags")

        config_data["loaded_from"] = self.loaded_sources
        if config_file:
            config_data["config_file_path"] = config_file

        return CLIConfiguration(**config_data)

    def _discover_config_file(self, search_paths: List[Path]) -> Optional[Dict[str, Any]]:
        """Discover configuration file in search paths."""
        for search_path in search_paths:
            for config_filename in self.DEFAULT_CONFIG_FILES:
                config_path = search_path / config_filename
                if config_path.exists() and config_path.is_file():
                    config_data = self._load_config_file(config_path)
                    config_data["_source_file"] = str(config_path)
                    return config_data
        return None

    def _load_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML or JSON file."""
        suffix = config_path.suffix.lower()
        if suffix not in ('.yaml', '.yml', '.json'):
            raise ValueError(f"Unsupported config file format: {config_path.suffix}")

        try:
            content = config_path.read_text(encoding='utf-8')
            if suffix == '.json':
                data = json.loads(content)
            else:
                data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file {config_path}: {e}")
        except OSError as e:
            raise ValueError(f"Error loading config file {config_path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        env_mapping = {
            f"{self.ENV_PREFIX}API_URL": "server.api_url",
            f"{self.ENV_PREFIX}HOST": "server.host",
            f"{self.ENV_PREFIX}PORT": "server.port",
            f"{self.ENV_PREFIX}STORE_BACKEND": "server.backend",
            f"{self.ENV_PREFIX}STORAGE_PATH": "server.storage_path",
            f"{self.ENV_PREFIX}PUBLIC_BASE_URL": "server.public_base_url",
            f"{self.ENV_PREFIX}EXPIRES": "capture.expires",
            f"{self.ENV_PREFIX}FETCH_TIMEOUT": "capture.fetch_timeout_seconds",
            f"{self.ENV_PREFIX}IMAGE_TIMEOUT": "capture.image_load_timeout_seconds",
            f"{self.ENV_PREFIX}MAX_IMPORT_DEPTH": "capture.max_import_depth",
            f"{self.ENV_PREFIX}MAX_CONCURRENT_FETCHES": "capture.max_concurrent_fetches",
            f"{self.ENV_PREFIX}ENGINE": "browser.engine",
            f"{self.ENV_PREFIX}HEADFUL": "browser.headful",
            f"{self.ENV_PREFIX}USER_AGENT": "browser.user_agent",
            f"{self.ENV_PREFIX}IGNORE_HTTPS_ERRORS": "browser.ignore_https_errors",
            f"{self.ENV_PREFIX}WAIT_STRATEGY": "browser.wait_strategy",
            f"{self.ENV_PREFIX}WAIT_TIMEOUT": "browser.wait_timeout_seconds",
            f"{self.ENV_PREFIX}VERBOSE": "output.verbose",
            f"{self.ENV_PREFIX}QUIET": "output.quiet",
        }

        for env_var, config_path in env_mapping.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                self._set_nested_value(config, config_path, self._convert_env_value(env_value, config_path))

        return config

    def _convert_env_value(self, value: str, config_path: str) -> Any:
        """Convert environment variable string to appropriate type."""
        if config_path.endswith(self.BOOLEAN_KEYS):
            return value.lower() in ('true', '1', 'yes', 'on')

        if config_path.endswith(self.FLOAT_KEYS):
            return float(value)

        if config_path.endswith(self.INT_KEYS):
            return int(value)

        if config_path.endswith('.storage_path'):
            return Path(value)

        return value

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any):
        """Set a nested configuration value using dot notation."""
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge configuration dictionaries, with override taking precedence."""
        if not override:
            return base

        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result


def load_configuration(
    config_file: Optional[Path] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    search_paths: Optional[List[Path]] = None
) -> CLIConfiguration:
    """Convenience function to load configuration."""
    loader = ConfigurationLoader()
    return loader.load_configuration(config_file, cli_overrides, search_paths)


def print_configuration(config: CLIConfiguration, format: str = "yaml") -> str:
    """Render configuration for debugging.

    Args:
        config: Configuration to render
        format: Output format (yaml, json)

    Returns:
        Formatted configuration string
    """
    config_dict = config.model_dump(
        mode="json",
        exclude={'loaded_from', 'config_file_path'},
        exclude_none=False
    )

    if format.lower() == "json":
        return json.dumps(config_dict, indent=2, default=str)
    return yaml.safe_dump(config_dict, default_flow_style=False, sort_keys=True)


def validate_configuration(config: CLIConfiguration) -> List[str]:
    """Validate configuration and return list of validation errors.

    Args:
        config: Configuration to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    if not config.server.api_url.startswith(('http://', 'https://')):
        errors.append(f"api_url must be an http(s) URL: {config.server.api_url}")

    if config.capture.expires is not None:
        if config.capture.expires != NEVER and parse_expiration(config.capture.expires) is None:
            errors.append(f"Invalid expiration '{config.capture.expires}': use <n>d, <n>h, <n>m or never")

    if config.output.verbose and config.output.quiet:
        errors.append("Cannot use verbose and quiet modes together")

    return errors
