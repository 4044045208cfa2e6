"""
Configuration management for dircat.

Handles loading and saving user configuration from:
- XDG config directory: ~/.config/dircat/config.json
- Fallback: ~/.dircat/config.json
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """Web server configuration."""
    host: str = "0.0.0.0"
    port: int = 8080
    prefix: str = "/opds/v1"


@dataclass
class CatalogConfig:
    """Catalog settings."""
    root: str = "./books"
    title: str = "Catalog in"
    # Extra book formats: extension -> MIME type
    extra_types: Dict[str, str] = field(default_factory=dict)


@dataclass
class DircatConfig:
    """Main dircat configuration."""
    server: ServerConfig = field(default_factory=ServerConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "server": asdict(self.server),
            "catalog": asdict(self.catalog),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DircatConfig':
        """Create from dictionary."""
        server_data = data.get("server", {})
        catalog_data = data.get("catalog", {})
        return cls(
            server=ServerConfig(**server_data),
            catalog=CatalogConfig(**catalog_data),
        )


def get_config_path() -> Path:
    """
    Get configuration file path.

    Follows XDG Base Directory specification:
    1. $XDG_CONFIG_HOME/dircat/config.json (usually ~/.config/dircat/config.json)
    2. Fallback: ~/.dircat/config.json

    Returns:
        Path to config file
    """
    xdg_config_home = Path.home() / ".config"
    if xdg_config_home.exists():
        config_dir = xdg_config_home / "dircat"
    else:
        config_dir = Path.home() / ".dircat"

    return config_dir / "config.json"


def load_config(config_path: Optional[Path] = None) -> DircatConfig:
    """
    Load configuration from file.

    Args:
        config_path: Explicit file, defaults to get_config_path()

    Returns:
        DircatConfig instance with loaded values or defaults
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        return DircatConfig()

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
        return DircatConfig.from_dict(data)
    except (json.JSONDecodeError, OSError, TypeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Using default configuration")
        return DircatConfig()


def save_config(config: DircatConfig, config_path: Optional[Path] = None) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to save
        config_path: Explicit file, defaults to get_config_path()

    Returns:
        Path the configuration was written to
    """
    config_path = config_path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def update_config(
    # Server settings
    server_host: Optional[str] = None,
    server_port: Optional[int] = None,
    server_prefix: Optional[str] = None,
    # Catalog settings
    catalog_root: Optional[str] = None,
    catalog_title: Optional[str] = None,
    catalog_extra_types: Optional[Dict[str, str]] = None,
    config_path: Optional[Path] = None,
) -> DircatConfig:
    """
    Update configuration.

    Only updates provided values, leaving others unchanged.
    """
    config = load_config(config_path)

    if server_host is not None:
        config.server.host = server_host
    if server_port is not None:
        config.server.port = server_port
    if server_prefix is not None:
        config.server.prefix = server_prefix

    if catalog_root is not None:
        config.catalog.root = catalog_root
    if catalog_title is not None:
        config.catalog.title = catalog_title
    if catalog_extra_types is not None:
        config.catalog.extra_types.update(catalog_extra_types)

    save_config(config, config_path)
    return config
