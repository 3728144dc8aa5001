"""Configuration loaded from ``autoswagger.yaml``.

Example::

    title: Shop API
    output_file: public/swagger/swagger.json
    api_prefix: api
    routes: app.routes:ROUTES
    scan:
      models: [app.models]
      require_api_swagger: false
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from autoswagger.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "autoswagger.yaml"


def _default_title() -> str:
    return f"{os.environ.get('APP_NAME') or 'Application'} API"


def _default_servers() -> list[dict[str, Any]]:
    return [{"url": os.environ.get("APP_URL") or "http://localhost", "description": "Default Server"}]


class ScanSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    models: list[Any] = []
    model_namespaces: list[str] = ["app.models", "app"]
    controllers: list[Any] = []
    use_docstrings: bool = True
    require_api_swagger: bool = False
    analyze_routes: bool = True
    source_scanning: bool = True


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str = Field(default_factory=_default_title)
    description: str = "API Documentation"
    version: str = "1.0.0"
    servers: list[dict[str, Any]] = Field(default_factory=_default_servers)
    security_schemes: dict[str, dict[str, Any]] = Field(
        default_factory=lambda: {"bearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        alias="securityDefinitions",
    )
    security: list[dict[str, list[str]]] = [{"bearerAuth": []}]
    output_file: str = "public/swagger/swagger.json"
    api_prefix: str = "api"
    exclude_prefixes: list[str] = ["telescope", "horizon", "sanctum", "_ignition", "_debugbar"]
    routes: Any = None
    scan: ScanSettings = Field(default_factory=ScanSettings)


def load_settings(path: str | Path | None = None, **overrides: Any) -> Settings:
    """Load settings from YAML.

    Without ``path`` the default file is used when it exists, else defaults.
    An explicitly given file must exist and be valid.
    """
    explicit = path is not None
    path = Path(path) if explicit else Path(DEFAULT_CONFIG_FILE)

    data: dict[str, Any] = {}
    if path.exists():
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read configuration file {path}: {exc}") from exc
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"Configuration file {path} must contain a mapping")
        data = loaded or {}
        logger.debug("Loaded configuration from %s", path)
    elif explicit:
        raise ConfigError(f"Configuration file not found: {path}")

    data.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc
