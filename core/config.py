"""Configuration models and loading."""

import json
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from core.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "neon-auth-proxy"
CONFIG_FILE = CONFIG_DIR / "config.json"

# Environment variable -> (section, field)
ENV_OVERRIDES = {
    "NEON_AUTH_BASE_URL": ("auth", "base_url"),
    "NEON_AUTH_LOGIN_URL": ("auth", "login_url"),
    "NEON_AUTH_ROUTE_PREFIX": ("auth", "route_prefix"),
    "NEON_AUTH_MATCHED_ROUTES": ("auth", "matched_routes"),
    "NEON_AUTH_FORWARD_QUERY": ("auth", "forward_query"),
    "NEON_AUTH_TIMEOUT": ("auth", "timeout"),
    "PROXY_HOST": ("proxy", "host"),
    "PROXY_PORT": ("proxy", "port"),
    "PROXY_DEBUG": ("proxy", "debug"),
}


class ProxySettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 3000
    debug: bool = False


class AuthSettings(BaseModel):
    base_url: str
    login_url: str = "/auth/sign-in"
    route_prefix: str = "/api/auth"
    matched_routes: list[str] = Field(default_factory=list)
    forward_query: bool = True
    timeout: float | None = None

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("base_url must not be empty")
        return value

    @field_validator("route_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        value = value.strip().strip("/")
        if not value:
            raise ValueError("route_prefix must not be the root path")
        return "/" + value

    @field_validator("matched_routes", mode="before")
    @classmethod
    def _split_routes(cls, value):
        if isinstance(value, str):
            return [route.strip() for route in value.split(",") if route.strip()]
        return value


class Config(BaseModel):
    version: int = 1
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    auth: AuthSettings


def load_config(
    path: Path = CONFIG_FILE,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from the optional JSON file plus environment overrides.

    The upstream base URL is required; a missing or invalid value is a
    startup error, raised as ConfigurationError.
    """
    environ = os.environ if environ is None else environ

    data: dict = {}
    if path.exists():
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid config file {path}: expected an object")

    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is not None and value != "":
            data.setdefault(section, {})[field] = value

    if not data.get("auth", {}).get("base_url"):
        raise ConfigurationError(
            "Upstream auth base URL not configured (set NEON_AUTH_BASE_URL)"
        )

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
