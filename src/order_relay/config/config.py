import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

import yaml

log = logging.getLogger("relay")

DEFAULT_API_PATH = "/order"
DEFAULT_TIMEOUT_MS = 20000
DEFAULT_RETRIES = 2
DEFAULT_BACKOFF_MS = 400


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


@dataclass(frozen=True)
class ProxyConfig:
    api_base_url: Optional[str] = None
    api_path: str = DEFAULT_API_PATH
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retries: int = DEFAULT_RETRIES
    backoff_ms: int = DEFAULT_BACKOFF_MS

    def default_destination(self) -> Optional[str]:
        """Join the base URL and path, keeping any path prefix on the base URL."""
        if not self.api_base_url:
            return None
        path = self.api_path or DEFAULT_API_PATH
        return self.api_base_url.rstrip("/") + ("" if path.startswith("/") else "/") + path


@dataclass(frozen=True)
class AppConfig:
    proxy: ProxyConfig
    username: str
    password: str
    production: bool
    catalog: Dict[str, List[Dict]]


def _int_env(name: str, default: int, minimum: int, errors: List[str]) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        errors.append(f"{name} must be an integer (got {raw!r})")
        return default
    if value < minimum:
        errors.append(f"{name} must be >= {minimum} (got {value})")
    return value


def load_catalog(path: str) -> Dict[str, List[Dict]]:
    """Read the product and user rows from a YAML file.

    Raises:
        ConfigurationError: If the file is missing or not a mapping of row lists.
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read catalog {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Catalog {path} must be a mapping")
    catalog = {}
    for table in ("products", "users"):
        rows = data.get(table) or []
        if not isinstance(rows, list):
            raise ConfigurationError(f"Catalog table '{table}' must be a list")
        catalog[table] = rows
    return catalog


def load_config() -> AppConfig:
    """Load and validate application configuration from the environment.

    Returns:
        A validated AppConfig instance.

    Raises:
        ConfigurationError: If required variables are missing, numeric settings
            are invalid, or the catalog file cannot be read.
    """
    required_env = {
        "APP_USERNAME": os.getenv("APP_USERNAME", "").strip(),
        "APP_PASSWORD": os.getenv("APP_PASSWORD", "").strip(),
    }

    missing = [key for key, value in required_env.items() if not value]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(sorted(missing))}"
        )

    errors: List[str] = []
    proxy = ProxyConfig(
        api_base_url=os.getenv("API_BASE_URL", "").strip() or None,
        api_path=os.getenv("API_PATH", "").strip() or DEFAULT_API_PATH,
        timeout_ms=_int_env("UPSTREAM_TIMEOUT_MS", DEFAULT_TIMEOUT_MS, 1, errors),
        retries=_int_env("UPSTREAM_RETRIES", DEFAULT_RETRIES, 0, errors),
        backoff_ms=_int_env("UPSTREAM_BACKOFF_MS", DEFAULT_BACKOFF_MS, 0, errors),
    )
    if errors:
        raise ConfigurationError("; ".join(errors))

    if not proxy.api_base_url:
        log.warning("Missing API_BASE_URL env (requests must carry 'url' in the body)")

    catalog_path = os.getenv("CATALOG_PATH", "").strip() or os.path.join(
        os.path.dirname(__file__), "catalog.yaml"
    )

    return AppConfig(
        proxy=proxy,
        username=required_env["APP_USERNAME"],
        password=required_env["APP_PASSWORD"],
        production=os.getenv("APP_ENV", "development").strip().lower() == "production",
        catalog=load_catalog(catalog_path),
    )
