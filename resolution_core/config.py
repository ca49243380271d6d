# =============================================================================
# resolution_core/config.py
# Application Settings
# =============================================================================
"""
Settings are read from `.streamlit/secrets.toml`, then from the environment
(a `.env` file is loaded first if present). Explicit keyword overrides win.

Expected secrets.toml format:

    [notion]
    api_key = "secret_..."
    database_id = "0123abcd..."

    [app]
    db_path = "local_data/resolutions.db"
    cache_dir = "local_data/asset_cache"
    cache_version = "v1"
    request_timeout = 15
"""

from __future__ import annotations
import os
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from dotenv import load_dotenv

from resolution_core.errors import ConfigurationError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent
SECRETS_PATH = PROJECT_ROOT / ".streamlit" / "secrets.toml"

# Environment variable -> settings field
ENV_MAPPING = {
    "NOTION_API_KEY": "notion_api_key",
    "NOTION_DATABASE_ID": "notion_database_id",
    "NOTION_VERSION": "notion_version",
    "RESOLUTIONS_DB_PATH": "db_path",
    "RESOLUTIONS_CACHE_DIR": "cache_dir",
    "RESOLUTIONS_CACHE_VERSION": "cache_version",
    "RESOLUTIONS_REQUEST_TIMEOUT": "request_timeout",
    "RESOLUTIONS_APP_ORIGIN": "app_origin",
}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the tracker."""
    notion_api_key: Optional[str] = None
    notion_database_id: Optional[str] = None
    notion_version: str = "2022-06-28"
    notion_base_url: str = "https://api.notion.com/v1"
    request_timeout: float = 15.0
    db_path: Path = field(default_factory=lambda: PROJECT_ROOT / "local_data" / "resolutions.db")
    cache_dir: Path = field(default_factory=lambda: PROJECT_ROOT / "local_data" / "asset_cache")
    cache_version: str = "v1"
    app_origin: str = "http://localhost:8501"

    @property
    def remote_configured(self) -> bool:
        """True when both Notion credentials are present."""
        return bool(self.notion_api_key and self.notion_database_id)


def _read_secrets(path: Path) -> Dict[str, Any]:
    """Flatten the [notion] and [app] tables of secrets.toml into field names."""
    if not path.exists():
        return {}

    try:
        with open(path, "rb") as f:
            secrets = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return {}

    values: Dict[str, Any] = {}
    notion = secrets.get("notion", {})
    for key in ("api_key", "database_id", "version", "base_url"):
        if key in notion:
            values[f"notion_{key}"] = notion[key]
    values.update(secrets.get("app", {}))
    return values


def _read_environment() -> Dict[str, Any]:
    return {
        name: os.environ[var]
        for var, name in ENV_MAPPING.items()
        if os.environ.get(var)
    }


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(Settings)}
    unknown = set(values) - known
    if unknown:
        logger.debug(f"Ignoring unknown settings: {sorted(unknown)}")

    coerced = {k: v for k, v in values.items() if k in known}

    if "request_timeout" in coerced:
        try:
            coerced["request_timeout"] = float(coerced["request_timeout"])
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"request_timeout must be a number, got {coerced['request_timeout']!r}",
                config_key="request_timeout",
                expected_type="float",
            )
        if coerced["request_timeout"] <= 0:
            raise ConfigurationError(
                "request_timeout must be positive",
                config_key="request_timeout",
            )

    for key in ("db_path", "cache_dir"):
        if key in coerced:
            coerced[key] = Path(coerced[key])

    return coerced


def load_settings(
    secrets_path: Optional[Path] = None,
    use_env: bool = True,
    **overrides: Any,
) -> Settings:
    """
    Build Settings from secrets.toml, the environment and explicit overrides.

    Args:
        secrets_path: Alternate secrets.toml location
        use_env: Whether to consult environment variables (and .env)
        **overrides: Field values that take precedence over everything else

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If a value cannot be coerced to its field type
    """
    values = _read_secrets(secrets_path or SECRETS_PATH)

    if use_env:
        load_dotenv()
        values.update(_read_environment())

    values.update({k: v for k, v in overrides.items() if v is not None})

    settings = replace(Settings(), **_coerce(values))
    if not settings.remote_configured:
        logger.info("Notion credentials not configured; running without a remote store")
    return settings
