"""
Centralized configuration loader for the ThreadForge API.

Loads settings from ``config/settings.yaml`` and environment variables,
providing sensible defaults when the configuration file is absent.
Environment variables always win over YAML for secrets and
deployment-specific values.

Provides:
    - XaiConfig: Chat-completion provider settings (xAI / Grok)
    - SerperConfig: Web-search provider settings (Serper)
    - RateLimitConfig: Fixed-window quotas per policy
    - ServerConfig: CORS, gateway token, static front-end directory
    - Settings: Global application settings loaded from YAML + env vars
    - get_settings() / reset_settings(): Singleton accessor
    - validate_env(): Startup validation of required environment variables
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from threadforge.exceptions import ConfigurationError

# ---------------------------------------------------------------------------
# Load .env file (no-op if file does not exist)
# ---------------------------------------------------------------------------
load_dotenv()

# ---------------------------------------------------------------------------
# Project root directory (parent of threadforge/)
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)


def _env_override(
    target: Any, env_map: Dict[str, str], casts: Optional[Dict[str, Callable[[str], Any]]] = None
) -> None:
    """
    Apply environment variable overrides onto a config dataclass in place.

    Args:
        target: Dataclass instance to mutate.
        env_map: ``ENV_VAR -> attribute`` mapping.
        casts: Optional ``attribute -> cast`` mapping for non-string fields.

    Raises:
        ConfigurationError: If a value cannot be cast to the field type.
    """
    casts = casts or {}
    for env_key, attr_name in env_map.items():
        env_val = os.environ.get(env_key)
        if env_val is None or env_val == "":
            continue
        cast_fn = casts.get(attr_name, str)
        try:
            setattr(target, attr_name, cast_fn(env_val))
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(
                f"Invalid value for env var {env_key}='{env_val}': {exc}"
            ) from exc


def _from_mapping(cls: Any, data: Dict[str, Any]) -> Any:
    """Build a config dataclass from a YAML section, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        logger.warning(
            "Ignoring unknown %s keys in settings YAML: %s", cls.__name__, sorted(unknown)
        )
    return cls(**{k: v for k, v in data.items() if k in known})


# ===========================================================================
# PROVIDER CONFIGURATION
# ===========================================================================


@dataclass
class XaiConfig:
    """
    xAI chat-completion settings.

    ``model`` is used for thread generation, profile analysis and tweet
    improvement; ``light_model`` for search-query generation and research
    synthesis.
    """

    api_key: str = ""
    base_url: str = "https://api.x.ai/v1"
    model: str = "grok-2-latest"
    light_model: str = "grok-3-mini-fast"
    timeout_seconds: float = 60.0

    def __post_init__(self) -> None:
        _env_override(
            self,
            {
                "XAI_API_KEY": "api_key",
                "XAI_BASE_URL": "base_url",
                "XAI_MODEL": "model",
                "XAI_LIGHT_MODEL": "light_model",
                "XAI_TIMEOUT_SECONDS": "timeout_seconds",
            },
            {"timeout_seconds": float},
        )

    @property
    def effective_model(self) -> str:
        """Main model, falling back to the default when blank."""
        return self.model.strip() or "grok-2-latest"

    @property
    def effective_light_model(self) -> str:
        """Light model, falling back to the default when blank."""
        return self.light_model.strip() or "grok-3-mini-fast"


@dataclass
class SerperConfig:
    """Serper (Google search) settings. Search is skipped without a key."""

    api_key: str = ""
    base_url: str = "https://google.serper.dev"
    timeout_seconds: float = 8.0

    def __post_init__(self) -> None:
        _env_override(
            self,
            {
                "SERPER_API_KEY": "api_key",
                "SERPER_BASE_URL": "base_url",
                "SERPER_TIMEOUT_SECONDS": "timeout_seconds",
            },
            {"timeout_seconds": float},
        )


@dataclass
class SupabaseConfig:
    """Supabase configuration.

    Attributes:
        url: The Supabase project URL (``SUPABASE_URL``).
        key: The service-role key for full server-side access
            (``SUPABASE_SERVICE_KEY``).
    """

    url: str = ""
    key: str = ""

    def __post_init__(self) -> None:
        _env_override(self, {"SUPABASE_URL": "url", "SUPABASE_SERVICE_KEY": "key"})

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)


# ===========================================================================
# RATE LIMITING
# ===========================================================================


@dataclass
class RateLimitConfig:
    """
    Fixed-window quotas.

    ``thread_generation`` guards every endpoint that calls the LLM
    (generate, regenerate-tweet, profile analysis, tweet improvement).
    """

    enabled: bool = True
    thread_generation_limit: int = 20
    thread_generation_window_seconds: int = 86400

    def __post_init__(self) -> None:
        _env_override(
            self,
            {"THREADGEN_RATE_LIMIT": "thread_generation_limit"},
            {"thread_generation_limit": int},
        )
        if self.thread_generation_limit <= 0:
            raise ConfigurationError(
                f"thread_generation_limit must be positive, got {self.thread_generation_limit}"
            )
        if self.thread_generation_window_seconds <= 0:
            raise ConfigurationError(
                "thread_generation_window_seconds must be positive, "
                f"got {self.thread_generation_window_seconds}"
            )


# ===========================================================================
# SERVER
# ===========================================================================


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class ServerConfig:
    """HTTP surface settings: CORS, optional gateway token, static files."""

    cors_allowed_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:4200"]
    )
    gateway_token: str = ""
    static_dir: str = "frontend/dist"
    host: str = "0.0.0.0"
    port: int = 8000

    def __post_init__(self) -> None:
        _env_override(
            self,
            {
                "CORS_ALLOWED_ORIGINS": "cors_allowed_origins",
                "GATEWAY_TOKEN": "gateway_token",
                "STATIC_DIR": "static_dir",
                "HOST": "host",
                "PORT": "port",
            },
            {"cors_allowed_origins": _split_origins, "port": int},
        )

    @property
    def static_path(self) -> Path:
        path = Path(self.static_dir)
        return path if path.is_absolute() else PROJECT_ROOT / path


# ===========================================================================
# GLOBAL SETTINGS
# ===========================================================================


@dataclass
class Settings:
    """
    Global application settings.

    Loaded from ``config/settings.yaml`` when available, falling back to
    sensible defaults. Environment variables override YAML values.
    """

    app_name: str = "ThreadForge"
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"

    xai: XaiConfig = field(default_factory=XaiConfig)
    serper: SerperConfig = field(default_factory=SerperConfig)
    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def __post_init__(self) -> None:
        _env_override(
            self,
            {"APP_ENV": "environment", "LOG_LEVEL": "log_level", "LOG_DIR": "log_dir"},
        )
        self.log_level = self.log_level.upper()
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Invalid log_level '{self.log_level}'")

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "Settings":
        """
        Load settings from a YAML file.

        If the file does not exist, returns an instance with all defaults.
        Environment variables override YAML values for specific keys.

        Args:
            path: Path to the YAML file. Defaults to
                ``<PROJECT_ROOT>/config/settings.yaml``.

        Returns:
            Populated Settings instance.

        Raises:
            ConfigurationError: If the YAML file exists but cannot be parsed.
        """
        path = path or PROJECT_ROOT / "config" / "settings.yaml"

        data: Dict[str, Any] = {}
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    f"Failed to parse settings YAML at {path}: {exc}"
                ) from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings YAML at {path} must be a mapping")

        # Secrets never live in YAML; API keys come from the environment only.
        for section in ("xai", "serper", "supabase"):
            section_data = data.get(section) or {}
            for secret_key in ("api_key", "key"):
                if secret_key in section_data:
                    logger.warning(
                        "Ignoring %s.%s in settings YAML; set it via environment",
                        section,
                        secret_key,
                    )
                    section_data.pop(secret_key)

        return cls(
            app_name=data.get("app_name", "ThreadForge"),
            environment=data.get("environment", "development"),
            log_level=data.get("log_level", "INFO"),
            log_dir=data.get("log_dir", "logs"),
            xai=_from_mapping(XaiConfig, data.get("xai") or {}),
            serper=_from_mapping(SerperConfig, data.get("serper") or {}),
            supabase=_from_mapping(SupabaseConfig, data.get("supabase") or {}),
            rate_limit=_from_mapping(RateLimitConfig, data.get("rate_limit") or {}),
            server=_from_mapping(ServerConfig, data.get("server") or {}),
        )


# ===========================================================================
# SINGLETON SETTINGS ACCESSOR
# ===========================================================================

_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global Settings singleton.

    On first call, loads from ``config/settings.yaml`` (or defaults).
    Subsequent calls return the cached instance.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.from_yaml()
    return _settings_instance


def reset_settings() -> None:
    """Reset the cached Settings singleton (tests, config reloads)."""
    global _settings_instance
    _settings_instance = None


# ===========================================================================
# ENVIRONMENT VARIABLE VALIDATION
# ===========================================================================

# Required environment variables for the system to function
REQUIRED_ENV_VARS: List[str] = [
    "XAI_API_KEY",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
]

# Optional but recommended environment variables
OPTIONAL_ENV_VARS: List[str] = [
    "SERPER_API_KEY",
    "GATEWAY_TOKEN",
    "CORS_ALLOWED_ORIGINS",
]


def validate_env(strict: bool = True) -> Dict[str, bool]:
    """
    Validate that required environment variables are set.

    Args:
        strict: If ``True``, raise ``ConfigurationError`` when any required
            variable is missing. If ``False``, return the status dict
            without raising.

    Returns:
        Dict mapping variable name to presence status (``True`` if set).

    Raises:
        ConfigurationError: If ``strict=True`` and required vars are missing.
    """
    status: Dict[str, bool] = {}
    missing: List[str] = []

    for var in REQUIRED_ENV_VARS:
        present = bool(os.environ.get(var))
        status[var] = present
        if not present:
            missing.append(var)

    for var in OPTIONAL_ENV_VARS:
        status[var] = bool(os.environ.get(var))

    if strict and missing:
        raise ConfigurationError(
            f"Missing required environment variables: {missing}. "
            f"Copy .env.example to .env and fill in the values."
        )

    return status


__all__ = [
    "XaiConfig",
    "SerperConfig",
    "SupabaseConfig",
    "RateLimitConfig",
    "ServerConfig",
    "Settings",
    "get_settings",
    "reset_settings",
    "validate_env",
    "REQUIRED_ENV_VARS",
    "OPTIONAL_ENV_VARS",
    "PROJECT_ROOT",
]
