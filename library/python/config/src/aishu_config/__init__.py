"""AI-Shu 設定ライブラリ"""

from .exceptions import ConfigError, ConfigErrorCodes
from .loader import deep_merge, load
from .models import (
    AppConfig,
    AppSection,
    CsrfSection,
    FeatureFlagSection,
    LogSection,
    ObservabilitySection,
)
from .secrets import (
    DEVELOPMENT_CSRF_SECRET,
    merge_secrets,
    resolve_csrf_secret,
    secrets_from_env,
)

__all__ = [
    "AppSection",
    "CsrfSection",
    "FeatureFlagSection",
    "LogSection",
    "ObservabilitySection",
    "AppConfig",
    "load",
    "deep_merge",
    "merge_secrets",
    "secrets_from_env",
    "resolve_csrf_secret",
    "DEVELOPMENT_CSRF_SECRET",
    "ConfigError",
    "ConfigErrorCodes",
]
