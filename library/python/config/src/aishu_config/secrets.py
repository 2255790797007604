"""シークレットの重ね合わせと CSRF 署名シークレットの解決"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from .exceptions import ConfigError, ConfigErrorCodes
from .models import AppConfig

logger = structlog.get_logger(__name__)

DEVELOPMENT_CSRF_SECRET = "development-only-csrf-secret-do-not-use-in-production"


def merge_secrets(config: AppConfig, secrets: Mapping[str, str]) -> AppConfig:
    """ドット区切りのキーでシークレットを config に重ね、新しい AppConfig を返す。

    例: ``{"csrf.secret": "s3cr3t"}``

    Raises:
        ConfigError: 重ね合わせ後の検証に失敗した場合
    """
    data: dict[str, Any] = config.model_dump()
    for key_path, value in secrets.items():
        parts = key_path.split(".")
        node = data
        for part in parts[:-1]:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            code=ConfigErrorCodes.VALIDATION,
            message=f"Config validation failed after merging secrets: {e}",
            cause=e,
        ) from e


def secrets_from_env(environ: Mapping[str, str], prefix: str = "AISHU__") -> dict[str, str]:
    """環境変数からシークレットを集める。

    ``AISHU__CSRF__SECRET`` は ``csrf.secret`` になる。
    """
    secrets: dict[str, str] = {}
    for name, value in environ.items():
        if not name.startswith(prefix) or len(name) == len(prefix):
            continue
        key_path = ".".join(part.lower() for part in name[len(prefix):].split("__"))
        secrets[key_path] = value
    return secrets


def resolve_csrf_secret(config: AppConfig) -> str:
    """CSRF 署名シークレットを返す。

    未設定の場合、開発・ステージングでは固定の開発用シークレットを警告付きで返す。

    Raises:
        ConfigError: 本番環境でシークレットが未設定の場合
    """
    if config.csrf.secret:
        return config.csrf.secret
    if config.app.environment == "production":
        raise ConfigError(
            code=ConfigErrorCodes.MISSING_SECRET,
            message="csrf.secret must be configured in production",
        )
    logger.warning(
        "csrf.development_secret_in_use",
        environment=config.app.environment,
    )
    return DEVELOPMENT_CSRF_SECRET
