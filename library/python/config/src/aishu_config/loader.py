"""YAML 設定ファイルの読み込みとマージ"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from .exceptions import ConfigError, ConfigErrorCodes
from .models import AppConfig

logger = structlog.get_logger(__name__)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """override を base に重ねた新しい辞書を返す。

    ネストした辞書は再帰的にマージし、それ以外（リストを含む）は置換する。
    """
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(
            ConfigErrorCodes.READ_FILE, f"cannot read {path}", cause=e
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(
            ConfigErrorCodes.PARSE_YAML, f"invalid YAML in {path}", cause=e
        ) from e
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigError(
            ConfigErrorCodes.PARSE_YAML,
            f"{path}: top-level value must be a mapping, got {type(document).__name__}",
        )
    return document


def load(base_path: Path, env_path: Path | None = None) -> AppConfig:
    """ベース設定に環境別設定を重ねて AppConfig を返す。

    base_path は必須。env_path は存在する場合のみマージする
    （config.production.yaml を置かない環境でも同じ呼び出しで済む）。
    シークレットはここでは扱わない。merge_secrets を参照。
    """
    data = _read_yaml(base_path)
    if env_path is not None and env_path.exists():
        data = deep_merge(data, _read_yaml(env_path))
        logger.debug("config.env_merged", base=str(base_path), env=str(env_path))
    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            ConfigErrorCodes.VALIDATION,
            f"{base_path}: {e.error_count()} invalid setting(s)\n{e}",
            cause=e,
        ) from e
