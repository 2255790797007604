"""featureflag データモデル"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from .exceptions import FeatureFlagError, FeatureFlagErrorCodes


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Environment(StrEnum):
    """フラグの対象環境。ALL はすべての環境で有効。"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    ALL = "all"


def parse_environment(value: Environment | str) -> Environment:
    """文字列を Environment に変換する。"""
    try:
        return Environment(value)
    except ValueError as e:
        raise FeatureFlagError(
            FeatureFlagErrorCodes.INVALID_ENVIRONMENT,
            f"不正な環境です: {value!r}",
            cause=e,
        ) from e


def check_rollout_percentage(value: Any) -> int:
    """ロールアウト率が 0-100 の整数であることを検証する。"""
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise FeatureFlagError(
            FeatureFlagErrorCodes.INVALID_ROLLOUT,
            f"rollout_percentage は 0-100 の整数である必要があります: {value!r}",
        )
    return value


@dataclass
class FeatureFlag:
    """フィーチャーフラグ。"""

    name: str
    enabled: bool = False
    rollout_percentage: int = 0
    environment: Environment = Environment.ALL
    description: str = ""
    updated_by: str | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.environment = parse_environment(self.environment)
        check_rollout_percentage(self.rollout_percentage)


@dataclass
class FeatureFlagOverride:
    """ユーザー単位のフラグ上書き。(flag_name, user_id) ごとに一意。"""

    flag_name: str
    user_id: str
    enabled: bool
    created_by: str | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class FlagPatch:
    """set_flag で適用する部分更新。None のフィールドは変更しない。"""

    description: str | None = None
    enabled: bool | None = None
    rollout_percentage: int | None = None
    environment: Environment | str | None = None

    def __post_init__(self) -> None:
        if self.rollout_percentage is not None:
            check_rollout_percentage(self.rollout_percentage)
        if self.environment is not None:
            object.__setattr__(self, "environment", parse_environment(self.environment))

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not None
        }

    def apply(self, flag: FeatureFlag, actor_id: str) -> FeatureFlag:
        """変更を適用した新しい FeatureFlag を返す。"""
        return dataclasses.replace(
            flag, **self.changes(), updated_by=actor_id, updated_at=_utcnow()
        )


class EvaluationReason:
    """評価理由の定数。"""

    OVERRIDE: str = "OVERRIDE"
    FLAG_NOT_FOUND: str = "FLAG_NOT_FOUND"
    ENVIRONMENT_MISMATCH: str = "ENVIRONMENT_MISMATCH"
    FLAG_DISABLED: str = "FLAG_DISABLED"
    FULL_ROLLOUT: str = "FULL_ROLLOUT"
    ZERO_ROLLOUT: str = "ZERO_ROLLOUT"
    ROLLOUT_BUCKET: str = "ROLLOUT_BUCKET"
    RANDOM_ROLLOUT: str = "RANDOM_ROLLOUT"
    ERROR: str = "ERROR"


@dataclass
class EvaluationResult:
    """フラグ評価結果。"""

    flag_name: str
    enabled: bool
    reason: str = ""


@dataclass(frozen=True)
class FlagEvaluation:
    """分析用の評価レコード。"""

    flag_name: str
    user_id: str | None
    enabled: bool
    reason: str
    timestamp: datetime = field(default_factory=_utcnow)
