"""設定型定義（pydantic BaseModel）"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

Environment = Literal["development", "staging", "production"]


class AppSection(BaseModel):
    """アプリケーション基本設定。"""

    name: str
    version: str = "0.1.0"
    environment: Environment = "development"


class CsrfSection(BaseModel):
    """CSRF トークン設定。

    secret が空の場合、本番環境では起動時エラーになる
    （resolve_csrf_secret を参照）。
    """

    secret: str = ""
    max_age_seconds: int = Field(default=3600, gt=0)
    header_name: str = "x-csrf-token"
    cookie_name: str = "csrf-token"
    session_cookie_name: str = "csrf-session"
    strict_double_submit: bool = False
    exempt_paths: list[str] = Field(default_factory=list)

    @field_validator("header_name")
    @classmethod
    def _lower_header(cls, value: str) -> str:
        return value.lower()


class FeatureFlagSection(BaseModel):
    """フィーチャーフラグ評価設定。"""

    analytics_queue_size: int = Field(default=1000, ge=1)
    analytics_timeout_seconds: float = Field(default=0.5, gt=0)
    cache_refresh_seconds: float | None = Field(default=None, gt=0)


class LogSection(BaseModel):
    """ログ設定。"""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class ObservabilitySection(BaseModel):
    """可観測性設定。"""

    log: LogSection = Field(default_factory=LogSection)


class AppConfig(BaseModel):
    """アプリケーション設定全体。"""

    app: AppSection
    csrf: CsrfSection = Field(default_factory=CsrfSection)
    feature_flags: FeatureFlagSection = Field(default_factory=FeatureFlagSection)
    observability: ObservabilitySection = Field(default_factory=ObservabilitySection)
