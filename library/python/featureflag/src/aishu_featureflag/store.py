"""フラグストアと分析シンクの抽象基底クラス"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import FeatureFlag, FeatureFlagOverride, FlagEvaluation


class FlagStore(ABC):
    """フラグと上書きの永続化先。SQL テーブル等の実装は利用側が用意する。"""

    @abstractmethod
    async def get_flag(self, name: str) -> FeatureFlag | None:
        """フラグを取得する。存在しなければ None。"""
        ...

    @abstractmethod
    async def get_override(self, name: str, user_id: str) -> bool | None:
        """ユーザー上書きの値を取得する。存在しなければ None。"""
        ...

    @abstractmethod
    async def list_flags(self) -> list[FeatureFlag]:
        """全フラグを名前順で返す。"""
        ...

    @abstractmethod
    async def upsert_flag(self, flag: FeatureFlag) -> FeatureFlag:
        ...

    @abstractmethod
    async def upsert_override(self, override: FeatureFlagOverride) -> None:
        ...

    @abstractmethod
    async def delete_override(self, name: str, user_id: str) -> bool:
        """上書きを削除する。削除できたら True。"""
        ...


class AnalyticsSink(ABC):
    """評価レコードの追記専用シンク。"""

    @abstractmethod
    async def record(self, evaluation: FlagEvaluation) -> None: ...
