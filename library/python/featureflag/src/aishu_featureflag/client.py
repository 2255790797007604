"""FeatureFlagClient プロトコル"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import EvaluationResult


@runtime_checkable
class FeatureFlagClientProtocol(Protocol):
    """アプリケーションコードが依存するフラグ評価インターフェース。"""

    async def evaluate(
        self, flag_name: str, user_id: str | None = None
    ) -> EvaluationResult: ...

    async def is_enabled(self, flag_name: str, user_id: str | None = None) -> bool: ...

    async def evaluate_all(self, user_id: str | None = None) -> dict[str, bool]: ...
