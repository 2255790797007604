"""featureflag ライブラリの例外型定義"""

from __future__ import annotations


class FeatureFlagError(Exception):
    """featureflag ライブラリのエラー基底クラス。

    評価経路（RolloutGate.evaluate 等）からは送出されない。
    不正な入力や設定の検出にのみ使う。
    """

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class FeatureFlagErrorCodes:
    """エラーコード定数。"""

    CONFIG_ERROR: str = "CONFIG_ERROR"
    INVALID_ROLLOUT: str = "INVALID_ROLLOUT"
    INVALID_ENVIRONMENT: str = "INVALID_ENVIRONMENT"
