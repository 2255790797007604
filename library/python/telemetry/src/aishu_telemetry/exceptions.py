"""telemetry ライブラリの例外型定義"""

from __future__ import annotations


class TelemetryError(Exception):
    """ロギング設定が不正な場合に new_logger が送出するエラー。

    メトリクス計測は例外を送出しない。
    """

    def __init__(self, code: str, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class TelemetryErrorCodes:
    INVALID_LOG_FORMAT: str = "INVALID_LOG_FORMAT"
    INVALID_LOG_LEVEL: str = "INVALID_LOG_LEVEL"
