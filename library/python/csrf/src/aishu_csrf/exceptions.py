"""csrf ライブラリの例外型定義"""

from __future__ import annotations


class CsrfError(Exception):
    """csrf ライブラリのエラー基底クラス。

    トークン検証の失敗では送出されない（検証は bool / 結果オブジェクトを返す）。
    設定ミスなど呼び出し側のバグのみを表す。
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


class CsrfErrorCodes:
    """CsrfError のエラーコード定数。"""

    MISSING_SECRET: str = "MISSING_SECRET"
    INVALID_SESSION_ID: str = "INVALID_SESSION_ID"
