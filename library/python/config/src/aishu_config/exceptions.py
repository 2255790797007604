"""config ライブラリの例外型定義"""

from __future__ import annotations


class ConfigError(Exception):
    """設定の読み込み・検証・シークレット解決に失敗した場合のエラー。

    いずれも起動時にのみ発生し、リクエスト処理中には送出されない。
    code には ConfigErrorCodes の値が入る。
    """

    def __init__(self, code: str, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class ConfigErrorCodes:
    """ConfigError.code の値。"""

    READ_FILE: str = "READ_FILE_ERROR"
    PARSE_YAML: str = "PARSE_YAML_ERROR"
    VALIDATION: str = "VALIDATION_ERROR"
    # 本番環境で csrf.secret が未設定
    MISSING_SECRET: str = "MISSING_SECRET"
