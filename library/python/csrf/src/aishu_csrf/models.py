"""CSRF データモデル"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CsrfToken:
    """デコード済みトークンのフィールド。永続化しない。"""

    session_id: str
    issued_at_ms: int
    nonce: str
    signature: str

    @property
    def payload(self) -> str:
        """署名対象の ``session_id:issued_at_ms:nonce``。"""
        return f"{self.session_id}:{self.issued_at_ms}:{self.nonce}"


class CsrfFailureReason:
    """検証失敗理由の定数。ログ専用でクライアントには返さない。"""

    MISSING_TOKEN: str = "MISSING_TOKEN"
    MALFORMED: str = "MALFORMED"
    SESSION_MISMATCH: str = "SESSION_MISMATCH"
    EXPIRED: str = "EXPIRED"
    BAD_SIGNATURE: str = "BAD_SIGNATURE"
    HEADER_COOKIE_MISMATCH: str = "HEADER_COOKIE_MISMATCH"


@dataclass(frozen=True)
class CsrfValidationResult:
    """トークン検証結果。"""

    valid: bool
    reason: str | None = None
    session_id: str | None = None

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class SessionIdentity:
    """トークンを紐付ける ID。

    new_cookie は Set-Cookie で返すべき署名付き匿名セッション値。
    ログイン済み、または既存クッキーから得た ID の場合は None。
    """

    session_id: str
    authenticated: bool
    new_cookie: str | None = None
