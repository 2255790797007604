"""CSRF トークンの発行と検証

ダブルサブミットクッキー方式。トークンは自己完結型でサーバー側に状態を持たない。
ワイヤ形式::

    base64( session_id ":" issued_at_ms ":" nonce ":" signature )

nonce は 32 バイトの乱数（16 進）、signature はサーバーシークレットによる
``session_id:issued_at_ms:nonce`` の HMAC-SHA256（16 進）。
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import time
from collections.abc import Callable, Mapping

import structlog
from aishu_telemetry import csrf_validations_total

from .exceptions import CsrfError, CsrfErrorCodes
from .models import CsrfFailureReason, CsrfToken, CsrfValidationResult

logger = structlog.get_logger(__name__)

CSRF_HEADER_NAME = "x-csrf-token"
CSRF_COOKIE_NAME = "csrf-token"
DEFAULT_MAX_AGE_MS = 60 * 60 * 1000

_NONCE_BYTES = 32
_ANONYMOUS_ID_BYTES = 16
_PROTECTED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def requires_protection(method: str) -> bool:
    """状態を変更するメソッド（POST / PUT / PATCH / DELETE）なら True。"""
    return method.upper() in _PROTECTED_METHODS


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def parse_cookie(cookie_header: str | None, name: str) -> str | None:
    """Cookie ヘッダーから name のクッキー値を取り出す。"""
    if not cookie_header:
        return None
    prefix = f"{name}="
    for part in cookie_header.split(";"):
        part = part.strip()
        if part.startswith(prefix):
            return part[len(prefix):] or None
    return None


def extract_token(
    headers: Mapping[str, str],
    header_name: str = CSRF_HEADER_NAME,
    cookie_name: str = CSRF_COOKIE_NAME,
) -> str | None:
    """リクエストヘッダーから CSRF トークンを取り出す。

    X-CSRF-Token ヘッダーを優先し、なければ Cookie ヘッダーのトークンクッキーを使う。
    ヘッダー名は大文字小文字を区別しない（dict でもフレームワークのヘッダーでも可）。

    Returns:
        トークン。どちらにもなければ None
    """
    token = _get_header(headers, header_name)
    if token:
        return token
    return parse_cookie(_get_header(headers, "cookie"), cookie_name)


def session_identifier(user_id: str | None = None) -> str:
    """トークンを紐付ける ID を返す。

    匿名の場合は呼び出しごとに新しいランダム ID になる。リクエストを跨いで
    保持するには AnonymousSessionSigner を使う。
    """
    if user_id:
        return user_id
    return secrets.token_hex(_ANONYMOUS_ID_BYTES)


def csrf_cookie_header(
    value: str,
    secure: bool = True,
    cookie_name: str = CSRF_COOKIE_NAME,
    max_age_seconds: int | None = DEFAULT_MAX_AGE_MS // 1000,
) -> str:
    """CSRF（または匿名セッション）クッキーの Set-Cookie 値を組み立てる。

    max_age_seconds が None の場合は Max-Age を付けない（ブラウザセッション限り）。
    """
    parts = [f"{cookie_name}={value}", "Path=/", "HttpOnly", "SameSite=Strict"]
    if max_age_seconds is not None:
        parts.append(f"Max-Age={max_age_seconds}")
    if secure:
        parts.append("Secure")
    return "; ".join(parts)


class TokenGuard:
    """セッションに紐付いた CSRF トークンを発行・検証する。

    Args:
        secret: HMAC 署名鍵（空文字不可）
        max_age_ms: トークン有効期間（ミリ秒、デフォルト 1 時間）
        clock: 現在時刻（エポックミリ秒）を返す関数。テストで差し替える

    Raises:
        CsrfError: secret が空の場合（MISSING_SECRET）
    """

    requires_protection = staticmethod(requires_protection)
    extract_token = staticmethod(extract_token)
    session_identifier = staticmethod(session_identifier)

    def __init__(
        self,
        secret: str,
        max_age_ms: int = DEFAULT_MAX_AGE_MS,
        clock: Callable[[], int] | None = None,
    ) -> None:
        if not secret:
            raise CsrfError(
                code=CsrfErrorCodes.MISSING_SECRET,
                message="A CSRF signing secret is required",
            )
        self._key = secret.encode("utf-8")
        self._max_age_ms = max_age_ms
        self._clock = clock or _now_ms

    @property
    def max_age_ms(self) -> int:
        return self._max_age_ms

    def _sign(self, payload: str) -> str:
        return hmac.new(self._key, payload.encode("utf-8"), hashlib.sha256).hexdigest()

    def issue(self, session_id: str) -> str:
        """session_id に紐付いたトークンを発行する。

        Args:
            session_id: ログインユーザー ID または匿名セッション ID

        Returns:
            ヘッダーとクッキーにそのまま使える base64 トークン

        Raises:
            CsrfError: session_id が空、または ":" を含む場合（INVALID_SESSION_ID）
        """
        if not session_id or ":" in session_id:
            raise CsrfError(
                code=CsrfErrorCodes.INVALID_SESSION_ID,
                message="session_id must be non-empty and must not contain ':'",
            )
        payload = f"{session_id}:{self._clock()}:{secrets.token_hex(_NONCE_BYTES)}"
        raw = f"{payload}:{self._sign(payload)}"
        return base64.b64encode(raw.encode("utf-8")).decode("ascii")

    @staticmethod
    def decode(token: str) -> CsrfToken | None:
        """署名を検証せずにトークンを分解する。形式不正なら None。"""
        try:
            raw = base64.b64decode(token, validate=True).decode("utf-8")
        except ValueError:
            return None
        parts = raw.split(":")
        if len(parts) != 4:
            return None
        session_id, issued_at, nonce, signature = parts
        if not (issued_at.isascii() and issued_at.isdigit()):
            return None
        return CsrfToken(
            session_id=session_id,
            issued_at_ms=int(issued_at),
            nonce=nonce,
            signature=signature,
        )

    def check(self, token: str | None, session_id: str) -> CsrfValidationResult:
        """トークンを検証し、失敗理由を含む結果を返す。

        不正なトークンでも例外は送出しない。reason はログ用で、
        クライアントに返してはならない。
        """
        result = self._check(token, session_id)
        csrf_validations_total.add(
            1,
            {
                "result": "accepted" if result.valid else "rejected",
                "reason": result.reason or "OK",
            },
        )
        if not result.valid:
            logger.debug("csrf.token_rejected", reason=result.reason)
        return result

    def _check(self, token: str | None, session_id: str) -> CsrfValidationResult:
        if not token:
            return CsrfValidationResult(False, CsrfFailureReason.MISSING_TOKEN)
        decoded = self.decode(token)
        if decoded is None:
            return CsrfValidationResult(False, CsrfFailureReason.MALFORMED)
        if decoded.session_id != session_id:
            return CsrfValidationResult(False, CsrfFailureReason.SESSION_MISMATCH)
        if self._clock() - decoded.issued_at_ms > self._max_age_ms:
            return CsrfValidationResult(False, CsrfFailureReason.EXPIRED)
        expected = self._sign(decoded.payload).encode("ascii")
        # 定数時間比較
        if not hmac.compare_digest(expected, decoded.signature.encode("utf-8")):
            return CsrfValidationResult(False, CsrfFailureReason.BAD_SIGNATURE)
        return CsrfValidationResult(True, session_id=session_id)

    def validate(self, token: str | None, session_id: str) -> bool:
        """署名・有効期限・セッションの全てが正しい場合のみ True。"""
        return self.check(token, session_id).valid
