"""匿名セッション ID の署名付きクッキー

未ログインの呼び出し元にはトークンを紐付けるユーザー ID がないため、
ランダムな ID を一度だけ発行し、署名付きクッキー（``<id>.<署名>``）で保持する。
トークン発行エンドポイントと検証ミドルウェアは同じ ID を参照する。
"""

from __future__ import annotations

import hashlib
import secrets

from itsdangerous import BadSignature, Signer

from .exceptions import CsrfError, CsrfErrorCodes
from .models import SessionIdentity

SESSION_COOKIE_NAME = "csrf-session"

_ID_BYTES = 16
_SALT = "aishu.csrf.anonymous-session"


class AnonymousSessionSigner:
    """匿名セッションクッキーの値を発行・検証する。

    Args:
        secret: 署名鍵。CSRF トークンと同じシークレットを使う（salt で用途を分離）。

    Raises:
        CsrfError: secret が空の場合（MISSING_SECRET）
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise CsrfError(
                code=CsrfErrorCodes.MISSING_SECRET,
                message="A session signing secret is required",
            )
        self._signer = Signer(secret, salt=_SALT, digest_method=hashlib.sha256)

    def sign(self, session_id: str) -> str:
        """session_id に署名したクッキー値を返す。"""
        return self._signer.sign(session_id).decode("utf-8")

    def unsign(self, cookie_value: str | None) -> str | None:
        """クッキー値から session_id を取り出す。署名が不正なら None。"""
        if not cookie_value:
            return None
        try:
            session_id = self._signer.unsign(cookie_value).decode("utf-8")
        except BadSignature:
            return None
        return session_id or None

    def mint(self) -> tuple[str, str]:
        """新しい匿名 ID を発行し、``(session_id, cookie_value)`` を返す。"""
        session_id = secrets.token_hex(_ID_BYTES)
        return session_id, self.sign(session_id)

    def resolve(self, user_id: str | None, cookie_value: str | None) -> SessionIdentity:
        """リクエストに対応する ID を決める。

        ログイン済みならユーザー ID。未ログインで有効なクッキーがあればその ID、
        なければ新規発行し、設定すべきクッキー値を new_cookie に入れて返す。
        """
        if user_id:
            return SessionIdentity(session_id=user_id, authenticated=True)
        existing = self.unsign(cookie_value)
        if existing is not None:
            return SessionIdentity(session_id=existing, authenticated=False)
        session_id, cookie = self.mint()
        return SessionIdentity(session_id=session_id, authenticated=False, new_cookie=cookie)
