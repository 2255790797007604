"""Starlette 連携: CSRF 検証ミドルウェアとトークン発行エンドポイント"""

from __future__ import annotations

import hmac
import inspect
from collections.abc import Awaitable, Callable, Iterable

import structlog
from aishu_telemetry import csrf_validations_total
from starlette.authentication import AuthenticationBackend
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import HTTPConnection, Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from .guard import (
    CSRF_COOKIE_NAME,
    CSRF_HEADER_NAME,
    TokenGuard,
    csrf_cookie_header,
    extract_token,
    parse_cookie,
    requires_protection,
    session_identifier,
)
from .models import CsrfFailureReason, CsrfValidationResult
from .session import SESSION_COOKIE_NAME, AnonymousSessionSigner

logger = structlog.get_logger(__name__)

# 同期・非同期のどちらの関数でもよい
UserResolver = Callable[[Request], str | None | Awaitable[str | None]]

REJECTION_ERROR = "CSRF validation failed"
REJECTION_MESSAGE = "Invalid or missing CSRF token."


def authenticated_user_id(request: HTTPConnection) -> str | None:
    """AuthenticationMiddleware が設定した request.user からユーザー ID を返す。

    認証ミドルウェアがまだ実行されていない場合は None。
    """
    if "user" not in request.scope:
        return None
    user = request.user
    if getattr(user, "is_authenticated", False):
        return str(user.identity)
    return None


def backend_user_resolver(backend: AuthenticationBackend) -> UserResolver:
    """認証バックエンドを直接呼ぶリゾルバを返す。

    CSRF ミドルウェアが AuthenticationMiddleware より外側にある場合でも
    ログインユーザーを識別できる。request.user が既にあればそれを使う。
    """

    async def resolve(request: Request) -> str | None:
        if "user" in request.scope:
            return authenticated_user_id(request)
        result = await backend.authenticate(request)
        if result is None:
            return None
        _, user = result
        if getattr(user, "is_authenticated", False):
            return str(user.identity)
        return None

    return resolve


async def resolve_user_id(resolver: UserResolver, request: Request) -> str | None:
    user_id = resolver(request)
    if inspect.isawaitable(user_id):
        user_id = await user_id
    return user_id


def csrf_rejection_response() -> JSONResponse:
    """全ての失敗理由で共通の 403 レスポンス。"""
    return JSONResponse(
        {"error": REJECTION_ERROR, "message": REJECTION_MESSAGE},
        status_code=403,
    )


class CsrfMiddleware(BaseHTTPMiddleware):
    """有効な CSRF トークンのない状態変更リクエストを拒否する。

    安全なメソッド（GET / HEAD / OPTIONS）と exempt_paths は素通しする。
    検証に成功すると紐付いた ID を request.state.csrf_session_id に設定する。

    Args:
        guard: トークン検証に使う TokenGuard
        signer: 匿名セッションクッキーの検証に使う AnonymousSessionSigner
        strict_double_submit: True の場合ヘッダー必須、クッキーがあれば一致も必須
        user_resolver: リクエストからログインユーザー ID を得る関数
    """

    def __init__(
        self,
        app: ASGIApp,
        guard: TokenGuard,
        signer: AnonymousSessionSigner,
        *,
        header_name: str = CSRF_HEADER_NAME,
        cookie_name: str = CSRF_COOKIE_NAME,
        session_cookie_name: str = SESSION_COOKIE_NAME,
        exempt_paths: Iterable[str] = (),
        strict_double_submit: bool = False,
        user_resolver: UserResolver = authenticated_user_id,
    ) -> None:
        super().__init__(app)
        self._guard = guard
        self._signer = signer
        self._header_name = header_name.lower()
        self._cookie_name = cookie_name
        self._session_cookie_name = session_cookie_name
        self._exempt_paths = frozenset(exempt_paths)
        self._strict = strict_double_submit
        self._user_resolver = user_resolver

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not requires_protection(request.method) or request.url.path in self._exempt_paths:
            return await call_next(request)

        try:
            result = await self.check_request(request)
        except Exception:
            logger.exception(
                "csrf.check_failed", method=request.method, path=request.url.path
            )
            return csrf_rejection_response()

        if not result.valid:
            logger.warning(
                "csrf.request_rejected",
                method=request.method,
                path=request.url.path,
                reason=result.reason,
            )
            return csrf_rejection_response()

        request.state.csrf_session_id = result.session_id
        return await call_next(request)

    async def check_request(self, request: Request) -> CsrfValidationResult:
        """リクエストのトークンを検証する。"""
        headers = request.headers
        if self._strict:
            token = headers.get(self._header_name)
            cookie_token = parse_cookie(headers.get("cookie"), self._cookie_name)
            if token and cookie_token is not None and not hmac.compare_digest(
                token.encode("utf-8"), cookie_token.encode("utf-8")
            ):
                csrf_validations_total.add(
                    1,
                    {
                        "result": "rejected",
                        "reason": CsrfFailureReason.HEADER_COOKIE_MISMATCH,
                    },
                )
                return CsrfValidationResult(False, CsrfFailureReason.HEADER_COOKIE_MISMATCH)
        else:
            token = extract_token(headers, self._header_name, self._cookie_name)

        user_id = await resolve_user_id(self._user_resolver, request)
        # 有効な匿名クッキーがなければ使い捨て ID になり SESSION_MISMATCH で失敗する
        session_id = (
            user_id
            or self._signer.unsign(request.cookies.get(self._session_cookie_name))
            or session_identifier()
        )
        return self._guard.check(token, session_id)


def csrf_token_endpoint(
    guard: TokenGuard,
    signer: AnonymousSessionSigner,
    *,
    secure: bool = True,
    header_name: str = CSRF_HEADER_NAME,
    cookie_name: str = CSRF_COOKIE_NAME,
    session_cookie_name: str = SESSION_COOKIE_NAME,
    user_resolver: UserResolver = authenticated_user_id,
) -> Callable[[Request], Awaitable[Response]]:
    """``GET /api/csrf`` のハンドラを作る。

    レスポンスボディはトークンと送信先ヘッダー名。トークンは HttpOnly クッキー
    にも設定する。有効な匿名セッションクッキーのない匿名ユーザーには
    新しい匿名セッションクッキーも併せて発行する。
    """
    max_age_seconds = guard.max_age_ms // 1000

    async def endpoint(request: Request) -> Response:
        identity = signer.resolve(
            await resolve_user_id(user_resolver, request),
            request.cookies.get(session_cookie_name),
        )
        token = guard.issue(identity.session_id)
        response = JSONResponse({"token": token, "headerName": header_name})
        response.headers.append(
            "set-cookie",
            csrf_cookie_header(token, secure, cookie_name, max_age_seconds),
        )
        if identity.new_cookie is not None:
            response.headers.append(
                "set-cookie",
                csrf_cookie_header(identity.new_cookie, secure, session_cookie_name, None),
            )
        logger.debug(
            "csrf.token_issued",
            authenticated=identity.authenticated,
            new_session=identity.new_cookie is not None,
        )
        return response

    return endpoint
