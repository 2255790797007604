"""AppConfig から Starlette アプリに CSRF 保護を組み込む"""

from __future__ import annotations

from aishu_config import AppConfig, resolve_csrf_secret
from starlette.applications import Starlette
from starlette.authentication import AuthenticationBackend
from starlette.middleware.authentication import AuthenticationMiddleware

from .guard import TokenGuard
from .middleware import (
    CsrfMiddleware,
    UserResolver,
    authenticated_user_id,
    backend_user_resolver,
    csrf_token_endpoint,
)
from .session import AnonymousSessionSigner

TOKEN_ENDPOINT_PATH = "/api/csrf"


def _declared_auth_backend(app: Starlette) -> AuthenticationBackend | None:
    """app に宣言済みの AuthenticationMiddleware のバックエンドを返す。"""
    for entry in app.user_middleware:
        if entry.cls is not AuthenticationMiddleware:
            continue
        backend = entry.kwargs.get("backend")
        if backend is None and entry.args:
            backend = entry.args[0]
        return backend
    return None


def setup_csrf(
    app: Starlette,
    config: AppConfig,
    *,
    user_resolver: UserResolver | None = None,
) -> TokenGuard:
    """CsrfMiddleware とトークン発行エンドポイントを app に組み込む。

    add_middleware は CsrfMiddleware を最も外側に置くため、既に宣言済みの
    AuthenticationMiddleware より先に実行される。その場合は宣言済みの認証
    バックエンドを直接呼んでログインユーザーを識別する。

    Args:
        app: 対象の Starlette アプリ
        config: アプリケーション設定（csrf セクションと app.environment を使う）
        user_resolver: ログインユーザー ID の取得方法。省略時は上記の自動判定

    Returns:
        構成済みの TokenGuard

    Raises:
        ConfigError: 本番環境で csrf.secret が未設定の場合
    """
    section = config.csrf
    secret = resolve_csrf_secret(config)
    guard = TokenGuard(secret, max_age_ms=section.max_age_seconds * 1000)
    signer = AnonymousSessionSigner(secret)

    if user_resolver is None:
        backend = _declared_auth_backend(app)
        user_resolver = (
            backend_user_resolver(backend) if backend is not None else authenticated_user_id
        )

    app.add_route(
        TOKEN_ENDPOINT_PATH,
        csrf_token_endpoint(
            guard,
            signer,
            secure=config.app.environment == "production",
            header_name=section.header_name,
            cookie_name=section.cookie_name,
            session_cookie_name=section.session_cookie_name,
            user_resolver=user_resolver,
        ),
        methods=["GET"],
    )
    app.add_middleware(
        CsrfMiddleware,
        guard=guard,
        signer=signer,
        header_name=section.header_name,
        cookie_name=section.cookie_name,
        session_cookie_name=section.session_cookie_name,
        exempt_paths=section.exempt_paths,
        strict_double_submit=section.strict_double_submit,
        user_resolver=user_resolver,
    )
    return guard
