"""フィーチャーフラグの HTTP エンドポイント（Starlette）

- ``GET  /api/feature-flags``: ログインユーザーの全フラグ評価結果（クライアント初期化用）
- ``POST /api/feature-flags/check``: 単一フラグの評価（未ログインでも可）
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from starlette.requests import HTTPConnection, Request
from starlette.responses import JSONResponse, Response

from .client import FeatureFlagClientProtocol

logger = structlog.get_logger(__name__)

UserResolver = Callable[[Request], str | None | Awaitable[str | None]]

Endpoint = Callable[[Request], Awaitable[Response]]


class FlagCheckRequest(BaseModel):
    """POST /check のリクエストボディ。"""

    model_config = ConfigDict(populate_by_name=True)

    flag_name: str = Field(alias="flagName", min_length=1, max_length=100)


def request_user_id(request: HTTPConnection) -> str | None:
    """AuthenticationMiddleware が設定した request.user からユーザー ID を返す。"""
    if "user" not in request.scope:
        return None
    user = request.user
    if getattr(user, "is_authenticated", False):
        return str(user.identity)
    return None


async def _resolve(resolver: UserResolver, request: Request) -> str | None:
    user_id = resolver(request)
    if inspect.isawaitable(user_id):
        user_id = await user_id
    return user_id


def _internal_error() -> JSONResponse:
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def user_flags_endpoint(
    client: FeatureFlagClientProtocol,
    user_resolver: UserResolver = request_user_id,
) -> Endpoint:
    """ログインユーザーの全フラグを返すハンドラを作る。

    未ログインは 401。レスポンスは ``{"flags": {name: bool}}``。
    """

    async def endpoint(request: Request) -> Response:
        try:
            user_id = await _resolve(user_resolver, request)
            if not user_id:
                logger.warning("featureflag.unauthorized", path=request.url.path)
                return JSONResponse({"error": "Unauthorized"}, status_code=401)
            flags = await client.evaluate_all(user_id)
        except Exception:
            logger.exception("featureflag.fetch_flags_failed", path=request.url.path)
            return _internal_error()
        logger.info("featureflag.flags_fetched", user_id=user_id, flag_count=len(flags))
        return JSONResponse({"flags": flags})

    return endpoint


def check_flag_endpoint(
    client: FeatureFlagClientProtocol,
    user_resolver: UserResolver = request_user_id,
) -> Endpoint:
    """単一フラグを評価するハンドラを作る。

    ボディは ``{"flagName": str}``（1-100 文字）。不正なら 400 と
    ``{"error": "Validation failed", "details": [{field, message}]}``。
    成功時は ``{"enabled": bool}``。
    """

    async def endpoint(request: Request) -> Response:
        try:
            payload = FlagCheckRequest.model_validate_json(await request.body())
        except ValidationError as e:
            details = [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            logger.warning("featureflag.invalid_check_request", details=details)
            return JSONResponse(
                {"error": "Validation failed", "details": details}, status_code=400
            )
        try:
            user_id = await _resolve(user_resolver, request)
            enabled = await client.is_enabled(payload.flag_name, user_id)
        except Exception:
            logger.exception("featureflag.check_failed", flag_name=payload.flag_name)
            return _internal_error()
        logger.info(
            "featureflag.flag_checked",
            flag_name=payload.flag_name,
            user_id=user_id,
            enabled=enabled,
        )
        return JSONResponse({"enabled": enabled})

    return endpoint
