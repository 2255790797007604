"""Starlette アプリにフィーチャーフラグ API を組み込む"""

from __future__ import annotations

from starlette.applications import Starlette

from .client import FeatureFlagClientProtocol
from .endpoints import UserResolver, check_flag_endpoint, request_user_id, user_flags_endpoint

FLAGS_ENDPOINT_PATH = "/api/feature-flags"


def setup_featureflags(
    app: Starlette,
    client: FeatureFlagClientProtocol,
    *,
    path: str = FLAGS_ENDPOINT_PATH,
    user_resolver: UserResolver = request_user_id,
) -> None:
    """``GET {path}`` と ``POST {path}/check`` を app に登録する。

    Args:
        app: 対象の Starlette アプリ
        client: 評価に使うクライアント（通常は RolloutGate）
        path: ベースパス
        user_resolver: リクエストからログインユーザー ID を得る関数
    """
    app.add_route(path, user_flags_endpoint(client, user_resolver), methods=["GET"])
    app.add_route(
        f"{path}/check", check_flag_endpoint(client, user_resolver), methods=["POST"]
    )
