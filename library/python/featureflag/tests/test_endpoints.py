"""フィーチャーフラグ HTTP エンドポイントのテスト（Starlette TestClient）"""

import asyncio

import pytest
from aishu_featureflag import (
    FeatureFlag,
    FlagCheckRequest,
    InMemoryFlagStore,
    RolloutGate,
    setup_featureflags,
)
from starlette.applications import Starlette
from starlette.authentication import AuthCredentials, AuthenticationBackend, SimpleUser
from starlette.middleware import Middleware
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.requests import HTTPConnection, Request
from starlette.testclient import TestClient


class HeaderAuthBackend(AuthenticationBackend):
    async def authenticate(self, conn: HTTPConnection) -> tuple[AuthCredentials, SimpleUser] | None:
        user = conn.headers.get("x-user")
        if not user:
            return None
        return AuthCredentials(["authenticated"]), SimpleUser(user)


class BrokenStore(InMemoryFlagStore):
    """読み取りが常に失敗するストア。"""

    async def get_flag(self, name: str) -> FeatureFlag | None:
        raise ConnectionError("database unreachable")

    async def list_flags(self) -> list[FeatureFlag]:
        raise ConnectionError("database unreachable")


def make_gate(store: InMemoryFlagStore | None = None) -> RolloutGate:
    return RolloutGate(
        store
        or InMemoryFlagStore(
            [
                FeatureFlag(name="whiteboard", enabled=True, rollout_percentage=100),
                FeatureFlag(name="beta_widget", enabled=True, rollout_percentage=0),
                FeatureFlag(name="legacy", enabled=False, rollout_percentage=100),
            ]
        ),
        "production",
    )


def make_client(gate: RolloutGate | None = None, **options: object) -> TestClient:
    app = Starlette(
        middleware=[Middleware(AuthenticationMiddleware, backend=HeaderAuthBackend())],
    )
    setup_featureflags(app, gate or make_gate(), **options)  # type: ignore[arg-type]
    return TestClient(app)


def test_user_flags() -> None:
    """ログインユーザーには全フラグの評価結果を返す。"""
    response = make_client().get("/api/feature-flags", headers={"x-user": "student-1"})
    assert response.status_code == 200
    assert response.json() == {
        "flags": {"beta_widget": False, "legacy": False, "whiteboard": True}
    }


def test_user_flags_requires_login() -> None:
    """未ログインは 401。"""
    response = make_client().get("/api/feature-flags")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_user_flags_reflect_override() -> None:
    """上書きはユーザー単位で反映される。"""
    gate = make_gate()
    assert asyncio.run(gate.set_override("beta_widget", "u1", True, "admin")) is True
    client = make_client(gate)
    u1 = client.get("/api/feature-flags", headers={"x-user": "u1"}).json()
    u2 = client.get("/api/feature-flags", headers={"x-user": "u2"}).json()
    assert u1["flags"]["beta_widget"] is True
    assert u2["flags"]["beta_widget"] is False


def test_user_flags_store_failure() -> None:
    """一覧取得の障害時は空のフラグ。"""
    client = make_client(make_gate(BrokenStore()))
    response = client.get("/api/feature-flags", headers={"x-user": "student-1"})
    assert response.status_code == 200
    assert response.json() == {"flags": {}}


@pytest.mark.parametrize(
    ("flag_name", "enabled"),
    [("whiteboard", True), ("beta_widget", False), ("legacy", False), ("no_such_flag", False)],
)
def test_check_flag(flag_name: str, enabled: bool) -> None:
    """単一フラグの評価結果を返す。"""
    response = make_client().post(
        "/api/feature-flags/check",
        json={"flagName": flag_name},
        headers={"x-user": "student-1"},
    )
    assert response.status_code == 200
    assert response.json() == {"enabled": enabled}


def test_check_flag_anonymous() -> None:
    """未ログインでも評価できる。"""
    response = make_client().post("/api/feature-flags/check", json={"flagName": "whiteboard"})
    assert response.status_code == 200
    assert response.json() == {"enabled": True}


def test_check_flag_max_length_name() -> None:
    """100 文字のフラグ名は受け付ける。"""
    response = make_client().post("/api/feature-flags/check", json={"flagName": "f" * 100})
    assert response.status_code == 200
    assert response.json() == {"enabled": False}


@pytest.mark.parametrize(
    "body",
    [{"flagName": ""}, {"flagName": "f" * 101}, {}, {"flagName": 42}],
)
def test_check_flag_validation_error(body: dict[str, object]) -> None:
    """flagName が不正なら 400 と項目ごとの詳細。"""
    response = make_client().post("/api/feature-flags/check", json=body)
    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "Validation failed"
    assert [d["field"] for d in payload["details"]] == ["flagName"]
    assert all(d["message"] for d in payload["details"])


def test_check_flag_invalid_json() -> None:
    """JSON として読めないボディも 400。"""
    response = make_client().post(
        "/api/feature-flags/check",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "Validation failed"
    assert len(payload["details"]) == 1


def test_check_flag_store_failure() -> None:
    """評価時のストア障害は False。"""
    client = make_client(make_gate(BrokenStore()))
    response = client.post("/api/feature-flags/check", json={"flagName": "whiteboard"})
    assert response.status_code == 200
    assert response.json() == {"enabled": False}


def test_custom_path() -> None:
    """ベースパスを変更できる。"""
    client = make_client(path="/internal/flags")
    assert client.get("/internal/flags", headers={"x-user": "u1"}).status_code == 200
    check = client.post("/internal/flags/check", json={"flagName": "whiteboard"})
    assert check.json() == {"enabled": True}
    assert client.get("/api/feature-flags", headers={"x-user": "u1"}).status_code == 404


def test_custom_user_resolver() -> None:
    """ユーザー解決関数を差し替えられる。"""

    def api_key_user(request: Request) -> str | None:
        return request.headers.get("x-api-user")

    client = make_client(user_resolver=api_key_user)
    response = client.get("/api/feature-flags", headers={"x-api-user": "svc-1"})
    assert response.status_code == 200
    assert response.json()["flags"]["whiteboard"] is True


def test_check_request_model() -> None:
    """リクエストモデルは別名と属性名の両方で組み立てられる。"""
    assert FlagCheckRequest.model_validate({"flagName": "a"}).flag_name == "a"
    assert FlagCheckRequest(flag_name="b").flag_name == "b"
