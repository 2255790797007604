"""featureflag データモデルのユニットテスト"""

import pytest
from aishu_featureflag import (
    Environment,
    FeatureFlag,
    FeatureFlagError,
    FeatureFlagErrorCodes,
    FeatureFlags,
    FlagPatch,
)


def test_flag_defaults() -> None:
    """デフォルトは無効・0%・全環境。"""
    flag = FeatureFlag(name="f")
    assert flag.enabled is False
    assert flag.rollout_percentage == 0
    assert flag.environment is Environment.ALL
    assert flag.updated_by is None


def test_flag_environment_from_string() -> None:
    """環境は文字列でも指定できる。"""
    flag = FeatureFlag(name="f", environment="staging")  # type: ignore[arg-type]
    assert flag.environment is Environment.STAGING


@pytest.mark.parametrize("value", [-1, 101, 50.5, True, "50"])
def test_flag_rejects_invalid_rollout(value: object) -> None:
    """0-100 の整数以外は拒否する。"""
    with pytest.raises(FeatureFlagError) as exc_info:
        FeatureFlag(name="f", rollout_percentage=value)  # type: ignore[arg-type]
    assert exc_info.value.code == FeatureFlagErrorCodes.INVALID_ROLLOUT


@pytest.mark.parametrize("value", [0, 1, 99, 100])
def test_flag_accepts_boundary_rollout(value: int) -> None:
    """境界値 0 と 100 を含めて受け付ける。"""
    assert FeatureFlag(name="f", rollout_percentage=value).rollout_percentage == value


def test_flag_rejects_unknown_environment() -> None:
    """未知の環境名は INVALID_ENVIRONMENT。"""
    with pytest.raises(FeatureFlagError) as exc_info:
        FeatureFlag(name="f", environment="qa")  # type: ignore[arg-type]
    assert exc_info.value.code == FeatureFlagErrorCodes.INVALID_ENVIRONMENT
    assert str(exc_info.value).startswith("INVALID_ENVIRONMENT: ")


def test_patch_changes_only_set_fields() -> None:
    """None 以外のフィールドだけが変更対象。"""
    patch = FlagPatch(enabled=True, environment="production")
    assert patch.changes() == {"enabled": True, "environment": Environment.PRODUCTION}


def test_patch_apply_returns_new_flag() -> None:
    """apply は元のフラグを変更しない。"""
    original = FeatureFlag(name="f", description="before")
    updated = FlagPatch(description="after", rollout_percentage=30).apply(original, actor_id="admin")
    assert original.description == "before"
    assert original.updated_by is None
    assert updated.description == "after"
    assert updated.rollout_percentage == 30
    assert updated.updated_by == "admin"
    assert updated.updated_at is not None


def test_patch_rejects_invalid_environment() -> None:
    """パッチの環境名も検証する。"""
    with pytest.raises(FeatureFlagError) as exc_info:
        FlagPatch(environment="everywhere")
    assert exc_info.value.code == FeatureFlagErrorCodes.INVALID_ENVIRONMENT


def test_known_flag_names_are_strings() -> None:
    """既知フラグ名は文字列として扱える。"""
    assert FeatureFlags.ADMIN_PANEL == "admin_panel"
    assert FeatureFlags("payment_system") is FeatureFlags.PAYMENT_SYSTEM
    assert len(FeatureFlags) == 10


def test_error_codes_are_all_raised() -> None:
    """エラーコードはいずれも実際に送出されるものだけを定義する。"""
    codes = {
        name
        for name in vars(FeatureFlagErrorCodes)
        if not name.startswith("_")
    }
    assert codes == {"CONFIG_ERROR", "INVALID_ROLLOUT", "INVALID_ENVIRONMENT"}
    with pytest.raises(FeatureFlagError) as rollout:
        FeatureFlag(name="f", rollout_percentage=-1)
    with pytest.raises(FeatureFlagError) as environment:
        FeatureFlag(name="f", environment="qa")  # type: ignore[arg-type]
    assert {rollout.value.code, environment.value.code} == {
        FeatureFlagErrorCodes.INVALID_ROLLOUT,
        FeatureFlagErrorCodes.INVALID_ENVIRONMENT,
    }
