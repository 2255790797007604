"""インメモリ実装のユニットテスト"""

from aishu_featureflag import (
    FeatureFlag,
    FeatureFlagOverride,
    FlagEvaluation,
    InMemoryAnalyticsSink,
    InMemoryFlagStore,
)


async def test_get_flag_returns_copy() -> None:
    """取得したフラグを変更してもストアに影響しない。"""
    store = InMemoryFlagStore([FeatureFlag(name="a")])
    flag = await store.get_flag("a")
    assert flag is not None
    flag.enabled = True
    assert (await store.get_flag("a")).enabled is False  # type: ignore[union-attr]


async def test_list_flags_sorted_by_name() -> None:
    """一覧は名前順。"""
    store = InMemoryFlagStore([FeatureFlag(name="c"), FeatureFlag(name="a"), FeatureFlag(name="b")])
    assert [f.name for f in await store.list_flags()] == ["a", "b", "c"]


async def test_upsert_flag_replaces() -> None:
    """同名のフラグは置き換える。"""
    store = InMemoryFlagStore([FeatureFlag(name="a")])
    await store.upsert_flag(FeatureFlag(name="a", enabled=True, rollout_percentage=10))
    flags = await store.list_flags()
    assert len(flags) == 1
    assert flags[0].rollout_percentage == 10


async def test_override_is_unique_per_flag_and_user() -> None:
    """(flag, user) ごとに上書きは 1 件。"""
    store = InMemoryFlagStore([FeatureFlag(name="a")])
    await store.upsert_override(FeatureFlagOverride(flag_name="a", user_id="u1", enabled=True))
    await store.upsert_override(FeatureFlagOverride(flag_name="a", user_id="u1", enabled=False))
    assert len(store.overrides()) == 1
    assert await store.get_override("a", "u1") is False
    assert await store.get_override("a", "u2") is None


async def test_delete_override() -> None:
    """上書きの削除。存在しなければ False。"""
    store = InMemoryFlagStore()
    await store.upsert_override(FeatureFlagOverride(flag_name="a", user_id="u1", enabled=True))
    assert await store.delete_override("a", "u1") is True
    assert await store.delete_override("a", "u1") is False


async def test_analytics_sink_collects_records() -> None:
    """シンクは受け取ったレコードを保持する。"""
    sink = InMemoryAnalyticsSink()
    await sink.record(FlagEvaluation(flag_name="a", user_id=None, enabled=False, reason="X"))
    assert [r.flag_name for r in sink.records] == ["a"]
