"""AppConfig から RolloutGate を組み立てる"""

from __future__ import annotations

from aishu_config import AppConfig

from .cache import CachingFlagStore
from .gate import RolloutGate
from .store import AnalyticsSink, FlagStore
from .tracker import EvaluationTracker


def create_gate(
    config: AppConfig,
    store: FlagStore,
    sink: AnalyticsSink | None = None,
) -> RolloutGate:
    """設定に従って RolloutGate を作る。

    cache_refresh_seconds が設定されていれば store を CachingFlagStore で包む。
    sink を渡した場合、返されるゲートの tracker は未開始なので
    呼び出し側で start() すること。
    """
    section = config.feature_flags
    if section.cache_refresh_seconds is not None:
        store = CachingFlagStore(store, refresh_interval_seconds=section.cache_refresh_seconds)
    tracker = None
    if sink is not None:
        tracker = EvaluationTracker(
            sink,
            max_queue_size=section.analytics_queue_size,
            timeout_seconds=section.analytics_timeout_seconds,
        )
    return RolloutGate(store, config.app.environment, tracker=tracker)
