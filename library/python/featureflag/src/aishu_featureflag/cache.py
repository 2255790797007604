"""CachingFlagStore: フラグ一覧のスナップショットキャッシュ"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from collections.abc import Callable

import structlog

from .models import FeatureFlag, FeatureFlagOverride
from .store import FlagStore

logger = structlog.get_logger(__name__)


class CachingFlagStore(FlagStore):
    """全フラグのスナップショットを refresh_interval_seconds ごとに読み直すストア。

    読み取りは直近の完全なスナップショットのコピーを返す。再読み込みは
    asyncio.Lock で 1 タスクに限定する。上書きはキャッシュしない。
    書き込みは下位ストアへ委譲し、スナップショットを破棄する。
    """

    def __init__(
        self,
        inner: FlagStore,
        refresh_interval_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inner = inner
        self._interval = refresh_interval_seconds
        self._clock = clock
        self._snapshot: dict[str, FeatureFlag] | None = None
        self._loaded_at = 0.0
        self._lock = asyncio.Lock()

    def _fresh(self) -> dict[str, FeatureFlag] | None:
        snapshot = self._snapshot
        if snapshot is not None and self._clock() - self._loaded_at < self._interval:
            return snapshot
        return None

    async def _flags(self) -> dict[str, FeatureFlag]:
        snapshot = self._fresh()
        if snapshot is not None:
            return snapshot
        async with self._lock:
            # 待機中に別タスクが再読み込みを終えている場合がある
            snapshot = self._fresh()
            if snapshot is not None:
                return snapshot
            flags = await self._inner.list_flags()
            snapshot = {flag.name: flag for flag in flags}
            self._snapshot = snapshot
            self._loaded_at = self._clock()
            logger.debug("featureflag.cache_refreshed", flag_count=len(snapshot))
            return snapshot

    def invalidate(self) -> None:
        """次回の読み取りで再読み込みさせる。"""
        self._snapshot = None

    async def get_flag(self, name: str) -> FeatureFlag | None:
        flag = (await self._flags()).get(name)
        return dataclasses.replace(flag) if flag is not None else None

    async def get_override(self, name: str, user_id: str) -> bool | None:
        return await self._inner.get_override(name, user_id)

    async def list_flags(self) -> list[FeatureFlag]:
        snapshot = await self._flags()
        return [dataclasses.replace(snapshot[name]) for name in sorted(snapshot)]

    async def upsert_flag(self, flag: FeatureFlag) -> FeatureFlag:
        saved = await self._inner.upsert_flag(flag)
        self.invalidate()
        return saved

    async def upsert_override(self, override: FeatureFlagOverride) -> None:
        await self._inner.upsert_override(override)

    async def delete_override(self, name: str, user_id: str) -> bool:
        return await self._inner.delete_override(name, user_id)
