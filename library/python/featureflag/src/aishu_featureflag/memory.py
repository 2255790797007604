"""インメモリ実装（テスト・ローカル実行用）"""

from __future__ import annotations

import dataclasses

from .models import FeatureFlag, FeatureFlagOverride, FlagEvaluation
from .store import AnalyticsSink, FlagStore


class InMemoryFlagStore(FlagStore):
    """テスト用インメモリフラグストア。"""

    def __init__(self, flags: list[FeatureFlag] | None = None) -> None:
        self._flags: dict[str, FeatureFlag] = {}
        self._overrides: dict[tuple[str, str], FeatureFlagOverride] = {}
        for flag in flags or []:
            self._flags[flag.name] = flag

    async def get_flag(self, name: str) -> FeatureFlag | None:
        flag = self._flags.get(name)
        return dataclasses.replace(flag) if flag is not None else None

    async def get_override(self, name: str, user_id: str) -> bool | None:
        override = self._overrides.get((name, user_id))
        return override.enabled if override is not None else None

    async def list_flags(self) -> list[FeatureFlag]:
        return [dataclasses.replace(self._flags[name]) for name in sorted(self._flags)]

    async def upsert_flag(self, flag: FeatureFlag) -> FeatureFlag:
        self._flags[flag.name] = dataclasses.replace(flag)
        return dataclasses.replace(flag)

    async def upsert_override(self, override: FeatureFlagOverride) -> None:
        self._overrides[(override.flag_name, override.user_id)] = override

    async def delete_override(self, name: str, user_id: str) -> bool:
        return self._overrides.pop((name, user_id), None) is not None

    def overrides(self) -> list[FeatureFlagOverride]:
        """保存済みの上書き一覧を返す。テスト用。"""
        return list(self._overrides.values())


class InMemoryAnalyticsSink(AnalyticsSink):
    """評価レコードをメモリに蓄積するシンク。"""

    def __init__(self) -> None:
        self._records: list[FlagEvaluation] = []

    async def record(self, evaluation: FlagEvaluation) -> None:
        self._records.append(evaluation)

    @property
    def records(self) -> list[FlagEvaluation]:
        return list(self._records)
