"""RolloutGate: ユーザー単位のフィーチャーフラグ評価

評価ルールは上から順に適用し、最初に一致したものを採用する。

1. ``(flag, user)`` の明示的な上書き
2. 未登録のフラグ -> 無効
3. フラグの環境が ``all`` でも実行環境でもない -> 無効
4. フラグ自体が無効 -> 無効
5. 段階的ロールアウト: 100 -> 有効、0 -> 無効、それ以外はユーザーの
   固定バケットで判定（未ログインは毎回ランダム）

評価は例外を送出しない。ストア障害はログに記録し、フラグは無効として扱う。
"""

from __future__ import annotations

import asyncio
import random

import structlog
from aishu_telemetry import featureflag_evaluations_total

from .bucketing import bucket
from .exceptions import FeatureFlagError, FeatureFlagErrorCodes
from .models import (
    Environment,
    EvaluationReason,
    EvaluationResult,
    FeatureFlag,
    FeatureFlagOverride,
    FlagEvaluation,
    FlagPatch,
    parse_environment,
)
from .store import FlagStore
from .tracker import EvaluationTracker

logger = structlog.get_logger(__name__)


class RolloutGate:
    """ユーザーに対して機能が有効かを判定する。

    Args:
        store: フラグと上書きの読み書き先
        environment: 実行環境（"development" / "staging" / "production"）
        tracker: 評価ごとの記録の送り先。None なら記録しない
        rng: 未ログインユーザーの抽選に使う乱数源

    Raises:
        FeatureFlagError: 環境が不正、または "all" の場合
    """

    def __init__(
        self,
        store: FlagStore,
        environment: Environment | str,
        tracker: EvaluationTracker | None = None,
        rng: random.Random | None = None,
    ) -> None:
        env = parse_environment(environment)
        if env is Environment.ALL:
            raise FeatureFlagError(
                FeatureFlagErrorCodes.CONFIG_ERROR,
                "実行環境に 'all' は指定できません",
            )
        self._store = store
        self._environment = env
        self._tracker = tracker
        self._rng = rng or random.Random()

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def tracker(self) -> EvaluationTracker | None:
        return self._tracker

    async def is_enabled(self, flag_name: str, user_id: str | None = None) -> bool:
        return (await self.evaluate(flag_name, user_id)).enabled

    async def evaluate(self, flag_name: str, user_id: str | None = None) -> EvaluationResult:
        """フラグを評価し、結果と理由を返す。

        Args:
            flag_name: フラグ名（FeatureFlags のメンバーも可）
            user_id: ログインユーザー ID。未ログインは None

        Returns:
            EvaluationResult。障害時は enabled=False, reason=ERROR
        """
        # ストアのキーは素の str
        flag_name = str(flag_name)
        try:
            override = await self._override(flag_name, user_id)
            if override is not None:
                return self._finish(flag_name, user_id, override, EvaluationReason.OVERRIDE)
            flag = await self._store.get_flag(flag_name)
            if flag is None:
                logger.warning("featureflag.flag_not_found", flag_name=flag_name)
                return self._finish(
                    flag_name, user_id, False, EvaluationReason.FLAG_NOT_FOUND, track=False
                )
            enabled, reason = self._decide(flag, user_id)
            return self._finish(flag_name, user_id, enabled, reason)
        except Exception:
            logger.exception("featureflag.evaluation_failed", flag_name=flag_name, user_id=user_id)
            return self._failed(flag_name)

    async def evaluate_all(self, user_id: str | None = None) -> dict[str, bool]:
        """全フラグを個別に評価する。一覧取得に失敗した場合は空の辞書。"""
        try:
            flags = await self._store.list_flags()
        except Exception:
            logger.exception("featureflag.list_failed", user_id=user_id)
            return {}
        results = await asyncio.gather(*(self._evaluate_flag(flag, user_id) for flag in flags))
        return {result.flag_name: result.enabled for result in results}

    async def list_flags(self) -> list[FeatureFlag]:
        try:
            return await self._store.list_flags()
        except Exception:
            logger.exception("featureflag.list_failed")
            return []

    async def set_flag(self, name: str, patch: FlagPatch, actor_id: str) -> FeatureFlag | None:
        """フラグを作成または更新する。

        Args:
            name: フラグ名
            patch: 変更内容
            actor_id: 変更者のユーザー ID

        Returns:
            保存後のフラグ。ストア障害時は None

        Raises:
            FeatureFlagError: patch の値が不正な場合
        """
        name = str(name)
        try:
            existing = await self._store.get_flag(name)
            updated = patch.apply(existing or FeatureFlag(name=name), actor_id=actor_id)
            saved = await self._store.upsert_flag(updated)
        except FeatureFlagError:
            raise
        except Exception:
            logger.exception("featureflag.set_flag_failed", flag_name=name, actor_id=actor_id)
            return None
        logger.info(
            "featureflag.flag_updated",
            flag_name=name,
            actor_id=actor_id,
            created=existing is None,
            changes=patch.changes(),
        )
        return saved

    async def set_override(
        self, name: str, user_id: str, enabled: bool, actor_id: str
    ) -> bool:
        """ユーザー単位でフラグを強制的に有効/無効にする。未登録のフラグなら False。"""
        name = str(name)
        try:
            if await self._store.get_flag(name) is None:
                logger.warning("featureflag.override_flag_not_found", flag_name=name)
                return False
            await self._store.upsert_override(
                FeatureFlagOverride(
                    flag_name=name, user_id=user_id, enabled=enabled, created_by=actor_id
                )
            )
        except Exception:
            logger.exception("featureflag.set_override_failed", flag_name=name, user_id=user_id)
            return False
        logger.info(
            "featureflag.override_set",
            flag_name=name,
            user_id=user_id,
            enabled=enabled,
            actor_id=actor_id,
        )
        return True

    async def remove_override(self, name: str, user_id: str) -> bool:
        name = str(name)
        try:
            if await self._store.get_flag(name) is None:
                return False
            removed = await self._store.delete_override(name, user_id)
        except Exception:
            logger.exception(
                "featureflag.remove_override_failed", flag_name=name, user_id=user_id
            )
            return False
        if removed:
            logger.info("featureflag.override_removed", flag_name=name, user_id=user_id)
        return removed

    async def _override(self, flag_name: str, user_id: str | None) -> bool | None:
        if not user_id:
            return None
        return await self._store.get_override(flag_name, user_id)

    async def _evaluate_flag(self, flag: FeatureFlag, user_id: str | None) -> EvaluationResult:
        try:
            override = await self._override(flag.name, user_id)
            if override is not None:
                return self._finish(flag.name, user_id, override, EvaluationReason.OVERRIDE)
            enabled, reason = self._decide(flag, user_id)
            return self._finish(flag.name, user_id, enabled, reason)
        except Exception:
            logger.exception("featureflag.evaluation_failed", flag_name=flag.name, user_id=user_id)
            return self._failed(flag.name)

    def _decide(self, flag: FeatureFlag, user_id: str | None) -> tuple[bool, str]:
        if flag.environment is not Environment.ALL and flag.environment is not self._environment:
            return False, EvaluationReason.ENVIRONMENT_MISMATCH
        if not flag.enabled:
            return False, EvaluationReason.FLAG_DISABLED
        if flag.rollout_percentage >= 100:
            return True, EvaluationReason.FULL_ROLLOUT
        if flag.rollout_percentage <= 0:
            return False, EvaluationReason.ZERO_ROLLOUT
        if user_id:
            return bucket(user_id, flag.name) < flag.rollout_percentage, EvaluationReason.ROLLOUT_BUCKET
        return self._rng.random() * 100 < flag.rollout_percentage, EvaluationReason.RANDOM_ROLLOUT

    def _finish(
        self,
        flag_name: str,
        user_id: str | None,
        enabled: bool,
        reason: str,
        track: bool = True,
    ) -> EvaluationResult:
        # 未登録のフラグ名はラベルに載せない
        label = "unknown" if reason == EvaluationReason.FLAG_NOT_FOUND else flag_name
        featureflag_evaluations_total.add(
            1, {"flag": label, "enabled": str(enabled).lower(), "reason": reason}
        )
        if track and self._tracker is not None:
            self._tracker.track(
                FlagEvaluation(flag_name=flag_name, user_id=user_id, enabled=enabled, reason=reason)
            )
        return EvaluationResult(flag_name=flag_name, enabled=enabled, reason=reason)

    def _failed(self, flag_name: str) -> EvaluationResult:
        featureflag_evaluations_total.add(
            1, {"flag": flag_name, "enabled": "false", "reason": EvaluationReason.ERROR}
        )
        return EvaluationResult(flag_name=flag_name, enabled=False, reason=EvaluationReason.ERROR)
