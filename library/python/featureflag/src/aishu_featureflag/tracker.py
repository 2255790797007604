"""EvaluationTracker: 評価レコードを非同期で分析シンクへ送る"""

from __future__ import annotations

import asyncio
import contextlib

import structlog
from aishu_telemetry import featureflag_analytics_dropped_total

from .models import FlagEvaluation
from .store import AnalyticsSink

logger = structlog.get_logger(__name__)


class EvaluationTracker:
    """有界キューとバックグラウンドタスクによる fire-and-forget 送信。

    track() はブロックも例外送出もしない。キューが満杯ならレコードを破棄する。
    シンクへの各送信は timeout_seconds で打ち切り、失敗はログに残して握りつぶす。
    """

    def __init__(
        self,
        sink: AnalyticsSink,
        max_queue_size: int = 1000,
        timeout_seconds: float = 0.5,
    ) -> None:
        self._sink = sink
        self._queue: asyncio.Queue[FlagEvaluation] = asyncio.Queue(maxsize=max_queue_size)
        self._timeout = timeout_seconds
        self._task: asyncio.Task[None] | None = None
        self._dropped = 0

    @property
    def running(self) -> bool:
        return self._task is not None

    @property
    def dropped(self) -> int:
        """キュー満杯で破棄したレコード数。"""
        return self._dropped

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        """送信タスクを開始する。"""
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """キューを送信しきってから送信タスクを停止する。"""
        if self._task is None:
            return
        await self.drain()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    def track(self, evaluation: FlagEvaluation) -> None:
        """評価レコードをキューに積む。"""
        try:
            self._queue.put_nowait(evaluation)
        except asyncio.QueueFull:
            self._dropped += 1
            featureflag_analytics_dropped_total.add(1)
            logger.debug("featureflag.analytics_dropped", flag_name=evaluation.flag_name)

    async def drain(self) -> None:
        """キューが空になるまで待つ。タスク未開始なら呼び出し元で送信する。"""
        if self._task is None:
            while not self._queue.empty():
                evaluation = self._queue.get_nowait()
                try:
                    await self._deliver(evaluation)
                finally:
                    self._queue.task_done()
            return
        await self._queue.join()

    async def _deliver(self, evaluation: FlagEvaluation) -> None:
        try:
            await asyncio.wait_for(self._sink.record(evaluation), timeout=self._timeout)
        except Exception as e:
            logger.warning(
                "featureflag.analytics_failed",
                flag_name=evaluation.flag_name,
                error=repr(e),
            )

    async def _run(self) -> None:
        while True:
            evaluation = await self._queue.get()
            try:
                await self._deliver(evaluation)
            finally:
                self._queue.task_done()
