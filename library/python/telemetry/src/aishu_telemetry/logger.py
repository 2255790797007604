"""structlog ベースのロガー設定"""

from __future__ import annotations

import logging
import sys

import structlog
from aishu_config import LogSection

from .exceptions import TelemetryError, TelemetryErrorCodes

_RENDERERS = {
    "json": structlog.processors.JSONRenderer,
    "text": structlog.dev.ConsoleRenderer,
}


def _parse_level(level: str) -> int:
    # getLevelName は未知の名前に "Level X" 文字列を返す
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise TelemetryError(
            code=TelemetryErrorCodes.INVALID_LOG_LEVEL,
            message=f"Unsupported log level: {level}",
        )
    return value


def new_logger(level: str = "INFO", format: str = "json") -> structlog.stdlib.BoundLogger:
    """structlog を構成し、ルートの BoundLogger を返す。

    csrf / featureflag の各モジュールは structlog.get_logger(__name__) で
    ロガーを取得するため、アプリ起動時に一度だけ呼べばよい。

    Args:
        level: ログレベル ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        format: 出力形式 ("json" or "text")

    Raises:
        TelemetryError: レベルまたは形式が不正な場合
    """
    renderer = _RENDERERS.get(format)
    if renderer is None:
        raise TelemetryError(
            code=TelemetryErrorCodes.INVALID_LOG_FORMAT,
            message=f"Unsupported log format: {format}",
        )
    log_level = _parse_level(level)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    # 2 回目以降の呼び出しでは basicConfig がレベルを変えない
    logging.getLogger().setLevel(log_level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if format == "json":
        # コンソール出力は例外を自前で整形する
        processors += [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ]
    processors.append(renderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.stdlib.get_logger()


def configure_logging(config: LogSection) -> structlog.stdlib.BoundLogger:
    """設定ファイルの ``observability.log`` セクションからロガーを構成する。

    Args:
        config: AppConfig.observability.log

    Raises:
        TelemetryError: レベルが不正な場合
    """
    return new_logger(level=config.level, format=config.format)
