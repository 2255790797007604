"""CSRF 検証とフィーチャーフラグ評価の OpenTelemetry カウンタ

グローバル MeterProvider に対して作成するため、ホストアプリが SDK の
``MeterProvider`` を設定するまでは何も記録しない。
"""

from __future__ import annotations

from opentelemetry import metrics

_meter = metrics.get_meter("aishu", version="0.1.0")

csrf_validations_total = _meter.create_counter(
    name="csrf_validations_total",
    description="CSRF トークン検証数（結果・理由別）",
    unit="1",
)

featureflag_evaluations_total = _meter.create_counter(
    name="featureflag_evaluations_total",
    description="フィーチャーフラグ評価数（フラグ・結果・理由別）",
    unit="1",
)

featureflag_analytics_dropped_total = _meter.create_counter(
    name="featureflag_analytics_dropped_total",
    description="分析シンクに届かず破棄された評価レコード数",
    unit="1",
)
