"""AI-Shu フィーチャーフラグライブラリ"""

from .bucketing import bucket, polynomial_bucket
from .cache import CachingFlagStore
from .client import FeatureFlagClientProtocol
from .endpoints import FlagCheckRequest, check_flag_endpoint, request_user_id, user_flags_endpoint
from .exceptions import FeatureFlagError, FeatureFlagErrorCodes
from .factory import create_gate
from .gate import RolloutGate
from .memory import InMemoryAnalyticsSink, InMemoryFlagStore
from .models import (
    Environment,
    EvaluationReason,
    EvaluationResult,
    FeatureFlag,
    FeatureFlagOverride,
    FlagEvaluation,
    FlagPatch,
)
from .names import FeatureFlags
from .store import AnalyticsSink, FlagStore
from .tracker import EvaluationTracker
from .wiring import FLAGS_ENDPOINT_PATH, setup_featureflags

__all__ = [
    "AnalyticsSink",
    "CachingFlagStore",
    "Environment",
    "EvaluationReason",
    "EvaluationResult",
    "EvaluationTracker",
    "FeatureFlag",
    "FeatureFlagClientProtocol",
    "FeatureFlagError",
    "FeatureFlagErrorCodes",
    "FeatureFlagOverride",
    "FeatureFlags",
    "FLAGS_ENDPOINT_PATH",
    "FlagCheckRequest",
    "FlagEvaluation",
    "FlagPatch",
    "FlagStore",
    "InMemoryAnalyticsSink",
    "InMemoryFlagStore",
    "RolloutGate",
    "bucket",
    "check_flag_endpoint",
    "create_gate",
    "polynomial_bucket",
    "request_user_id",
    "setup_featureflags",
    "user_flags_endpoint",
]
