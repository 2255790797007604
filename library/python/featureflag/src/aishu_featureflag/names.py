"""プラットフォームで使うフラグ名の一覧"""

from __future__ import annotations

from enum import StrEnum


class FeatureFlags(StrEnum):
    """既知のフィーチャーフラグ名。"""

    TEACHER_DASHBOARD = "teacher_dashboard"
    ADMIN_PANEL = "admin_panel"
    AI_VOICE_MODE = "ai_voice_mode"
    VIDEO_SESSIONS = "video_sessions"
    PAYMENT_SYSTEM = "payment_system"
    WHITEBOARD = "whiteboard"
    SESSION_RECORDING = "session_recording"
    MULTI_LANGUAGE = "multi_language"
    ADVANCED_ANALYTICS = "advanced_analytics"
    MOBILE_APP = "mobile_app"
