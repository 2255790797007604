"""AI-Shu CSRF 保護ライブラリ"""

from .exceptions import CsrfError, CsrfErrorCodes
from .guard import (
    CSRF_COOKIE_NAME,
    CSRF_HEADER_NAME,
    DEFAULT_MAX_AGE_MS,
    TokenGuard,
    csrf_cookie_header,
    extract_token,
    parse_cookie,
    requires_protection,
    session_identifier,
)
from .middleware import (
    CsrfMiddleware,
    authenticated_user_id,
    backend_user_resolver,
    csrf_rejection_response,
    csrf_token_endpoint,
)
from .models import CsrfFailureReason, CsrfToken, CsrfValidationResult, SessionIdentity
from .session import SESSION_COOKIE_NAME, AnonymousSessionSigner
from .wiring import TOKEN_ENDPOINT_PATH, setup_csrf

__all__ = [
    "AnonymousSessionSigner",
    "CSRF_COOKIE_NAME",
    "CSRF_HEADER_NAME",
    "CsrfError",
    "CsrfErrorCodes",
    "CsrfFailureReason",
    "CsrfMiddleware",
    "CsrfToken",
    "CsrfValidationResult",
    "DEFAULT_MAX_AGE_MS",
    "SESSION_COOKIE_NAME",
    "SessionIdentity",
    "TokenGuard",
    "authenticated_user_id",
    "backend_user_resolver",
    "csrf_cookie_header",
    "csrf_rejection_response",
    "csrf_token_endpoint",
    "extract_token",
    "parse_cookie",
    "requires_protection",
    "session_identifier",
    "setup_csrf",
    "TOKEN_ENDPOINT_PATH",
]
