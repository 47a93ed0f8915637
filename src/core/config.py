"""
Gateway Configuration

Centralized configuration for the dashboard gateway.

Settings are read once from the environment (and an optional .env file)
into an immutable object that is handed to the components that need it.
"""

import os
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def parse_email_list(raw: Optional[str]) -> FrozenSet[str]:
    """Split a comma-separated allow-list into normalized addresses."""
    if not raw:
        return frozenset()
    return frozenset(
        email.strip().lower()
        for email in raw.split(",")
        if email.strip()
    )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_url(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value.rstrip("/") if value else None


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule for calls to a backend that may be cold-starting."""

    max_attempts: int = 8
    initial_delay: float = 2.0
    max_delay: float = 32.0
    max_total_wait: float = 60 * 60
    retry_statuses: FrozenSet[int] = frozenset({502, 503})

    def delay_for(self, attempt: int) -> float:
        # attempt is zero-based
        return min(self.initial_delay * (2 ** attempt), self.max_delay)


@dataclass(frozen=True)
class GatewaySettings:
    """Configuration for the dashboard gateway."""

    environment: str = "development"

    # Backend endpoints
    backend_base_url: Optional[str] = None
    verify_url: Optional[str] = None
    refresh_url: Optional[str] = None
    auth_url: Optional[str] = None
    create_user_url: Optional[str] = None
    backend_timeout: float = 30.0

    # Super admin allow-lists
    super_admin_emails: FrozenSet[str] = frozenset()
    public_super_admin_emails: FrozenSet[str] = frozenset()

    # Cookies
    cookie_secure: Optional[bool] = None

    # Behaviour flags
    menu_fallback_enabled: bool = False
    reverify_after_refresh: bool = False

    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)

    # Static frontend
    frontend_dir: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def secure_cookies(self) -> bool:
        if self.cookie_secure is not None:
            return self.cookie_secure
        return self.is_production

    @classmethod
    def from_env(cls) -> "GatewaySettings":
        """Build settings from the process environment."""
        retry_policy = RetryPolicy(
            max_attempts=int(os.getenv("PROXY_MAX_ATTEMPTS", "8")),
            initial_delay=float(os.getenv("PROXY_INITIAL_DELAY_SECONDS", "2")),
            max_delay=float(os.getenv("PROXY_MAX_DELAY_SECONDS", "32")),
            max_total_wait=float(os.getenv("PROXY_MAX_TOTAL_WAIT_SECONDS", "3600")),
        )

        cookie_secure = None
        if os.getenv("COOKIE_SECURE"):
            cookie_secure = _env_bool("COOKIE_SECURE", False)

        return cls(
            environment=os.getenv("APP_ENV", "development"),
            backend_base_url=_env_url("BACKEND_API_BASE_URL"),
            verify_url=_env_url("BACKEND_VERIFY_URL"),
            refresh_url=_env_url("BACKEND_REFRESH_URL"),
            auth_url=_env_url("BACKEND_AUTH_URL"),
            create_user_url=_env_url("BACKEND_CREATE_USER_URL"),
            backend_timeout=float(os.getenv("BACKEND_TIMEOUT_SECONDS", "30")),
            super_admin_emails=parse_email_list(os.getenv("SUPER_ADMIN_EMAILS")),
            public_super_admin_emails=parse_email_list(os.getenv("PUBLIC_SUPER_ADMIN_EMAILS")),
            cookie_secure=cookie_secure,
            menu_fallback_enabled=_env_bool("MENU_FALLBACK_ENABLED", False),
            reverify_after_refresh=_env_bool("GATE_REVERIFY_AFTER_REFRESH", False),
            retry_policy=retry_policy,
            frontend_dir=os.getenv("FRONTEND_DIR") or None,
        )

    def validate(self) -> List[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.verify_url:
            issues.append("ERROR: No token verification endpoint configured (BACKEND_VERIFY_URL)")
        if not self.backend_base_url:
            issues.append("ERROR: No backend base URL configured (BACKEND_API_BASE_URL)")
        if not self.auth_url or not self.create_user_url:
            issues.append("ERROR: Login endpoints not configured (BACKEND_AUTH_URL, BACKEND_CREATE_USER_URL)")
        if not self.refresh_url:
            issues.append("WARNING: No refresh endpoint configured (BACKEND_REFRESH_URL)")
        if not self.super_admin_emails:
            issues.append("WARNING: No super admin emails configured (SUPER_ADMIN_EMAILS)")
        if self.menu_fallback_enabled and self.is_production:
            issues.append("WARNING: MENU_FALLBACK_ENABLED is set in production")

        return issues


class ConfigurationError(Exception):
    """Raised when a request needs a setting that is not configured."""

    def __init__(self, *names: str):
        self.names = names
        super().__init__(f"Missing configuration: {', '.join(names)}")
