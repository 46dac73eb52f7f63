"""Type definitions and endpoint presets for rate limiting."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

MINUTE_MS = 60 * 1000


class Endpoint(Enum):
    """Guarded actions with their own request budget."""

    UPLOAD = "UPLOAD"
    ANALYSIS = "ANALYSIS"
    EDIT_SECTION = "EDIT_SECTION"
    CHAT = "CHAT"
    PDF_GENERATION = "PDF_GENERATION"
    API_GENERAL = "API_GENERAL"


@dataclass(frozen=True)
class RateLimitConfig:
    """Request budget for one window"""

    window_ms: float
    max_requests: int

    def __post_init__(self) -> None:
        if self.window_ms <= 0:
            raise ValueError(f"window_ms must be positive (got {self.window_ms})")
        if self.max_requests <= 0:
            raise ValueError(f"max_requests must be positive (got {self.max_requests})")


@dataclass
class RateLimitEntry:
    """Counter for one ``principal:endpoint`` key within its current window."""

    count: int
    window_start: float
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: float
    retry_after_ms: Optional[float] = None


DEFAULT_RATE_LIMIT_CONFIGS: Dict[Endpoint, RateLimitConfig] = {
    Endpoint.UPLOAD: RateLimitConfig(window_ms=15 * MINUTE_MS, max_requests=5),
    Endpoint.ANALYSIS: RateLimitConfig(window_ms=10 * MINUTE_MS, max_requests=3),
    Endpoint.EDIT_SECTION: RateLimitConfig(window_ms=5 * MINUTE_MS, max_requests=10),
    Endpoint.CHAT: RateLimitConfig(window_ms=1 * MINUTE_MS, max_requests=20),
    Endpoint.PDF_GENERATION: RateLimitConfig(window_ms=10 * MINUTE_MS, max_requests=5),
    Endpoint.API_GENERAL: RateLimitConfig(window_ms=1 * MINUTE_MS, max_requests=60),
}
