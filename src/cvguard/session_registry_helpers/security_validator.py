"""Security scoring for stored sessions."""

from typing import List, Optional

from .models import SessionRecord, SessionRegistryConfig, SessionSecurityInfo

MAX_SCORE = 100
VALID_SCORE_THRESHOLD = 50

EXPIRED_PENALTY = 50
INACTIVE_PENALTY = 30
FINGERPRINT_PENALTY = 40
SIGNATURE_PENALTY = 20

SESSION_NOT_FOUND = "Session not found"
SESSION_EXPIRED = "Session has expired"
SESSION_INACTIVE = "Session has been inactive for too long"
FINGERPRINT_MISMATCH = "Environment fingerprint mismatch detected"
SIGNATURE_CHANGED = "Environment signature change detected"


def session_not_found(warning: str = SESSION_NOT_FOUND) -> SessionSecurityInfo:
    return SessionSecurityInfo(
        is_valid=False,
        is_expired=True,
        is_inactive=True,
        security_score=0,
        warnings=(warning,),
    )


def evaluate_session_security(
    record: Optional[SessionRecord],
    now_ms: float,
    config: SessionRegistryConfig,
    current_fingerprint: str,
    current_signature: str,
) -> SessionSecurityInfo:
    """
    Score ``record`` against the current environment.

    Each detected problem subtracts a fixed penalty from 100, so more
    findings never raise the score.

    Args:
        record: Stored session, or ``None`` when the lookup failed
        now_ms: Current time in epoch milliseconds
        config: Registry limits for age and inactivity
        current_fingerprint: Fingerprint of the current environment
        current_signature: Signature of the current environment

    Returns:
        SessionSecurityInfo with the score clamped to ``[0, 100]``
    """
    if record is None:
        return session_not_found()

    score = MAX_SCORE
    warnings: List[str] = []

    is_expired = record.is_expired(now_ms, config.max_age_ms)
    if is_expired:
        warnings.append(SESSION_EXPIRED)
        score -= EXPIRED_PENALTY

    is_inactive = record.is_inactive(now_ms, config.inactivity_timeout_ms)
    if is_inactive:
        warnings.append(SESSION_INACTIVE)
        score -= INACTIVE_PENALTY

    if record.environment_fingerprint != current_fingerprint:
        warnings.append(FINGERPRINT_MISMATCH)
        score -= FINGERPRINT_PENALTY

    if record.environment_signature != current_signature:
        warnings.append(SIGNATURE_CHANGED)
        score -= SIGNATURE_PENALTY

    return SessionSecurityInfo(
        is_valid=score > VALID_SCORE_THRESHOLD and not is_expired,
        is_expired=is_expired,
        is_inactive=is_inactive,
        security_score=max(0, score),
        warnings=tuple(warnings),
    )
