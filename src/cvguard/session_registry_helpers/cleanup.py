"""Expired-session sweep."""

from typing import List, Sequence, Tuple

from .models import SessionRecord, SessionRegistryConfig


def partition_stale_sessions(
    records: Sequence[SessionRecord],
    now_ms: float,
    config: SessionRegistryConfig,
) -> Tuple[List[SessionRecord], List[SessionRecord]]:
    """Split records into ``(kept, removed)``.

    A record is removed only when it is past ``max_age_ms`` and has also been
    idle longer than ``inactivity_timeout_ms``.
    """
    kept: List[SessionRecord] = []
    removed: List[SessionRecord] = []
    for record in records:
        stale = record.is_expired(now_ms, config.max_age_ms) and record.is_inactive(
            now_ms, config.inactivity_timeout_ms
        )
        (removed if stale else kept).append(record)
    return kept, removed
