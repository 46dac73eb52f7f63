"""Concurrent-session cap."""

from typing import List, Sequence

from .models import SessionRecord


def select_sessions_to_deactivate(records: Sequence[SessionRecord], max_sessions: int) -> List[SessionRecord]:
    """Return the active records beyond the ``max_sessions`` most recently active.

    Ties on ``last_activity`` fall back to ``created_at`` and then to list
    position, so the record stored last is kept.
    """
    ranked = sorted(
        ((record.last_activity, record.created_at, index, record) for index, record in enumerate(records) if record.is_active),
        key=lambda item: item[:3],
        reverse=True,
    )
    return [item[3] for item in ranked[max_sessions:]]
