"""Random source for retry jitter; tests monkeypatch ``uniform`` here."""

from __future__ import annotations

import random as _random
from typing import Final

_SECURE_RANDOM: Final = _random.SystemRandom()


def uniform(a: float, b: float) -> float:
    return _SECURE_RANDOM.uniform(a, b)
