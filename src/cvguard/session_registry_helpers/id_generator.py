"""Session identifier generation."""

import secrets

RANDOM_BYTES = 16
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_DIGITS[remainder])
    return "".join(reversed(digits))


class SessionIdGenerator:
    """Builds ``session_<epoch-ms>_<random>`` identifiers."""

    def generate(self, now_ms: float) -> str:
        """
        Generate a session ID.

        Args:
            now_ms: Creation time in epoch milliseconds

        Returns:
            Identifier whose random part is each of 16 CSPRNG bytes in base 36
        """
        random_part = "".join(_base36(byte) for byte in secrets.token_bytes(RANDOM_BYTES))
        return f"session_{int(now_ms)}_{random_part}"
