from __future__ import annotations

"""Redis connection settings for the persisted session store."""


from dataclasses import dataclass
from functools import lru_cache

from . import ConfigurationError, env_bool, env_float, env_int, env_str

DEFAULT_REDIS_HOST = "localhost"
DEFAULT_REDIS_PORT = 6379
DEFAULT_NAMESPACE = "cvguard"


@dataclass(frozen=True)
class RedisSettings:
    host: str
    port: int
    db: int
    password: str | None
    ssl: bool
    socket_timeout: float | None
    namespace: str


@lru_cache(maxsize=1)
def load_redis_settings() -> RedisSettings:
    host = env_str("REDIS_HOST", or_value=DEFAULT_REDIS_HOST)
    port_value = env_int("REDIS_PORT", or_value=DEFAULT_REDIS_PORT)
    db_value = env_int("REDIS_DB", or_value=0)
    if db_value is None or db_value < 0:
        raise ConfigurationError(f"REDIS_DB must be a non-negative integer; received {db_value}")
    if port_value is None or not 0 < port_value < 65536:
        raise ConfigurationError.invalid_format("REDIS_PORT", str(port_value), "a TCP port number")

    password = env_str("REDIS_PASSWORD", allow_blank=True)
    ssl_flag = env_bool("REDIS_SSL", or_value=False)
    socket_timeout = env_float("REDIS_SOCKET_TIMEOUT")
    namespace = env_str("CVGUARD_REDIS_NAMESPACE", or_value=DEFAULT_NAMESPACE)

    return RedisSettings(
        host=str(host),
        port=int(port_value),
        db=int(db_value),
        password=password or None,
        ssl=bool(ssl_flag),
        socket_timeout=socket_timeout,
        namespace=str(namespace),
    )


__all__ = ["RedisSettings", "load_redis_settings"]
