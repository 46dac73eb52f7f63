"""Key construction for per-principal rate-limit buckets."""

from typing import Union

from ..sanitization import sanitize_key_component
from .types import Endpoint


def build_rate_limit_key(principal: str, endpoint: Union[Endpoint, str]) -> str:
    """
    Join ``principal`` and ``endpoint`` as ``principal:endpoint``.

    Both parts are reduced to ``[A-Za-z0-9_-]`` first, so neither can smuggle
    in a ``:`` and collide with another principal's bucket.
    """
    endpoint_name = endpoint.value if isinstance(endpoint, Endpoint) else str(endpoint)
    return f"{sanitize_key_component(principal)}:{sanitize_key_component(endpoint_name)}"
