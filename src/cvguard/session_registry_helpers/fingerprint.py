"""Environment signals and the fingerprint derived from them.

A browser would report locale, screen size, core count and a canvas
rendering hash. Non-browser hosts supply an analogous set through an
``EnvironmentSignalProvider``; the registry only ever sees
``EnvironmentSignals``.
"""

from __future__ import annotations

import hashlib
import locale
import logging
import os
import platform
import socket
from dataclasses import dataclass, replace
from typing import Any, Protocol

import psutil

logger = logging.getLogger(__name__)

FINGERPRINT_LENGTH = 32
MAX_SIGNATURE_LENGTH = 500


@dataclass(frozen=True)
class EnvironmentSignals:
    """Stable traits of the environment a session was created in.

    ``environment_signature`` plays the role of a user agent: it is stored
    verbatim and also folded into the fingerprint.
    """

    locale: str
    display_geometry: str
    hardware_concurrency: int
    rendering_signature: str
    environment_signature: str


class EnvironmentSignalProvider(Protocol):
    def collect(self) -> EnvironmentSignals: ...


DEFAULT_SIGNALS = EnvironmentSignals(
    locale="en-US",
    display_geometry="1920x1080",
    hardware_concurrency=8,
    rendering_signature="static",
    environment_signature="cvguard/static",
)


class StaticSignalProvider:
    """Returns fixed signals; ``update`` simulates the environment changing."""

    def __init__(self, signals: EnvironmentSignals = DEFAULT_SIGNALS) -> None:
        self.signals = signals

    def collect(self) -> EnvironmentSignals:
        return self.signals

    def update(self, **changes: Any) -> EnvironmentSignals:
        self.signals = replace(self.signals, **changes)
        return self.signals


class ProcessSignalProvider:
    """Signals for CLI and server processes: host, OS, interpreter and hardware."""

    def collect(self) -> EnvironmentSignals:
        language, encoding = locale.getlocale()
        memory_total = psutil.virtual_memory().total
        signature = "; ".join(
            (
                f"{platform.python_implementation()}/{platform.python_version()}",
                f"{platform.system()} {platform.release()}",
                socket.gethostname(),
                f"boot={int(psutil.boot_time())}",
            )
        )
        return EnvironmentSignals(
            locale=f"{language or 'C'}.{encoding or 'unknown'}",
            display_geometry=f"headless;mem={memory_total}",
            hardware_concurrency=psutil.cpu_count(logical=True) or os.cpu_count() or 0,
            rendering_signature=f"{platform.machine()}|{platform.architecture()[0]}",
            environment_signature=signature[:MAX_SIGNATURE_LENGTH],
        )


def compute_fingerprint(signals: EnvironmentSignals) -> str:
    """Truncated sha256 over every signal, joined in a fixed order."""
    material = "|".join(
        (
            signals.environment_signature,
            signals.locale,
            signals.display_geometry,
            str(signals.hardware_concurrency),
            signals.rendering_signature,
        )
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


__all__ = [
    "DEFAULT_SIGNALS",
    "EnvironmentSignalProvider",
    "EnvironmentSignals",
    "ProcessSignalProvider",
    "StaticSignalProvider",
    "compute_fingerprint",
]
