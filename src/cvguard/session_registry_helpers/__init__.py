"""Helper modules for the secure session registry."""

from .activity import TRACKED_EVENTS, ActivityThrottle, InputEvent
from .fingerprint import (
    EnvironmentSignalProvider,
    EnvironmentSignals,
    ProcessSignalProvider,
    StaticSignalProvider,
    compute_fingerprint,
)
from .models import SessionRecord, SessionRegistryConfig, SessionSecurityInfo
from .payload_codec import FernetCodec, PayloadCodec, PayloadCodecError, PlainCodec, XorObfuscationCodec, build_codec

__all__ = [
    "ActivityThrottle",
    "EnvironmentSignalProvider",
    "EnvironmentSignals",
    "FernetCodec",
    "InputEvent",
    "PayloadCodec",
    "PayloadCodecError",
    "PlainCodec",
    "ProcessSignalProvider",
    "SessionRecord",
    "SessionRegistryConfig",
    "SessionSecurityInfo",
    "StaticSignalProvider",
    "TRACKED_EVENTS",
    "XorObfuscationCodec",
    "build_codec",
    "compute_fingerprint",
]
