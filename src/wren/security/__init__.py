"""Security primitives: claims-based principals and audit events."""

from wren.security.audit import SecurityEvent, emit_security_event, set_security_event_sink
from wren.security.principal import Claim, ClaimTypes, Principal

__all__ = [
    "Claim",
    "ClaimTypes",
    "Principal",
    "SecurityEvent",
    "emit_security_event",
    "set_security_event_sink",
]
