"""
Payload error classifications for channel and backend data.

These exceptions describe payloads that arrive in a shape the orchestrator
cannot use. They are recoverable: the payload is dropped or the owning
operation fails, and the session keeps running.
"""

from typing import Optional, Dict, Any


class PayloadError(Exception):
    """Base class for payload issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class MalformedPayloadError(PayloadError):
    """Payload exists but is in incorrect format."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 expected_format: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.expected_format = expected_format


class MissingFieldError(PayloadError):
    """A required payload field is absent."""

    def __init__(self, message: str, field: Optional[str] = None,
                 payload_type: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.payload_type = payload_type
