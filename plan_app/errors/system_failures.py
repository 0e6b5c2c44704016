"""
System failure error classifications.

These exceptions represent programming errors in how the session is driven,
not backend failures. They are raised immediately and never recorded in the
error sink.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for unrecoverable session failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class StateTransitionError(SystemFailureError):
    """Mutator called while the current action does not allow it."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 current_action: Optional[str] = None,
                 attempted_transition: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.current_action = current_action
        self.attempted_transition = attempted_transition


class SessionClosedError(SystemFailureError):
    """Mutator called after the session was torn down."""

    def __init__(self, message: str, session_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.session_id = session_id


class ConfigError(SystemFailureError):
    """Session configuration failed validation."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
