"""
Centralized logging configuration for the plan session orchestrator.

This module provides standardized logging configuration using structlog
for all components. Session, channel and backend code log through loggers
obtained here so that state transitions and action changes share one
structured format.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                       structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_state_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for plan state and action changes.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound to the state machine subsystem
    """
    return get_logger(name).bind(
        subsystem="state_machine",
        audit_trail=True
    )


def get_channel_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for event channel traffic.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound to the channel subsystem
    """
    return get_logger(name).bind(subsystem="channel")


def log_state_transition(
    logger: FilteringBoundLogger,
    session_id: str,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a plan state transition with standardized format.

    Args:
        logger: Structlog logger instance
        session_id: ID of the plan session
        from_state: Current state
        to_state: Target state
        trigger: What triggered the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        session_id=session_id,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
        event_type="state_transition"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")


def log_action_change(
    logger: FilteringBoundLogger,
    session_id: str,
    from_action: str,
    to_action: str,
    trigger: str
) -> None:
    """
    Log a plan action change with standardized format.

    Args:
        logger: Structlog logger instance
        session_id: ID of the plan session
        from_action: Current action
        to_action: Target action
        trigger: What triggered the change
    """
    logger.bind(
        session_id=session_id,
        from_action=from_action,
        to_action=to_action,
        trigger=trigger,
        event_type="action_change"
    ).info("Action change")
