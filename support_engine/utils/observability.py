"""
Structured Logging & Observability
loguru setup plus the two structured records the engine emits: component
timings and escalation lifecycle events.
"""
import sys
from typing import Any, Optional

from loguru import logger

from support_engine.config import Settings, get_settings

HUMAN_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{message}"
)


def configure_logging(settings: Optional[Settings] = None):
    """
    Install a single stderr sink.

    Colorized text by default; one JSON object per record when
    `enable_structured_logging` is set, so bound fields stay queryable.
    """
    settings = settings or get_settings()

    logger.remove()
    if settings.enable_structured_logging:
        logger.add(sys.stderr, format="{message}", level=settings.log_level, serialize=True)
    else:
        logger.add(sys.stderr, format=HUMAN_FORMAT, level=settings.log_level, colorize=True)

    logger.debug(f"Logging configured: level={settings.log_level}, structured={settings.enable_structured_logging}")


def log_component_execution(
    component: str,
    conversation_id: str,
    action: str,
    duration_ms: float | None = None,
    **context: Any
):
    """
    Record one timed step of turn processing.

    Args:
        component: "TurnProcessor" or "EscalationArbiter"
        conversation_id: Conversation the step ran for
        action: Step name, e.g. "evaluate"
        duration_ms: Wall time, rounded to two decimals
        **context: Extra bound fields (priority, turn_count, escalation_id, ...)
    """
    record = {"component": component, "conversation_id": conversation_id, "action": action}
    if duration_ms is not None:
        record["duration_ms"] = round(duration_ms, 2)
    record.update(context)

    logger.bind(**record).info(f"{component} | {action}")


def log_business_event(event_type: str, conversation_id: str, **details: Any):
    """Escalation lifecycle event: escalation_committed, notification_failed."""
    logger.bind(event_type=event_type, conversation_id=conversation_id, **details).success(
        f"Business Event: {event_type}"
    )
