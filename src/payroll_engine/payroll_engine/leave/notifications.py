from __future__ import annotations

import logging
from typing import Protocol

from .model import LeaveEvent

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Outbound port for workflow events; delivery is an external concern."""

    def emit(self, event: LeaveEvent) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    def emit(self, event: LeaveEvent) -> None:
        logger.info(
            "leave event=%s application=%s applicant=%s stage=%s actor=%s detail=%s",
            event.event_type.value,
            event.application_id,
            event.applicant_id,
            event.stage.value if event.stage else "-",
            event.actor_id,
            event.detail or "",
        )
