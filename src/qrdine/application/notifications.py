from __future__ import annotations

import logging

from qrdine.application.ports.publisher import EventPublisher

logger = logging.getLogger(__name__)


def publish_best_effort(
    publisher: EventPublisher,
    *,
    channel: str,
    event_name: str,
    message: str,
) -> bool:
    try:
        publisher.publish(channel=channel, event_name=event_name, message=message)
    except Exception:
        logger.exception(
            "event_publish_failed",
            extra={"channel": channel, "event_name": event_name},
        )
        return False
    return True
