"""
Notifier implementations: hand a due reminder to the delivery side
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from pillminder.core.config import Settings
from pillminder.core.exceptions import ConfigurationError
from pillminder.utils.timezone import now_local


logger = logging.getLogger(__name__)


def build_reminder_event(owner: str, stage_name: str, sent_at: Optional[datetime] = None) -> Dict[str, Any]:
    sent_at = sent_at or now_local()
    return {
        "owner": owner,
        "stage_name": stage_name,
        "title": f"Time to take your {stage_name} medication",
        "message": f"Tap to confirm once you've taken your {stage_name} dose.",
        "timestamp": sent_at.isoformat(),
    }


class LoggingNotifier:
    """Development notifier: writes the reminder to the log."""

    def dispatch(self, owner: str, stage_name: str) -> bool:
        event = build_reminder_event(owner, stage_name)
        logger.info(f"📣 [Notifier] {event['title']} | owner={owner}")
        return True


class CeleryQueueNotifier:
    """Publishes the reminder event to the output queue.

    The transport service consumes that queue and renders the message; a
    successful publish counts as a successful dispatch.
    """

    task_name = "pillminder.deliver_reminder"

    def __init__(self, app, queue: str, routing_key: str):
        self.app = app
        self.queue = queue
        self.routing_key = routing_key

    def dispatch(self, owner: str, stage_name: str) -> bool:
        event = build_reminder_event(owner, stage_name)
        self.app.send_task(
            self.task_name,
            args=[event],
            queue=self.queue,
            routing_key=self.routing_key,
        )
        logger.info(f"📤 [Notifier] Queued reminder | owner={owner} stage={stage_name} queue={self.queue}")
        return True


class WebhookNotifier:
    def __init__(self, url: str, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def dispatch(self, owner: str, stage_name: str) -> bool:
        event = build_reminder_event(owner, stage_name)
        try:
            response = self.session.post(self.url, json=event, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"❌ [Notifier] Webhook delivery failed | owner={owner} stage={stage_name}: {e!r}")
            return False
        if not response.ok:
            logger.error(
                f"❌ [Notifier] Webhook rejected reminder | owner={owner} stage={stage_name} "
                f"status={response.status_code}"
            )
            return False
        return True


def build_notifier(config: Settings):
    backend = config.NOTIFIER_BACKEND
    if backend == "log":
        return LoggingNotifier()
    if backend == "celery":
        from .celery_app import celery_app

        return CeleryQueueNotifier(
            celery_app,
            queue=config.RABBITMQ_OUTPUT_QUEUE,
            routing_key=config.RABBITMQ_OUTPUT_ROUTING_KEY,
        )
    if backend == "webhook":
        if not config.NOTIFIER_WEBHOOK_URL:
            raise ConfigurationError("Webhook notifier requires NOTIFIER_WEBHOOK_URL")
        return WebhookNotifier(config.NOTIFIER_WEBHOOK_URL, timeout=config.NOTIFIER_WEBHOOK_TIMEOUT_SECONDS)
    raise ConfigurationError(f"Unknown notifier backend: {backend}")
