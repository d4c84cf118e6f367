from celery import Celery
from celery.schedules import crontab
from kombu import Exchange, Queue

from pillminder.core.config import settings


broker_url = settings.CELERY_BROKER_URL or settings.RABBITMQ_URL
result_backend = settings.CELERY_RESULT_BACKEND or None

celery_app = Celery(
    "pillminder",
    broker=broker_url,
    backend=result_backend,
)

exchange = Exchange(settings.RABBITMQ_EXCHANGE, type="direct", durable=True)

celery_app.conf.update(
    task_acks_late=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.WORKER_CONCURRENCY,
    task_default_queue=settings.RABBITMQ_INPUT_QUEUE,
    task_default_exchange=settings.RABBITMQ_EXCHANGE,
    task_default_routing_key=settings.RABBITMQ_INPUT_ROUTING_KEY,
    include=["pillminder.reminders.tasks"],
    task_queues=(
        Queue(settings.RABBITMQ_INPUT_QUEUE, exchange=exchange, routing_key=settings.RABBITMQ_INPUT_ROUTING_KEY, durable=True),
        Queue(settings.RABBITMQ_OUTPUT_QUEUE, exchange=exchange, routing_key=settings.RABBITMQ_OUTPUT_ROUTING_KEY, durable=True),
    ),
)

# Beat drives the scan once per minute; a tick not picked up within 55s is
# dropped rather than run late alongside the next one.
celery_app.conf.beat_schedule = {
    "scan-tick": {
        "task": "pillminder.tick",
        "schedule": crontab(minute="*"),
        "options": {"expires": 55},
    },
}
