from celery import Celery

from app.core.config import get_redis_url

STATS_QUEUE = "stats"


def make_celery(app_name: str = "event_service") -> Celery:
    redis_url = get_redis_url()
    celery = Celery(app_name, broker=redis_url, backend=redis_url, include=["app.tasks"])
    celery.conf.task_serializer = "json"
    celery.conf.result_serializer = "json"
    celery.conf.accept_content = ["json"]
    celery.conf.result_persistent = False
    celery.conf.task_ignore_result = True
    celery.conf.task_default_queue = STATS_QUEUE
    # hit recording is fire-and-forget: publishing must fail fast, not retry
    celery.conf.task_publish_retry = False
    celery.conf.broker_connection_timeout = 1
    return celery


celery_app = make_celery()
