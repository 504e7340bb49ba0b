import logging
from datetime import datetime

import httpx

from app.core.celery_config import celery_app
from app.services.stats import StatsClient, StatsError

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def record_hit_task(self, uri: str, ip: str, timestamp: str):
    """Send one endpoint hit to the stats service; failures are only logged."""
    try:
        with StatsClient() as client:
            client.record_hit(uri, ip, datetime.fromisoformat(timestamp))
    except (httpx.HTTPError, StatsError) as e:
        logger.warning("Could not record hit for %s: %s", uri, e)
