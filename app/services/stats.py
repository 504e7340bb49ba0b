"""
Client for the statistics service.

Hits are recorded best effort from a background task; view counts are
read back on demand.
"""
import logging
from datetime import datetime
from typing import Optional

import httpx

from app.core import config

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0  # seconds
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StatsError(Exception):
    """Raised when the statistics service answers with an error."""


class StatsClient:
    def __init__(
        self,
        server_url: Optional[str] = None,
        app_name: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._app_name = app_name or config.APP_NAME
        self._client = httpx.Client(
            base_url=(server_url or config.STATS_SERVER_URL).rstrip("/"),
            timeout=timeout,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "StatsClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def record_hit(self, uri: str, ip: str, timestamp: datetime) -> None:
        payload = {
            "app": self._app_name,
            "uri": uri,
            "ip": ip,
            "timestamp": timestamp.strftime(DATE_FORMAT),
        }
        response = self._client.post("/hit", json=payload)
        if response.is_error:
            logger.error("Error saving hit to stats service: %s", response.status_code)
            raise StatsError(f"Stats service error while saving hit: {response.status_code}")

    def view_count(self, uri: str, since: datetime, until: Optional[datetime] = None) -> int:
        """
        Return the number of unique views of ``uri`` between ``since`` and ``until``.

        The event API serves its local ``views`` counter; this read is for
        callers that want the stats service figure, e.g. reporting jobs.
        """
        params = {
            "start": since.strftime(DATE_FORMAT),
            "end": (until or datetime.now()).strftime(DATE_FORMAT),
            "uris": [uri],
            "unique": "true",
        }
        response = self._client.get("/stats", params=params)
        if response.is_error:
            logger.error("Error fetching stats from stats service: %s", response.status_code)
            raise StatsError(f"Stats service error while getting stats: {response.status_code}")
        return sum(int(item.get("hits", 0)) for item in response.json() if item.get("uri") == uri)
