"""
HTTP client for the encoding job queue API.
Translates requests failures into MonitorError at this boundary.
"""

import json
import logging
import requests

from vmx_monitor.core.constants import (
    ErrorCode, DEFAULT_API_URL, QUEUE_LIST_PATH, QUEUE_CANCEL_PATH,
    REQUEST_TIMEOUT_SEC,
)
from vmx_monitor.core.error_codes import MonitorError
from vmx_monitor.core.models import QueueJob

logger = logging.getLogger(__name__)

_JSON_HEADERS = {"Content-Type": "application/json"}


class QueueClient:
    """Talks to `GET /api/queue/list`, `DELETE /api/queue/cancel` and the health check."""

    def __init__(self, base_url: str = DEFAULT_API_URL,
                 timeout: float = REQUEST_TIMEOUT_SEC,
                 session: requests.Session | None = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def list_jobs(self) -> list[QueueJob]:
        try:
            resp = self.session.get(self._url(QUEUE_LIST_PATH),
                                    headers=_JSON_HEADERS, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise MonitorError(ErrorCode.QUEUE_FETCH, "Queue request timed out")
        except requests.exceptions.RequestException as e:
            raise MonitorError(ErrorCode.API_UNREACHABLE,
                               f"Could not reach queue API at {self.base_url}: {e}")

        if not resp.ok:
            raise MonitorError(ErrorCode.QUEUE_FETCH,
                               f"Failed to fetch queue ({resp.status_code})")
        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError):
            raise MonitorError(ErrorCode.QUEUE_FETCH, "Failed to parse queue response JSON")
        if data is None:
            return []
        if not isinstance(data, list):
            raise MonitorError(ErrorCode.QUEUE_FETCH, "Unexpected queue response shape")
        return [QueueJob.from_dict(item) for item in data if isinstance(item, dict)]

    def cancel_job(self, job_id: str):
        """Cancel a pending/processing job, or remove a finished one."""
        try:
            resp = self.session.delete(self._url(QUEUE_CANCEL_PATH),
                                       params={"id": job_id},
                                       headers=_JSON_HEADERS, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise MonitorError(ErrorCode.QUEUE_CANCEL, "Cancel request timed out")
        except requests.exceptions.RequestException as e:
            raise MonitorError(ErrorCode.API_UNREACHABLE,
                               f"Could not reach queue API at {self.base_url}: {e}")

        if not resp.ok:
            message = "Failed to cancel queue"
            try:
                body = resp.json()
                if isinstance(body, dict) and body.get("error"):
                    message = str(body["error"])
            except ValueError:
                pass
            raise MonitorError(ErrorCode.QUEUE_CANCEL, message)
        logger.info("Cancel request accepted for job %s", job_id)

    def health_check(self) -> bool:
        """True when the API answers `{"status": "online" | "ok"}` at its root."""
        try:
            resp = self.session.get(self._url("/"), headers=_JSON_HEADERS,
                                    timeout=self.timeout)
            if not resp.ok:
                return False
            return resp.json().get("status") in ("online", "ok")
        except (requests.exceptions.RequestException, ValueError, AttributeError) as e:
            logger.debug("Health check failed: %s", e)
            return False
